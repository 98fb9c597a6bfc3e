from relay_agent.agent.context import ContextBuilder
from relay_agent.agent.memory import ConversationTurn
from relay_agent.config.schema import DEFAULT_SYSTEM_PROMPT


def test_empty_context_leaves_base_prompt_unchanged():
    builder = ContextBuilder()

    assert builder.build_system_prompt() == DEFAULT_SYSTEM_PROMPT
    assert builder.build_system_prompt(long_term_context=[], recent_messages=[]) == DEFAULT_SYSTEM_PROMPT


def test_sections_are_appended_in_order():
    builder = ContextBuilder("Base prompt.")
    prompt = builder.build_system_prompt(
        long_term_context=["fact one", "fact two"],
        visual_summary="A bar chart of revenue.",
        recent_messages=[{"user": "U1", "text": "morning all"}, {"text": ""}, "junk"],
    )

    assert prompt == (
        "Base prompt.\n\n"
        "## Relevant long-term memory\n\n- fact one\n- fact two\n\n"
        "## Visual context\n\nA bar chart of revenue.\n\n"
        "## Recent channel activity\n\n- U1: morning all"
    )


def test_recent_messages_are_capped():
    builder = ContextBuilder("Base.")
    recent = [{"user": f"U{i}", "text": f"msg {i}"} for i in range(8)]
    prompt = builder.build_system_prompt(recent_messages=recent)

    assert "msg 4" in prompt
    assert "msg 5" not in prompt


def test_build_messages_drops_timestamps():
    window = [
        ConversationTurn("user", "hi", "t1"),
        ConversationTurn("assistant", "hello", "t2"),
    ]
    assert ContextBuilder().build_messages(window) == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]
