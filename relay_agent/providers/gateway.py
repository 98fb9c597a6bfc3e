"""HTTP dispatch to the LLM gateway."""

from __future__ import annotations

from time import perf_counter
from typing import Any

import httpx
from loguru import logger

from relay_agent.providers.base import ProviderDispatchError, ProviderFamily, ProviderRequest
from relay_agent.providers.router import parse_response

UPSTREAM_ENDPOINTS: dict[ProviderFamily, str] = {
    ProviderFamily.OPENAI: "https://api.openai.com/v1/chat/completions",
    ProviderFamily.ANTHROPIC: "https://api.anthropic.com/v1/messages",
    ProviderFamily.GEMINI: (
        "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    ),
}

REQUEST_ID_HEADER = "x-lava-request-id"


class LLMGateway:
    """
    Bearer-authenticated client for the provider endpoints.

    With a forward-proxy base URL every upstream endpoint is wrapped as
    ``{base_url}/forward?u=<upstream>``; without one the upstream is called directly.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
        endpoints: dict[str, str] | None = None,
    ):
        self.token = token or ""
        self.base_url = (base_url or "").strip().rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.endpoints: dict[ProviderFamily, str] = dict(UPSTREAM_ENDPOINTS)
        for family_name, url in (endpoints or {}).items():
            try:
                self.endpoints[ProviderFamily(family_name.strip().lower())] = url
            except ValueError:
                logger.warning(f"Ignoring endpoint override for unknown family {family_name!r}")

        if not self.token:
            logger.warning("LLM gateway token not configured; provider calls will be unauthenticated")

    def endpoint_for(self, request: ProviderRequest) -> str:
        upstream = self.endpoints[request.family].format(model=request.model)
        if self.base_url:
            return f"{self.base_url}/forward?u={upstream}"
        return upstream

    def _headers(self, request: ProviderRequest) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers.update(request.headers)
        return headers

    async def dispatch(self, request: ProviderRequest) -> dict[str, Any]:
        """
        Send one provider request.

        Returns:
            Decoded JSON response body.

        Raises:
            ProviderDispatchError: Network failure, error status, or non-JSON body.
        """
        url = self.endpoint_for(request)
        started = perf_counter()
        logger.info(f"Calling {request.family.value} provider for model {request.model}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, json=request.body, headers=self._headers(request))
        except httpx.HTTPError as e:
            raise ProviderDispatchError(
                "Failed to get response from LLM gateway",
                details=f"{type(e).__name__}: {e}",
            ) from e

        request_id = response.headers.get(REQUEST_ID_HEADER)
        if request_id:
            logger.info(f"Gateway request id: {request_id}")

        if response.status_code >= 400:
            raise ProviderDispatchError(
                "Failed to get response from LLM gateway",
                details=f"status={response.status_code} body={response.text[:300]}",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderDispatchError(
                "LLM gateway returned a non-JSON body",
                details=response.text[:300],
            ) from e

        logger.debug(
            f"Provider {request.family.value} answered in {(perf_counter() - started) * 1000:.0f} ms"
        )
        return payload

    async def complete(self, request: ProviderRequest) -> str:
        """Dispatch a request and normalize the reply text."""
        payload = await self.dispatch(request)
        return parse_response(request.family, payload)
