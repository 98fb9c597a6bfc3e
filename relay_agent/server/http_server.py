"""Minimal asyncio HTTP front end for the relay."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from urllib.parse import unquote, urlsplit

from loguru import logger
from pydantic import ValidationError

from relay_agent.agent.orchestrator import ProcessingError, RequestOrchestrator
from relay_agent.agent.requests import ProcessRequest
from relay_agent.utils.helpers import now_iso

MAX_BODY_BYTES = 1024 * 1024
READ_CHUNK = 8192


class RelayHttpServer:
    """Serve the relay endpoints over a tiny HTTP/1.1 server."""

    def __init__(
        self,
        *,
        orchestrator: RequestOrchestrator,
        host: str = "0.0.0.0",
        port: int = 8000,
    ):
        self.orchestrator = orchestrator
        self.host = str(host or "0.0.0.0").strip()
        self.port = max(0, int(port))
        self._server: asyncio.AbstractServer | None = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def bound_port(self) -> int:
        if not self._server or not self._server.sockets:
            return self.port
        return int(self._server.sockets[0].getsockname()[1])

    async def start(self) -> None:
        if self._server:
            return
        self._server = await asyncio.start_server(
            self._handle_client, host=self.host, port=self.port
        )
        logger.info(f"Relay listening on http://{self.host}:{self.bound_port}")

    async def stop(self) -> None:
        if not self._server:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        await self.orchestrator.aclose()

    async def serve_forever(self) -> None:
        await self.start()
        assert self._server is not None
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    def _http_response(self, status: int, payload: dict[str, Any]) -> bytes:
        reason = {
            200: "OK",
            400: "Bad Request",
            404: "Not Found",
            405: "Method Not Allowed",
            413: "Payload Too Large",
            500: "Internal Server Error",
        }.get(status, "OK")
        data = (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")
        headers = [
            f"HTTP/1.1 {status} {reason}",
            "Content-Type: application/json; charset=utf-8",
            f"Content-Length: {len(data)}",
            "Connection: close",
            "",
            "",
        ]
        return "\r\n".join(headers).encode("utf-8") + data

    async def _read_request(
        self, reader: asyncio.StreamReader
    ) -> tuple[str, dict[str, str], bytes | None]:
        """Read one request. The body is None when it exceeds MAX_BODY_BYTES."""
        raw = b""
        while b"\r\n\r\n" not in raw:
            chunk = await reader.read(READ_CHUNK)
            if not chunk:
                break
            raw += chunk
            if len(raw) > MAX_BODY_BYTES:
                break

        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("utf-8", errors="ignore").split("\r\n")
        headers: dict[str, str] = {}
        for line in lines[1:]:
            name, sep, value = line.partition(":")
            if sep:
                headers[name.strip().lower()] = value.strip()

        try:
            length = int(headers.get("content-length", "0"))
        except ValueError:
            length = 0
        length = max(0, length)
        request_line = lines[0].strip() if lines else ""
        if length > MAX_BODY_BYTES or len(body) > MAX_BODY_BYTES:
            return request_line, headers, None
        while len(body) < length:
            chunk = await reader.read(min(READ_CHUNK, length - len(body)))
            if not chunk:
                break
            body += chunk
        return request_line, headers, body[:length]

    async def _route(self, method: str, path: str, body: bytes) -> tuple[int, dict[str, Any]]:
        if path == "/health":
            if method != "GET":
                return 405, {"error": "method not allowed"}
            return 200, {
                "status": "healthy",
                "timestamp": now_iso(),
                "activeConversations": self.orchestrator.active_conversations,
            }

        if path.startswith("/api/memory/"):
            if method != "GET":
                return 405, {"error": "method not allowed"}
            conversation_id = unquote(path[len("/api/memory/"):])
            if not conversation_id:
                return 404, {"error": "not found"}
            return 200, self.orchestrator.get_memory(conversation_id)

        if path in {"/api/process", "/api/store"}:
            if method != "POST":
                return 405, {"error": "method not allowed"}
            try:
                request = ProcessRequest.model_validate(json.loads(body.decode("utf-8") or "null"))
            except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
                return 400, {"error": "Invalid request body", "details": str(e)}

            if path == "/api/store":
                result = await self.orchestrator.store(
                    request.message, request.context, request.timestamp
                )
                return 200, result

            try:
                result = await self.orchestrator.process(
                    request.message, request.context, request.timestamp
                )
            except ProcessingError as e:
                return 500, e.to_dict()
            return 200, result.to_dict()

        return 404, {"error": "not found"}

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            request_line, _, body = await self._read_request(reader)
            parts = request_line.split()
            if len(parts) < 2:
                writer.write(self._http_response(400, {"error": "bad request"}))
                await writer.drain()
                return

            if body is None:
                too_large = {"error": "Request body too large", "details": f"limit is {MAX_BODY_BYTES} bytes"}
                writer.write(self._http_response(413, too_large))
                await writer.drain()
                return

            method = parts[0].upper()
            path = urlsplit(parts[1]).path or "/"
            status, payload = await self._route(method, path, body)
            writer.write(self._http_response(status, payload))
            await writer.drain()
        except Exception as e:
            logger.exception(f"Unhandled error while serving request: {e}")
            writer.write(
                self._http_response(500, {"error": "Failed to process message", "details": str(e)})
            )
            await writer.drain()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except Exception:
                pass
