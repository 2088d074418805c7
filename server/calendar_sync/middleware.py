"""Request body size limit middleware."""

from __future__ import annotations

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class BodySizeLimitMiddleware:
    """
    Reject requests whose body is larger than max_size.

    A declared Content-Length is checked up front. Bodies without one
    (chunked uploads) are buffered up to max_size and replayed to the app;
    the request is rejected as soon as the running total goes over.
    """

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        self.app = app
        self.max_size = max_size

    def _error(self, status_code: int, code: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content={"ok": False, "error": code, "message": message},
        )

    def _too_large(self) -> JSONResponse:
        return self._error(
            413,
            "payload-too-large",
            f"Request body too large. Maximum size is {self.max_size} bytes",
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                response = self._error(
                    400, "caller-error", "Invalid Content-Length header"
                )
                await response(scope, receive, send)
                return
            if declared > self.max_size:
                await self._too_large()(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        chunks: list[bytes] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_size:
                await self._too_large()(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)
