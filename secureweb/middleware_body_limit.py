# secureweb/middleware_body_limit.py

"""
Custom middleware to enforce a maximum HTTP request body size.

This keeps JSON bodies (file references, login forms, CSP reports) small,
so oversized payloads cannot exhaust memory during parsing.

A declared `Content-Length` is checked up front. Bodies without one
(chunked transfer encoding) are counted as they stream in, and the request
is answered with 413 as soon as the running total passes the limit.
"""

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class _BodyTooLarge(Exception):
    pass


def _too_large() -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": "Request body too large"})


class BodySizeLimitMiddleware:
    """
    Rejects any request whose body exceeds `max_content_length` bytes.

    Returns HTTP 413 (Payload Too Large) if the limit is exceeded, and 400 if
    the Content-Length header is not a valid non-negative integer.

    Example usage:
        app.add_middleware(BodySizeLimitMiddleware, max_content_length=1_048_576)  # 1MB
    """
    def __init__(self, app: ASGIApp, max_content_length: int):
        """
        Args:
            app: ASGI application instance.
            max_content_length (int): Max content length in bytes.
        """
        self.app = app
        self.max_content_length = max_content_length

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            if not content_length.isdigit():
                response = JSONResponse(status_code=400, content={"error": "Invalid Content-Length"})
                await response(scope, receive, send)
                return
            if int(content_length) > self.max_content_length:
                await _too_large()(scope, receive, send)
                return

        received = 0
        response_started = False
        exceeded = False

        async def counting_receive() -> Message:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_content_length:
                    exceeded = not response_started
                    raise _BodyTooLarge()
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            # Once over the limit, only the 413 goes out
            if exceeded:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, counting_receive, guarded_send)
        except _BodyTooLarge:
            if not exceeded:
                raise

        if exceeded:
            await _too_large()(scope, receive, send)
