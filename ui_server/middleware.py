"""Request pipeline applied to every request served by the application.

The middlewares are plain ASGI callables so that they see the raw ``send``
stream. Register them with ``install_middleware`` which applies them in the
order requests flow through them: request ID, real IP, access log, recoverer,
timeout.
"""

from __future__ import annotations

import asyncio
import ipaddress
import itertools
import secrets
import socket
import time

from fastapi import FastAPI
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ui_server.logger import get_logger, log_with_context

logger = get_logger()

REQUEST_ID_HEADER = "X-Request-Id"

_hostname = socket.gethostname() or "localhost"
_request_id_prefix = f"{_hostname}/{secrets.token_hex(5)}"
_request_id_counter = itertools.count(1)


def next_request_id() -> str:
    """Return a process-unique request identifier like ``host/3f9a0c1b2d-000042``."""

    return f"{_request_id_prefix}-{next(_request_id_counter):06d}"


def _request_state(scope: Scope) -> dict:
    return scope.setdefault("state", {})


class RequestIDMiddleware:
    """Tag each request with an ID, reusing one supplied by the client."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or next_request_id()
        _request_state(scope)["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        with logger.contextualize(request_id=request_id):
            await self.app(scope, receive, send_with_request_id)


def resolve_client_ip(headers: Headers) -> str | None:
    """Pick the originating client address from proxy headers, if any."""

    if headers.get("true-client-ip"):
        candidate = headers["true-client-ip"]
    elif headers.get("x-real-ip"):
        candidate = headers["x-real-ip"]
    elif headers.get("x-forwarded-for"):
        candidate = headers["x-forwarded-for"].split(",", 1)[0]
    else:
        return None

    candidate = candidate.strip()
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return None
    return candidate


class RealIPMiddleware:
    """Replace the connection address with the proxy-forwarded client address."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            client_ip = resolve_client_ip(Headers(scope=scope))
            if client_ip is not None:
                port = scope["client"][1] if scope.get("client") else 0
                scope["client"] = (client_ip, port)

        await self.app(scope, receive, send)


class AccessLogMiddleware:
    """Log method, URL, client, status, size and duration of each request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500
        bytes_sent = 0

        async def send_and_record(message: Message) -> None:
            nonlocal status_code, bytes_sent
            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body":
                bytes_sent += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_and_record)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            client = scope["client"][0] if scope.get("client") else "-"
            host = Headers(scope=scope).get("host", "")
            target = scope["path"]
            if scope.get("query_string"):
                target += "?" + scope["query_string"].decode("latin-1")

            if status_code >= 500:
                level = "ERROR"
            elif status_code >= 400:
                level = "WARNING"
            else:
                level = "INFO"

            log_with_context(logger, client=client, status=status_code).log(
                level,
                f'"{scope["method"]} {scope.get("scheme", "http")}://{host}{target} '
                f'HTTP/{scope.get("http_version", "1.1")}" from {client} - '
                f"{status_code} {bytes_sent}B in {duration_ms:.3f}ms",
            )


class RecovererMiddleware:
    """Turn unhandled exceptions into a 500 response instead of dropping the connection."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_and_track(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_and_track)
        except Exception as exc:
            logger.opt(exception=exc).error(
                f"Recovered from unhandled error in {scope['method']} {scope['path']}: {exc!r}"
            )
            if response_started:
                raise
            response = PlainTextResponse("Internal Server Error", status_code=500)
            await response(scope, receive, send)


class TimeoutMiddleware:
    """Cancel request handling once the per-request budget is spent.

    The absolute deadline (event loop clock) is exposed to handlers as
    ``request.state.deadline``.
    """

    def __init__(self, app: ASGIApp, timeout: float) -> None:
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        loop = asyncio.get_running_loop()
        _request_state(scope)["deadline"] = loop.time() + self.timeout
        response_started = False

        async def send_and_track(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_and_track), timeout=self.timeout)
        except asyncio.TimeoutError:
            if response_started:
                logger.error(
                    f"Request {scope['method']} {scope['path']} exceeded {self.timeout:g}s budget "
                    "after the response started; response truncated"
                )
                return
            logger.warning(
                f"Request {scope['method']} {scope['path']} exceeded {self.timeout:g}s budget"
            )
            response = PlainTextResponse("Gateway Timeout", status_code=504)
            await response(scope, receive, send)


def install_middleware(app: FastAPI, *, request_timeout: float) -> None:
    """Wrap the whole router in the request pipeline.

    Starlette makes the most recently added middleware the outermost, so the
    chain is added innermost first.
    """

    app.add_middleware(TimeoutMiddleware, timeout=request_timeout)
    app.add_middleware(RecovererMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RealIPMiddleware)
    app.add_middleware(RequestIDMiddleware)
