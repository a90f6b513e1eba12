"""
Request diagnostics for the post feed API.

Every HTTP response carries ``X-Response-Time-Ms`` and ``X-Query-Count``.
The count is the number of SQL statements the store issued while serving
the request, so a like that had to retry after a version conflict shows up
as extra reads and writes.
"""
import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.types import ASGIApp, Message, Receive, Scope, Send

store_statements_var: ContextVar[int] = ContextVar("store_statements", default=0)


def install_query_counter(engine) -> None:
    """Count every statement *engine* sends into ``store_statements_var``."""

    def _on_execute(conn, cursor, statement, parameters, context, executemany):
        store_statements_var.set(store_statements_var.get() + 1)

    event.listen(engine.sync_engine, "before_cursor_execute", _on_execute)


def _with_diagnostics(message: Message, started: float) -> Message:
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    message["headers"] = [
        *message.get("headers", []),
        (b"x-response-time-ms", str(elapsed_ms).encode()),
        (b"x-query-count", str(store_statements_var.get()).encode()),
    ]
    return message


class TimingMiddleware:
    # Plain ASGI so the counter set here is the one the engine listener sees.

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        store_statements_var.set(0)
        started = time.perf_counter()

        async def send_with_diagnostics(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = _with_diagnostics(message, started)
            await send(message)

        await self.app(scope, receive, send_with_diagnostics)
