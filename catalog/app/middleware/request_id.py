"""Request correlation and access logging.

Every response carries ``X-Request-ID``: the caller's value when one was
sent, a fresh UUID otherwise. The id is kept on ``request.state`` so error
handlers and log lines can quote it.
"""

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from catalog.app.core.logging import get_logger

access_logger = get_logger("catalog.access")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request id and write one access line per request."""

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[self.header_name] = request_id

        # The subject is set by the auth dependency, when the route used it
        subject = getattr(request.state, "subject", None)
        access_logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "request_id": request_id,
                "subject_id": str(subject.id) if subject else None,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")
