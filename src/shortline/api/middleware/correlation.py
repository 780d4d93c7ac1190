"""Correlation context middleware for request tracing.

Every request runs inside a LogContext carrying its request id and
correlation id, so log lines from the stores can be tied back to the
HTTP call that caused them.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shortline.observability.logging import LogContext

REQUEST_ID_HEADER = "x-request-id"
CORRELATION_ID_HEADER = "x-correlation-id"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Propagate request and correlation ids.

    An incoming x-request-id is reused, otherwise one is generated. The
    correlation id falls back to the request id. Both are echoed on the
    response and stored on request.state.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or request_id

        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        with LogContext(request_id=request_id, correlation_id=correlation_id):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
