"""Request logging middleware.

Logs every HTTP request with method, path, status code and latency under
a short request ID. An incoming X-Request-ID header is reused so calls can
be correlated with the identity service; otherwise one is generated. The
id is put on request.state (picked up by success_response) and echoed in
the X-Request-ID response header.

Log format:
    INFO [POST] /api/v1/markets/MKT-.../swap → 200 (23ms) req_a1b2c3d4e5f6
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pm.request")

_HEADER = "X-Request-ID"
_MAX_INCOMING_LEN = 64


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(_HEADER)
        if incoming and len(incoming) <= _MAX_INCOMING_LEN:
            request.state.request_id = incoming
        else:
            request.state.request_id = f"req_{uuid.uuid4().hex[:12]}"

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers[_HEADER] = request.state.request_id

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        return response
