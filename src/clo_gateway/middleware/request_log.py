"""Request logging middleware.

One log line per HTTP request: method, path, status, latency and a request
id. A caller-supplied ``X-Request-ID`` is reused so the pool hook can
correlate its own logs; otherwise one is generated. The id is put on
request.state for the ApiResponse envelope and echoed back in the response.

Bodies are never logged: they carry ciphertexts and decryption results.

Log format:
    INFO [POST] /api/v1/pools/ETH-USDC/price-updates → 200 (12ms) req_a1b2c3d4e5f6
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("clo.request")

_REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


def _request_id(request: Request) -> str:
    supplied = request.headers.get(_REQUEST_ID_HEADER)
    if supplied and _VALID_REQUEST_ID.match(supplied):
        return supplied
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers[_REQUEST_ID_HEADER] = request_id
        return response
