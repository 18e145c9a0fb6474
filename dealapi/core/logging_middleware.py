import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("dealapi")

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = ("/health",)


class LoggingMiddleware(BaseHTTPMiddleware):
    """요청/응답을 상태 코드와 처리 시간과 함께 기록 (5xx: error, 4xx: warning)"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else "-"
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        quiet = path.endswith(QUIET_PATHS)

        if not quiet:
            logger.info(f"[Request {request_id}] {method} {path} from {client}")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[Unhandled Error {request_id}] {method} {path} from {client}")
            raise

        duration_ms = (time.time() - start) * 1000
        message = (
            f"[Response {request_id}] {method} {path} from {client} "
            f"-> {response.status_code} in {duration_ms:.1f}ms"
        )
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        elif not quiet:
            logger.info(message)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
