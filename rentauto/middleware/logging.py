import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("access")

class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log for every API call, tagged with a short request id"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        client = request.client.host if request.client else "unknown"
        start_time = time.perf_counter()

        logger.info(f"[{request_id}] {request.method} {request.url.path} from {client}")

        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start_time
            logger.error(f"[{request_id}] {request.method} {request.url.path} crashed after {elapsed:.4f}s")
            raise

        elapsed = time.perf_counter() - start_time
        log = logger.warning if response.status_code >= 500 else logger.info
        log(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} in {elapsed:.4f}s")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        return response
