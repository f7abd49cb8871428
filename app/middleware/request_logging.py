import time
import uuid
import logging
from fastapi import Request

logger = logging.getLogger("inventrack.access")

REQUEST_ID_HEADER = "X-Request-ID"

# load balancers poll "/" every few seconds
QUIET_PATHS = {"/"}


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    start_time = time.perf_counter()

    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id

    if request.url.path in QUIET_PATHS:
        return response

    process_time = (time.perf_counter() - start_time) * 1000

    # set by get_current_user on authenticated routes
    actor = getattr(request.state, "actor", "anonymous")

    logger.info(
        "",
        extra={
            "request_id": request_id,
            "client_addr": request.client.host if request.client else "unknown",
            "actor": actor,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time, 2),
        },
    )

    return response
