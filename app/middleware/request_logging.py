import time
import uuid
import logging
from contextvars import ContextVar
from fastapi import Request

logger = logging.getLogger("access")

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Client info of the request being served, read when writing audit rows
request_client: ContextVar[dict] = ContextVar("request_client", default={})


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
    client_addr = _client_ip(request)

    id_token = request_id_var.set(request_id)
    client_token = request_client.set(
        {"ip_address": client_addr, "user_agent": request.headers.get("user-agent")}
    )
    try:
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000

        logger.info(
            "",
            extra={
                "client_addr": client_addr,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time, 2),
                "user_id": getattr(request.state, "user_id", "-"),
            },
        )
    finally:
        request_client.reset(client_token)
        request_id_var.reset(id_token)

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
