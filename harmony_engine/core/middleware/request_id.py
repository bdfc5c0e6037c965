import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from harmony_engine.core.logging import LOGGER_NAME, request_id_ctx_var, user_id_ctx_var


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind a request_id (and the `user_id` query parameter, when present) to
    the logging context for the lifetime of a request, echo the id on the
    response, and log one `request.complete` line.
    """

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid
        rid_token = request_id_ctx_var.set(rid)
        user_token = user_id_ctx_var.set(request.query_params.get("user_id"))

        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            user_id_ctx_var.reset(user_token)
            request_id_ctx_var.reset(rid_token)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 1)

        response.headers[self.header_name] = rid
        logging.getLogger(LOGGER_NAME).info(
            "request.complete",
            extra={
                "request_id": rid,
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
        return response
