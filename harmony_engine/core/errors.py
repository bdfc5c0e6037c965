"""
Error hierarchy and FastAPI handlers.

Every error response has the same envelope:

    {"error": {"code", "message", "request_id", "details"?}, "detail": message}

and echoes the request id in the `x-request-id` header.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from harmony_engine.core.logging import LOGGER_NAME, get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id

    def details(self) -> Dict[str, Any]:
        """Machine-readable context for the response body; empty by default."""
        return {}


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class ProgressIntegrityError(AppError):
    """A daily progress flag that was persisted as true came back false."""
    code = "progress_integrity_violation"
    status_code = 409

    def __init__(self, message: str, *, user_id: Optional[str] = None, local_date: Optional[str] = None, fields: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.user_id = user_id
        self.local_date = local_date
        self.fields = list(fields or [])

    def details(self) -> Dict[str, Any]:
        return {"local_date": self.local_date, "fields": self.fields}


class MilestoneEvaluationError(AppError):
    """One milestone definition could not be evaluated."""
    code = "milestone_evaluation_failed"
    status_code = 500

    def __init__(self, message: str, *, milestone_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.milestone_id = milestone_id

    def details(self) -> Dict[str, Any]:
        return {"milestone_id": self.milestone_id}


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_response(status_code: int, code: str, message: str, rid: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message, "request_id": rid}
    if details:
        error["details"] = details
    response = JSONResponse(status_code=status_code, content={"error": error, "detail": message})
    response.headers["x-request-id"] = rid
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logging.getLogger(LOGGER_NAME).log(
        level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return _error_response(exc.status_code, exc.code, exc.message, rid, exc.details())


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    logging.getLogger(LOGGER_NAME).warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _error_response(exc.status_code, code, message, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logging.getLogger(LOGGER_NAME).error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    return _error_response(500, "internal_error", "Unexpected error", rid)
