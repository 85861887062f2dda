"""Maps ordering failures to HTTP responses.

Every body has an ``error`` key. Client-input failures carry field-level
messages; transition failures also echo the current and requested status
so a UI can explain the refusal.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    EmptyCartError,
    Forbidden,
    InvalidScheduleError,
    InvalidTransitionError,
    ItemUnavailableError,
    MissingAddressError,
    ServiceUnavailable,
    Unauthorized,
)

logger = structlog.get_logger(__name__)

_INPUT_ERROR_CODES = {
    EmptyCartError: "empty_cart",
    ItemUnavailableError: "item_unavailable",
    InvalidScheduleError: "invalid_schedule",
    MissingAddressError: "missing_address",
}


def _input_error_handler(code):
    async def handler(request: Request, exc: ValidationError):
        body = {"error": exc.messages, "code": code}
        if isinstance(exc, ItemUnavailableError):
            body["product_id"] = exc.product_id
        return JSONResponse(status_code=400, content=body)

    return handler


async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": exc.messages, "code": "validation_error"})


async def _request_validation_error(request: Request, exc: RequestValidationError):
    messages = {}
    for problem in exc.errors():
        field = ".".join(str(part) for part in problem.get("loc", ()) if part not in ("body", "query", "header"))
        messages.setdefault(field or "request", []).append(problem.get("msg", "Invalid value"))
    return JSONResponse(status_code=400, content={"error": messages, "code": "validation_error"})


async def _invalid_transition(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=409,
        content={
            "error": exc.messages,
            "code": "invalid_transition",
            "current_status": exc.current,
            "requested_status": exc.requested,
        },
    )


async def _unauthorized(request: Request, exc: Unauthorized):
    return JSONResponse(status_code=401, content={"error": str(exc), "code": "unauthorized"})


async def _forbidden(request: Request, exc: Forbidden):
    return JSONResponse(status_code=403, content={"error": str(exc), "code": "forbidden"})


async def _not_found(request: Request, exc: ObjectNotFoundError):
    return JSONResponse(status_code=404, content={"error": "Not found", "code": "not_found"})


async def _service_unavailable(request: Request, exc: ServiceUnavailable):
    logger.warning("Request failed, backing store unavailable", path=request.url.path, operation=exc.operation)
    return JSONResponse(
        status_code=503,
        content={"error": str(exc), "code": "service_unavailable", "retryable": True},
        headers={"Retry-After": "5"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install protean's default handlers, then the ordering-specific ones."""
    register_exception_handlers(app)

    app.add_exception_handler(ValidationError, _validation_error)
    for exc_class, code in _INPUT_ERROR_CODES.items():
        app.add_exception_handler(exc_class, _input_error_handler(code))
    app.add_exception_handler(InvalidTransitionError, _invalid_transition)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Unauthorized, _unauthorized)
    app.add_exception_handler(Forbidden, _forbidden)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ServiceUnavailable, _service_unavailable)
