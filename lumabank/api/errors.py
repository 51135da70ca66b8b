"""Maps domain exceptions to HTTP error responses"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lumabank.api.dependencies import get_request_id
from lumabank.domain.exceptions import (
    AccountNotFound,
    AuthenticationError,
    DomainException,
    InsufficientFunds,
    PermissionDenied,
    RateLimitExceeded,
    TransactionAborted,
    TransactionNotFound,
    UserNotFound,
)

logger = logging.getLogger(__name__)

# Checked in order; anything else from the domain is a 400
STATUS_CODES = (
    (AuthenticationError, 401),
    (PermissionDenied, 403),
    (AccountNotFound, 404),
    (UserNotFound, 404),
    (TransactionNotFound, 404),
    (TransactionAborted, 409),
    (RateLimitExceeded, 429),
)


def status_for(exc: DomainException) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = status_for(exc)
    body = {"error": exc.detail}
    headers = {}

    if isinstance(exc, InsufficientFunds):
        body["available"] = f"{exc.available:.2f}"
        body["requested"] = f"{exc.requested:.2f}"
    elif isinstance(exc, RateLimitExceeded):
        headers = {
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(exc.retry_after),
        }
    elif status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}

    if isinstance(exc, TransactionAborted):
        logger.error("Transaction aborted: %s", exc.__cause__ or exc, extra={"request_id": get_request_id(request)})
    else:
        logger.warning(
            "Request rejected: %s", exc.detail,
            extra={"request_id": get_request_id(request), "error_type": type(exc).__name__, "status": status_code},
        )

    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return JSONResponse(status_code=400, content={"error": "Validation error", "details": details})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error", extra={"request_id": get_request_id(request)})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
