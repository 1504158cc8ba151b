"""HTTP mapping of marketplace errors.

Every error response has the same envelope::

    {"kind": "CapacityExceeded", "message": "...", "errors": {"quantity": ["..."]}}

The handlers are layered over Protean's FastAPI exception handlers, so
framework errors raised outside the marketplace code get the same shape.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from marketplace.errors import MarketplaceError, NotFound

logger = structlog.get_logger(__name__)


def error_body(kind: str, message: str, errors: dict | None = None) -> dict:
    return {"kind": kind, "message": message, "errors": errors or {}}


def _field_errors(messages) -> dict:
    if isinstance(messages, dict):
        return {field: errors if isinstance(errors, list) else [str(errors)] for field, errors in messages.items()}
    if isinstance(messages, list):
        return {"_entity": [str(m) for m in messages]}
    return {"_entity": [str(messages)]}


def _first_message(errors: dict, default: str) -> str:
    for messages in errors.values():
        if messages:
            return str(messages[0])
    return default


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
        logger.info("Request rejected", path=request.url.path, kind=exc.kind, message=exc.message)
        return JSONResponse(
            status_code=exc.http_status,
            content=error_body(exc.kind, exc.message, _field_errors(exc.messages)),
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        errors = _field_errors(exc.messages)
        return JSONResponse(
            status_code=400,
            content=error_body("ValidationFailed", _first_message(errors, "Invalid request"), errors),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors: dict[str, list[str]] = {}
        for error in exc.errors():
            field = str(error["loc"][-1]) if error.get("loc") else "_entity"
            errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
        return JSONResponse(
            status_code=400,
            content=error_body("ValidationFailed", _first_message(errors, "Invalid request"), errors),
        )

    @app.exception_handler(ObjectNotFoundError)
    async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
        message = str(exc.args[0]) if exc.args else "Not found"
        return JSONResponse(status_code=NotFound.http_status, content=error_body(NotFound.kind, message))

    @app.exception_handler(ExpectedVersionError)
    async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
        logger.warning("Concurrent modification", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=409,
            content=error_body(
                "ConcurrentModification",
                "The resource was changed by another request, please retry",
            ),
        )
