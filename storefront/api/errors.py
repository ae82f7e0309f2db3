# storefront/api/errors.py
"""
Error envelope and exception handlers.

Every failure leaves the API as
    {"error": {"code": "...", "message": "...", "details": {...}}}
"""
from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import IntegrityError
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse

from storefront.core.exceptions import StorefrontError
from storefront.core.logging import log


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": jsonable_encoder(details or {})}},
    )


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    log("API", f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    details = exc.message_dict if hasattr(exc, "error_dict") else {"messages": exc.messages}
    return error_response(
        422,
        "VALIDATION_ERROR",
        "; ".join(exc.messages),
        details,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        422,
        "VALIDATION_ERROR",
        "Request body or query parameters are invalid",
        {"errors": exc.errors()},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log("API", f"{request.method} {request.url.path} -> 409 integrity error: {exc}")
    return error_response(status.HTTP_409_CONFLICT, "CONFLICT", "The change conflicts with existing data", {"reason": str(exc)})


async def does_not_exist_handler(request: Request, exc: ObjectDoesNotExist) -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, "NOT_FOUND", str(exc) or "Record not found")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(ObjectDoesNotExist, does_not_exist_handler)
