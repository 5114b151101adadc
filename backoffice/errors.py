"""Ошибки бизнес-логики и их отображение в JSON-ответы."""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

log = logging.getLogger(__name__)


class ServiceError(Exception):
    """База для ошибок сервисного слоя; знает свой HTTP-статус."""

    status_code = 500

    def __init__(self, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.details = details


class ValidationFailed(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    """Операция противоречит текущему состоянию (например, повторный возврат)."""

    status_code = 400


class InsufficientStock(ServiceError):
    status_code = 400

    def __init__(self, product_id: int, product_name: Optional[str], available: int, requested: int):
        label = product_name or f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product {label}",
            f"Available: {available}, requested: {requested}",
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidReference(ServiceError):
    """Нарушение внешнего ключа: сотрудник, клиент или товар не существует."""

    status_code = 400


class DependencyWriteFailed(ServiceError):
    status_code = 500


def _error_body(error: str, details: Optional[str] = None) -> dict:
    body = {"success": False, "error": error}
    if details:
        body["details"] = details
    return body


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        log.error("%s %s -> %s: %s", request.method, request.url.path, exc.error, exc.details)
    return JSONResponse(_error_body(exc.error, exc.details), status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(_error_body("Validation failed", "; ".join(problems)), status_code=400)


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(_error_body("Internal server error", str(exc.__class__.__name__)), status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
