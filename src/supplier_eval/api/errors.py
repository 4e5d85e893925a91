"""Exception handlers for the evaluation API.

``register_error_handlers`` wires every failure path into the envelope built
by ``error_model.make_error_response``:

    EvalHttpError           raised by the API layer itself (authentication)
    EvaluationError         domain errors, status chosen by error type
    HTTPException           routing-level errors (unknown path, bad method)
    RequestValidationError  malformed bodies or parameters -> 422
    Exception               anything else -> 500 with a generic message
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from supplier_eval.api.error_model import (
    get_error_code_for_status,
    make_error_response,
    status_for_domain_error,
)
from supplier_eval.errors import EvaluationError

logger = logging.getLogger(__name__)

_INTERNAL_MESSAGE = "An internal error occurred"


class EvalHttpError(Exception):
    """Transport-level failure that already knows its status and code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


def _internal_error(request: Request) -> JSONResponse:
    return make_error_response(
        request, code="INTERNAL_ERROR", message=_INTERNAL_MESSAGE, http_status=500
    )


async def _on_eval_http_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, EvalHttpError)
    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def _on_evaluation_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, EvaluationError)
    status = status_for_domain_error(exc)
    if status == 500:
        logger.error("Unmapped evaluation error %s: %s", exc.code, exc.message)
        return _internal_error(request)
    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=status,
        details=exc.details,
    )


async def _on_http_exception(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, HTTPException)
    return make_error_response(
        request,
        code=get_error_code_for_status(exc.status_code),
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        http_status=exc.status_code,
    )


async def _on_request_validation_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    fields = []
    for error in exc.errors():
        path = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append(
            {
                "field": ".".join(path) or "request",
                "message": error.get("msg", "Validation error"),
            }
        )
    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": fields} if fields else None,
    )


async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled %s while serving %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
    )
    return _internal_error(request)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EvalHttpError, _on_eval_http_error)
    app.add_exception_handler(EvaluationError, _on_evaluation_error)
    app.add_exception_handler(HTTPException, _on_http_exception)
    app.add_exception_handler(RequestValidationError, _on_request_validation_error)
    app.add_exception_handler(Exception, _on_unhandled)
