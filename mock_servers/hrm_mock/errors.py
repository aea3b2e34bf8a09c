"""Error taxonomy for the HRM mock server.

Handlers raise these; ``register_error_handlers`` renders every one of them as
the error envelope ``{"status": "error", "message": ..., "data": null}`` with
the matching HTTP status code.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from hrm_core.schemas import Envelope

logger = logging.getLogger(__name__)


class HRMError(Exception):
    status_code: int = 500
    default_message: str = "Erreur interne"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(HRMError):
    status_code = 400
    default_message = "Requête invalide"


class Unauthorized(HRMError):
    status_code = 401
    default_message = "Non autorisé"


class Forbidden(HRMError):
    status_code = 403
    default_message = "Action interdite"


class NotFound(HRMError):
    status_code = 404
    default_message = "Introuvable"


class Conflict(HRMError):
    status_code = 409
    default_message = "Conflit"


class Unprocessable(HRMError):
    status_code = 422
    default_message = "Référence inexistante"


class InternalError(HRMError):
    """Unexpected failure while mutating the store; the raw text is echoed."""

    status_code = 500


def error_response(exc: HRMError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=Envelope.error(exc.message).model_dump(),
    )


async def _hrm_error_handler(request: Request, exc: HRMError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(BadRequest("Corps de requête invalide"))


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(InternalError(str(exc)))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HRMError, _hrm_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
