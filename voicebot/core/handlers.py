from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from voicebot.core.errors import AppError, InvalidRequestError
from voicebot.core.logging import log_context

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    with log_context(request_id=request_id, path=request.url.path):
        if exc.status_code >= 500:
            logger.error("%s", exc.detail, extra={"error_code": exc.code, "status_code": exc.status_code})
        else:
            logger.warning("%s", exc.detail, extra={"error_code": exc.code, "status_code": exc.status_code})
    return _error_response(exc.status_code, exc.code, exc.detail)


async def handle_validation_error(request: Request, _exc: RequestValidationError) -> JSONResponse:
    return await handle_app_error(request, InvalidRequestError("Invalid request"))
