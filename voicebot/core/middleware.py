from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from voicebot.core.errors import RequestTooLargeError
from voicebot.core.handlers import handle_app_error

logger = logging.getLogger(__name__)


def _declared_length(request: Request) -> int | None:
    content_length = request.headers.get("content-length")
    if not content_length:
        return None
    try:
        return int(content_length)
    except ValueError:
        return None


async def log_requests(request: Request, call_next: RequestResponseEndpoint) -> Response:
    start = time.perf_counter()
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    request.state.request_id = request_id

    max_bytes = request.app.state.settings.max_request_bytes
    declared_length = _declared_length(request)
    if max_bytes > 0 and declared_length is not None and declared_length > max_bytes:
        # Exceptions raised here bypass the app's exception handlers.
        response = await handle_app_error(request, RequestTooLargeError("Request body too large."))
    else:
        response = await call_next(request)

    response.headers["X-Request-Id"] = request_id
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %s %.2fms request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        request_id,
    )
    return response
