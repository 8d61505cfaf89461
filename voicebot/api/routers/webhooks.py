from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Header, Request
from pydantic import BaseModel, ValidationError

from voicebot.core.errors import AuthenticationError, RequestTooLargeError
from voicebot.orchestration.runner import process_update
from voicebot.schemas.telegram import TelegramUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram")

SECRET_TOKEN_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class WebhookAck(BaseModel):
    ok: bool


def _check_secret(expected: str | None, received: str | None) -> None:
    if not expected:
        return
    if not received or not hmac.compare_digest(received, expected):
        raise AuthenticationError("Invalid webhook secret token.")


@router.post("/webhook", response_model=WebhookAck)
async def telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    secret_token: Annotated[str | None, Header(alias=SECRET_TOKEN_HEADER)] = None,
) -> WebhookAck:
    """Acknowledge the update immediately and process it after the response is sent."""
    settings = request.app.state.settings
    _check_secret(settings.webhook_secret, secret_token)

    body = await request.body()
    if settings.max_request_bytes > 0 and len(body) > settings.max_request_bytes:
        raise RequestTooLargeError("Request body too large.")

    try:
        update = TelegramUpdate.model_validate_json(body)
    except ValidationError:
        # Telegram redelivers anything that is not acknowledged.
        logger.warning("skipping malformed update body_bytes=%s", len(body))
        return WebhookAck(ok=True)

    bot = request.app.state.bot
    background_tasks.add_task(process_update, update, bot.pipeline, bot.telegram)
    logger.info("update accepted update_id=%s", update.update_id)
    return WebhookAck(ok=True)
