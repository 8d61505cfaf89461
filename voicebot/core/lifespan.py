from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from voicebot.core.dependencies import build_bot
from voicebot.services.telegram import TelegramError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Build the bot for webhook mode and register the webhook when WEBHOOK_URL is set.

    A bot injected through ``create_app`` is used as-is and left open on shutdown.
    """
    settings = app.state.settings
    owns_bot = getattr(app.state, "bot", None) is None
    if owns_bot:
        app.state.bot = build_bot(settings)
    bot = app.state.bot

    if settings.webhook_url:
        try:
            await bot.telegram.set_webhook(settings.webhook_url, settings.webhook_secret)
        except TelegramError as exc:
            logger.error("webhook registration failed error=%s", exc.detail)

    try:
        yield
    finally:
        if owns_bot:
            logger.info("closing bot clients")
            await bot.aclose()
