from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from voicebot.api.router import router
from voicebot.core.config import Settings, get_settings
from voicebot.core.dependencies import Bot
from voicebot.core.errors import AppError
from voicebot.core.handlers import handle_app_error, handle_validation_error
from voicebot.core.lifespan import lifespan
from voicebot.core.logging import setup_logging
from voicebot.core.middleware import log_requests


def create_app(settings: Settings | None = None, bot: Bot | None = None) -> FastAPI:
    """
    Application factory for webhook mode.

    Args:
        settings: Optional settings override. If None, loads .env and the environment
                  and configures logging.
        bot: Optional pre-built bot. Useful for testing with fake collaborators.

    Run with ``uvicorn voicebot.api.app:create_app --factory``.
    """
    if settings is None:
        load_dotenv()
        setup_logging()
        settings = get_settings()

    app = FastAPI(title="voicebot", lifespan=lifespan)
    app.include_router(router)
    app.state.settings = settings
    app.state.bot = bot

    app.add_middleware(BaseHTTPMiddleware, dispatch=log_requests)
    app.add_exception_handler(AppError, handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]

    return app
