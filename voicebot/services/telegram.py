from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from voicebot.core.errors import ConfigurationError, ExternalServiceError
from voicebot.schemas.telegram import TelegramEnvelope, TelegramFile, TelegramUpdate

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"

# Long polls hold the connection open; leave headroom over the poll timeout.
POLL_READ_MARGIN_SECONDS = 10.0


class TelegramError(ExternalServiceError):
    pass


class TelegramClient:
    """
    Minimal Telegram Bot API client.

    All methods go through ``_call`` which unwraps the ``{"ok": ..., "result": ...}``
    envelope. The bot token is part of every URL, so URLs are never logged.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = TELEGRAM_API_URL,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ConfigurationError("Missing TELEGRAM_TOKEN.")

        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    def _method_url(self, method: str) -> str:
        return f"{self._api_url}/bot{self._token}/{method}"

    def file_url(self, file_path: str) -> str:
        return f"{self._api_url}/file/bot{self._token}/{file_path.lstrip('/')}"

    async def _call(self, method: str, payload: dict[str, Any] | None = None, *, timeout: float | None = None) -> Any:
        try:
            response = await self._client.post(
                self._method_url(method),
                json=payload or {},
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TelegramError(f"Telegram {method} failed ({type(exc).__name__}).") from exc

        try:
            envelope = TelegramEnvelope.model_validate_json(response.content)
        except ValidationError as exc:
            raise TelegramError(
                f"Telegram {method} returned an unreadable response (status_code={response.status_code})."
            ) from exc

        if not envelope.ok:
            raise TelegramError(
                f"Telegram {method} failed (error_code={envelope.error_code}, description={envelope.description})."
            )
        return envelope.result

    async def get_updates(
        self,
        offset: int | None = None,
        timeout: int = 30,
        limit: int | None = None,
    ) -> list[TelegramUpdate]:
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        if limit is not None:
            payload["limit"] = max(1, min(limit, 100))
        result = await self._call("getUpdates", payload, timeout=timeout + POLL_READ_MARGIN_SECONDS)
        if not isinstance(result, list):
            raise TelegramError("Telegram getUpdates returned a non-list result.")

        updates: list[TelegramUpdate] = []
        for raw_update in result:
            try:
                updates.append(TelegramUpdate.model_validate(raw_update))
            except ValidationError:
                update_id = raw_update.get("update_id") if isinstance(raw_update, dict) else None
                logger.warning("skipping malformed update update_id=%s", update_id)
                if isinstance(update_id, int):
                    # Keep the offset moving past updates we cannot read.
                    updates.append(TelegramUpdate(update_id=update_id))
        return updates

    async def get_file(self, file_id: str) -> TelegramFile:
        result = await self._call("getFile", {"file_id": file_id})
        try:
            return TelegramFile.model_validate(result)
        except ValidationError as exc:
            raise TelegramError("Telegram getFile returned an unexpected result.") from exc

    async def resolve_file_url(self, file_id: str) -> str:
        """Turn a message's file_id into a downloadable URL."""
        telegram_file = await self.get_file(file_id)
        if not telegram_file.file_path:
            raise TelegramError("Telegram getFile returned no file_path.")
        return self.file_url(telegram_file.file_path)

    async def send_message(self, chat_id: int, text: str) -> None:
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})
        logger.debug("message sent chat_id=%s chars=%s", chat_id, len(text))

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        await self._call("setWebhook", payload)
        logger.info("webhook registered")

    async def delete_webhook(self) -> None:
        await self._call("deleteWebhook", {})
        logger.info("webhook removed")

    async def aclose(self) -> None:
        await self._client.aclose()
