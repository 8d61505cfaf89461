"""Subset of the Telegram Bot API objects the bot reads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from voicebot.schemas.events import InboundEvent, OtherMessage, VoiceMessage


class TelegramChat(BaseModel):
    id: int
    type: str | None = None


class TelegramVoice(BaseModel):
    file_id: str
    file_unique_id: str | None = None
    duration: int | None = None
    mime_type: str | None = None
    file_size: int | None = None


class TelegramMessage(BaseModel):
    message_id: int
    chat: TelegramChat
    text: str | None = None
    voice: TelegramVoice | None = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: TelegramMessage | None = None

    def to_event(self) -> InboundEvent | None:
        """Classify the update; updates without a message produce no event."""
        if self.message is None:
            return None
        chat_id = self.message.chat.id
        if self.message.voice is not None:
            return VoiceMessage(chat_id=chat_id, file_id=self.message.voice.file_id)
        return OtherMessage(chat_id=chat_id)


class TelegramFile(BaseModel):
    file_id: str
    file_unique_id: str | None = None
    file_size: int | None = None
    file_path: str | None = None


class TelegramEnvelope(BaseModel):
    """Every Bot API response: {"ok": bool, "result": ..., "description": ...}."""

    ok: bool
    result: Any = None
    description: str | None = None
    error_code: int | None = None
