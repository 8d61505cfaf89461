from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class VoiceMessage(BaseModel, frozen=True):
    """A chat message carrying a voice attachment."""

    kind: Literal["voice"] = "voice"
    chat_id: int
    file_id: str


class OtherMessage(BaseModel, frozen=True):
    """Any chat message without a voice attachment."""

    kind: Literal["other"] = "other"
    chat_id: int


InboundEvent = Annotated[VoiceMessage | OtherMessage, Field(discriminator="kind")]


class OutboundMessage(BaseModel, frozen=True):
    chat_id: int
    text: str
