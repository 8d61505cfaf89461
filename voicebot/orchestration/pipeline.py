from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from voicebot.core.constants import (
    DOWNLOAD_FAILED_MESSAGE,
    SEND_VOICE_PROMPT,
    SUMMARY_FALLBACK_MESSAGE,
    SUMMARY_REPLY_PREFIX,
    TRANSCRIPTION_FAILED_MESSAGE,
    TRANSCRIPTION_REPLY_PREFIX,
)
from voicebot.core.errors import AppError
from voicebot.core.logging import log_context
from voicebot.schemas.events import InboundEvent, OutboundMessage, VoiceMessage
from voicebot.schemas.transcription import TranscriptionResult
from voicebot.services.downloader import AudioHandle
from voicebot.services.summarizer import SummaryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

ReplyCallback = Callable[[OutboundMessage], Awaitable[None]]


class FileResolver(Protocol):
    async def resolve_file_url(self, file_id: str) -> str: ...


class AudioFetcher(Protocol):
    async def fetch(self, url: str) -> AudioHandle: ...

    def delete(self, handle: AudioHandle) -> bool: ...


class Transcriber(Protocol):
    async def transcribe(self, handle: AudioHandle) -> TranscriptionResult: ...


class Summarizer(Protocol):
    async def summarize(self, text: str) -> SummaryResult: ...


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, AppError):
        return exc.detail
    if isinstance(exc, TimeoutError):
        return "stage timed out"
    return type(exc).__name__


def _log_step(label: str, *, duration_ms: float, **fields: object) -> None:
    field_text = " ".join(f"{key}={value}" for key, value in fields.items())
    if field_text:
        logger.info("%s %.2fms %s", label, duration_ms, field_text)
    else:
        logger.info("%s %.2fms", label, duration_ms)


class UpdatePipeline:
    """
    Turns one inbound event into the replies for its chat.

    Voice messages go through download, transcription and summarization.
    Every failure becomes a fixed user-facing reply; ``handle`` only lets task
    cancellation escape, and the downloaded audio file is removed on every
    exit path once it exists.
    """

    def __init__(
        self,
        *,
        resolver: FileResolver,
        fetcher: AudioFetcher,
        transcriber: Transcriber,
        summarizer: Summarizer,
        stage_timeout_seconds: float | None = None,
    ) -> None:
        self._resolver = resolver
        self._fetcher = fetcher
        self._transcriber = transcriber
        self._summarizer = summarizer
        self._stage_timeout_seconds = stage_timeout_seconds

    async def handle(self, event: InboundEvent, on_reply: ReplyCallback | None = None) -> list[OutboundMessage]:
        replies: list[OutboundMessage] = []

        async def emit(text: str) -> None:
            message = OutboundMessage(chat_id=event.chat_id, text=text)
            replies.append(message)
            if on_reply is None:
                return
            try:
                await on_reply(message)
            except Exception:
                logger.exception("reply delivery failed")

        with log_context(chat_id=event.chat_id):
            if not isinstance(event, VoiceMessage):
                logger.info("non-voice message, prompting for audio")
                await emit(SEND_VOICE_PROMPT)
                return replies

            logger.info("voice message received")
            await self._handle_voice(event, emit)
        return replies

    async def _run_stage(self, label: str, operation: Awaitable[T]) -> T:
        start = time.perf_counter()
        async with asyncio.timeout(self._stage_timeout_seconds):
            result = await operation
        _log_step(label, duration_ms=(time.perf_counter() - start) * 1000)
        return result

    async def _handle_voice(self, event: VoiceMessage, emit: Callable[[str], Awaitable[None]]) -> None:
        try:
            url = await self._run_stage("resolve_file", self._resolver.resolve_file_url(event.file_id))
            handle = await self._run_stage("download_audio", self._fetcher.fetch(url))
        except Exception as exc:
            logger.warning("audio download failed error=%s", _describe_error(exc))
            await emit(DOWNLOAD_FAILED_MESSAGE)
            return

        try:
            transcription = await self._transcribe(handle)
            if not transcription.has_text:
                await emit(TRANSCRIPTION_FAILED_MESSAGE)
                return

            transcript = transcription.text or ""
            await emit(f"{TRANSCRIPTION_REPLY_PREFIX}{transcript}")

            summary = await self._summarize(transcript)
            await emit(f"{SUMMARY_REPLY_PREFIX}{summary.text if summary.ok else SUMMARY_FALLBACK_MESSAGE}")
        finally:
            self._fetcher.delete(handle)

    async def _transcribe(self, handle: AudioHandle) -> TranscriptionResult:
        try:
            return await self._run_stage("transcribe_audio", self._transcriber.transcribe(handle))
        except Exception as exc:
            logger.warning("transcription unavailable error=%s", _describe_error(exc))
            return TranscriptionResult()

    async def _summarize(self, text: str) -> SummaryResult:
        try:
            summary = await self._run_stage("summarize_transcript", self._summarizer.summarize(text))
        except Exception as exc:
            logger.warning("summary degraded error=%s", _describe_error(exc))
            return SummaryResult.degraded(_describe_error(exc))
        if not summary.ok and summary.error is not None:
            logger.warning("summary degraded error=%s", summary.error.detail)
        return summary
