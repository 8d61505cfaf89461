"""Builds the bot's collaborators from settings, passing credentials explicitly."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from voicebot.core.config import Settings
from voicebot.orchestration.pipeline import UpdatePipeline
from voicebot.services.downloader import MediaFetcher
from voicebot.services.summarizer import SummarizationClient
from voicebot.services.transcriber import TranscriptionClient
from voicebot.services.telegram import TelegramClient

logger = logging.getLogger(__name__)


@dataclass
class Bot:
    telegram: TelegramClient
    pipeline: UpdatePipeline
    download_client: httpx.AsyncClient
    transcriber: TranscriptionClient
    summarizer: SummarizationClient

    async def aclose(self) -> None:
        results = await asyncio.gather(
            self.telegram.aclose(),
            self.download_client.aclose(),
            self.transcriber.aclose(),
            self.summarizer.aclose(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning("error while closing client", exc_info=result)


def build_bot(settings: Settings) -> Bot:
    telegram = TelegramClient(
        settings.telegram_token,
        api_url=settings.telegram_api_url,
        timeout=settings.http_timeout_seconds,
    )
    download_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=True)
    transcriber = TranscriptionClient(
        settings.openai_api_key,
        model=settings.transcription_model,
        base_url=settings.openai_base_url,
        timeout=settings.http_timeout_seconds,
    )
    summarizer = SummarizationClient(
        settings.openai_api_key,
        model=settings.summary_model,
        base_url=settings.openai_base_url,
        timeout=settings.http_timeout_seconds,
    )
    pipeline = UpdatePipeline(
        resolver=telegram,
        fetcher=MediaFetcher(download_client, settings.download_dir),
        transcriber=transcriber,
        summarizer=summarizer,
        stage_timeout_seconds=settings.stage_timeout_seconds,
    )
    return Bot(
        telegram=telegram,
        pipeline=pipeline,
        download_client=download_client,
        transcriber=transcriber,
        summarizer=summarizer,
    )
