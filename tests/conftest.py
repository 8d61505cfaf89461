from __future__ import annotations

import asyncio
import pathlib
from collections.abc import Callable
from typing import Any

import pytest

from voicebot.core.config import Settings
from voicebot.schemas.transcription import TranscriptionResult
from voicebot.services.downloader import AudioHandle
from voicebot.services.summarizer import SummaryResult


def run(coro):  # noqa: ANN001
    return asyncio.run(coro)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "TELEGRAM_TOKEN": "123:abc",
        "OPENAI_API_KEY": "sk-test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


class FakeResolver:
    def __init__(self, url: str = "https://files.example/voice.ogg", error: Exception | None = None) -> None:
        self.url = url
        self.error = error
        self.calls: list[str] = []

    async def resolve_file_url(self, file_id: str) -> str:
        self.calls.append(file_id)
        if self.error is not None:
            raise self.error
        return self.url


class FakeFetcher:
    """Writes a real file so cleanup can be observed on disk."""

    def __init__(self, directory: pathlib.Path, error: Exception | None = None) -> None:
        self.directory = directory
        self.error = error
        self.fetched: list[str] = []
        self.deleted: list[pathlib.Path] = []
        self.handles: list[AudioHandle] = []

    async def fetch(self, url: str) -> AudioHandle:
        self.fetched.append(url)
        if self.error is not None:
            raise self.error
        path = self.directory / f"audio_{len(self.handles)}.ogg"
        path.write_bytes(b"OggS fake audio")
        handle = AudioHandle(path=path)
        self.handles.append(handle)
        return handle

    def delete(self, handle: AudioHandle) -> bool:
        self.deleted.append(handle.path)
        handle.path.unlink(missing_ok=True)
        return True


class FakeTranscriber:
    def __init__(
        self,
        text: str | None = "Hola mundo",
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: list[AudioHandle] = []

    async def transcribe(self, handle: AudioHandle) -> TranscriptionResult:
        self.calls.append(handle)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return TranscriptionResult(text=self.text)


class FakeSummarizer:
    def __init__(
        self,
        result: SummaryResult | None = None,
        error: Exception | None = None,
        on_call: Callable[[str], None] | None = None,
    ) -> None:
        self.result = result or SummaryResult(text="Un saludo al mundo.")
        self.error = error
        self.on_call = on_call
        self.calls: list[str] = []

    async def summarize(self, text: str) -> SummaryResult:
        self.calls.append(text)
        if self.on_call is not None:
            self.on_call(text)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def audio_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    directory = tmp_path / "audio"
    directory.mkdir()
    return directory
