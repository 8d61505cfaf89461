"""Voice update through the real clients, with every remote endpoint served by httpx.MockTransport."""

from __future__ import annotations

import json
import pathlib

import httpx
from conftest import run

from voicebot.orchestration.pipeline import UpdatePipeline
from voicebot.orchestration.runner import process_update
from voicebot.schemas.telegram import TelegramUpdate
from voicebot.services.downloader import MediaFetcher
from voicebot.services.summarizer import SummarizationClient
from voicebot.services.telegram import TelegramClient
from voicebot.services.transcriber import TranscriptionClient

TOKEN = "123:abc"

VOICE_UPDATE = TelegramUpdate.model_validate(
    {
        "update_id": 1,
        "message": {"message_id": 1, "chat": {"id": 555}, "voice": {"file_id": "AwACAgE", "duration": 3}},
    }
)


class FakeRemote:
    """Plays Telegram, the file host and the OpenAI API."""

    def __init__(self, transcription: dict[str, object], summary_status: int = 200) -> None:
        self.transcription = transcription
        self.summary_status = summary_status
        self.sent: list[tuple[int, str]] = []
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.paths.append(path)
        if path == f"/bot{TOKEN}/getFile":
            return httpx.Response(200, json={"ok": True, "result": {"file_id": "AwACAgE", "file_path": "voice/f.oga"}})
        if path == f"/bot{TOKEN}/sendMessage":
            body = json.loads(request.content)
            self.sent.append((body["chat_id"], body["text"]))
            return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.sent)}})
        if path == f"/file/bot{TOKEN}/voice/f.oga":
            return httpx.Response(200, content=b"OggS three second clip")
        if path == "/v1/audio/transcriptions":
            return httpx.Response(200, json=self.transcription)
        if path == "/v1/chat/completions":
            if self.summary_status != 200:
                return httpx.Response(self.summary_status, json={"error": {"message": "upstream"}})
            return httpx.Response(
                200,
                json={
                    "id": "chatcmpl-1",
                    "object": "chat.completion",
                    "created": 0,
                    "model": "gpt-3.5-turbo",
                    "choices": [
                        {
                            "index": 0,
                            "message": {"role": "assistant", "content": "Un saludo al mundo."},
                            "finish_reason": "stop",
                        }
                    ],
                },
            )
        return httpx.Response(404)


async def _deliver(remote: FakeRemote, audio_dir: pathlib.Path) -> None:
    def http_client() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(remote))

    telegram = TelegramClient(TOKEN, http_client=http_client())
    download_client = http_client()
    transcriber = TranscriptionClient("sk-test", base_url="https://api.openai.test/v1", http_client=http_client())
    summarizer = SummarizationClient("sk-test", base_url="https://api.openai.test/v1", http_client=http_client())
    pipeline = UpdatePipeline(
        resolver=telegram,
        fetcher=MediaFetcher(download_client, audio_dir),
        transcriber=transcriber,
        summarizer=summarizer,
        stage_timeout_seconds=5.0,
    )
    try:
        await process_update(VOICE_UPDATE, pipeline, telegram)
    finally:
        await telegram.aclose()
        await download_client.aclose()
        await transcriber.aclose()
        await summarizer.aclose()


def test_voice_clip_is_transcribed_and_summarized(audio_dir: pathlib.Path) -> None:
    remote = FakeRemote({"text": "Hola mundo"})

    run(_deliver(remote, audio_dir))

    assert remote.sent == [
        (555, "Transcripcion:\n\nHola mundo"),
        (555, "Resumen:\n\nUn saludo al mundo."),
    ]
    assert list(audio_dir.iterdir()) == []


def test_empty_transcription_skips_summarization(audio_dir: pathlib.Path) -> None:
    remote = FakeRemote({"text": ""})

    run(_deliver(remote, audio_dir))

    assert remote.sent == [(555, "The audio could not be transcribed properly.")]
    assert "/v1/chat/completions" not in remote.paths
    assert list(audio_dir.iterdir()) == []


def test_summarization_server_error_sends_fallback(audio_dir: pathlib.Path) -> None:
    remote = FakeRemote({"text": "Hola mundo"}, summary_status=500)

    run(_deliver(remote, audio_dir))

    assert remote.sent[1] == (555, "Resumen:\n\nUnable to generate summary.")
    assert list(audio_dir.iterdir()) == []
