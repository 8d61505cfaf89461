from __future__ import annotations

import logging

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI
from pydantic import ValidationError

from voicebot.core.errors import ConfigurationError, ExternalServiceError
from voicebot.schemas.transcription import TranscriptionResult
from voicebot.services.downloader import AudioHandle

logger = logging.getLogger(__name__)

# Default Whisper model for transcription
TRANSCRIPTION_MODEL = "whisper-1"


class TranscriptionError(ExternalServiceError):
    pass


def parse_transcription_body(body: str) -> TranscriptionResult:
    try:
        return TranscriptionResult.model_validate_json(body)
    except ValidationError as exc:
        raise TranscriptionError("Failed to parse transcription response.") from exc


class TranscriptionClient:
    """Uploads audio files to the Whisper transcription endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = TRANSCRIPTION_MODEL,
        base_url: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY.")

        self._model = model
        # Retries are disabled: a failed call is reported to the user once.
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def transcribe(self, handle: AudioHandle) -> TranscriptionResult:
        try:
            response = await self._client.audio.transcriptions.with_raw_response.create(
                model=self._model,
                file=handle.path,
            )
        except APIStatusError as exc:
            raise TranscriptionError(
                f"Transcription request failed (status_code={exc.status_code}, request_id={exc.request_id})."
            ) from exc
        except APIError as exc:
            raise TranscriptionError(f"Transcription request failed ({type(exc).__name__}).") from exc
        except OSError as exc:
            raise TranscriptionError("Could not read the audio file.") from exc

        result = parse_transcription_body(response.http_response.text)
        logger.info("transcription received model=%s chars=%s", self._model, len(result.text or ""))
        return result

    async def aclose(self) -> None:
        await self._client.close()
