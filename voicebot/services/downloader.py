from __future__ import annotations

import asyncio
import logging
import os
import pathlib
import uuid
from dataclasses import dataclass

import httpx

from voicebot.core.constants import AUDIO_FILE_PREFIX, AUDIO_FILE_SUFFIX, PARTIAL_FILE_SUFFIX
from voicebot.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_BYTES = 64 * 1024


class DownloadError(ExternalServiceError):
    pass


@dataclass(frozen=True)
class AudioHandle:
    """A downloaded audio file owned by a single update."""

    path: pathlib.Path


def _remove_quietly(path: pathlib.Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("could not remove partial download path=%s", path, exc_info=True)


class MediaFetcher:
    """Downloads remote audio into uniquely named files under ``output_dir``."""

    def __init__(self, client: httpx.AsyncClient, output_dir: str | pathlib.Path) -> None:
        self._client = client
        self._output_dir = pathlib.Path(output_dir)

    async def fetch(self, url: str) -> AudioHandle:
        """
        Stream ``url`` to ``audio_<uuid>.ogg``.

        The body is written to a ``.part`` sibling first and renamed once complete,
        so the final path either holds the whole file or does not exist.
        """
        file_id = uuid.uuid4().hex
        final_path = self._output_dir / f"{AUDIO_FILE_PREFIX}{file_id}{AUDIO_FILE_SUFFIX}"
        partial_path = final_path.with_name(final_path.name + PARTIAL_FILE_SUFFIX)

        try:
            await asyncio.to_thread(self._output_dir.mkdir, parents=True, exist_ok=True)
            async with self._client.stream("GET", url) as response:
                response.raise_for_status()
                audio_file = await asyncio.to_thread(open, partial_path, "wb")
                try:
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_BYTES):
                        await asyncio.to_thread(audio_file.write, chunk)
                finally:
                    await asyncio.to_thread(audio_file.close)
            await asyncio.to_thread(os.replace, partial_path, final_path)
        except httpx.HTTPStatusError as exc:
            _remove_quietly(partial_path)
            raise DownloadError(f"Audio download failed (status_code={exc.response.status_code}).") from exc
        except httpx.HTTPError as exc:
            _remove_quietly(partial_path)
            raise DownloadError(f"Audio download failed ({type(exc).__name__}).") from exc
        except OSError as exc:
            _remove_quietly(partial_path)
            raise DownloadError("Could not write the downloaded audio to disk.") from exc
        except BaseException:
            _remove_quietly(partial_path)
            raise

        logger.info("audio downloaded path=%s", final_path.name)
        return AudioHandle(path=final_path)

    def delete(self, handle: AudioHandle) -> bool:
        """Best-effort removal. Returns False when the file could not be removed."""
        try:
            handle.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("could not delete audio file path=%s", handle.path, exc_info=True)
            return False
        return True
