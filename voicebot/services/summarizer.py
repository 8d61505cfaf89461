from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI

from voicebot.core.constants import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE
from voicebot.core.errors import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

# Default chat model for summarization
SUMMARY_MODEL = "gpt-3.5-turbo"
SUMMARY_MAX_TOKENS = 150
SUMMARY_TEMPERATURE = 0.7


class SummarizationError(ExternalServiceError):
    pass


@dataclass(frozen=True)
class SummaryResult:
    """Outcome of a summarization call; ``text`` is None when the call degraded."""

    text: str | None = None
    error: SummarizationError | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def degraded(cls, detail: str) -> SummaryResult:
        return cls(text=None, error=SummarizationError(detail))


def build_messages(text: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(text=text)},
    ]


def _extract_content(response: Any) -> str | None:
    try:
        content: Any = response.choices[0].message.content if response.choices else None
    except (AttributeError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()


class SummarizationClient:
    """
    Condenses transcripts with a chat-completion model.

    ``summarize`` never raises: transport failures, error statuses and
    malformed bodies all come back as a degraded ``SummaryResult`` so callers
    decide what fallback text to show.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = SUMMARY_MODEL,
        base_url: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY.")

        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def summarize(self, text: str) -> SummaryResult:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=build_messages(text),  # type: ignore[arg-type]
                max_tokens=SUMMARY_MAX_TOKENS,
                temperature=SUMMARY_TEMPERATURE,
            )
        except APIStatusError as exc:
            logger.warning("summary request failed status_code=%s request_id=%s", exc.status_code, exc.request_id)
            return SummaryResult.degraded(f"Summary request failed (status_code={exc.status_code}).")
        except APIError as exc:
            logger.warning("summary request failed error=%s", type(exc).__name__)
            return SummaryResult.degraded(f"Summary request failed ({type(exc).__name__}).")
        except ValueError:
            # Body with a JSON content type that does not decode.
            logger.warning("summary response could not be decoded", exc_info=True)
            return SummaryResult.degraded("Summary response could not be decoded.")

        content = _extract_content(response)
        if content is None:
            logger.warning("summary response had no usable content model=%s", self._model)
            return SummaryResult.degraded("Empty summary response.")

        logger.info("summary received model=%s chars=%s", self._model, len(content))
        return SummaryResult(text=content)

    async def aclose(self) -> None:
        await self._client.close()
