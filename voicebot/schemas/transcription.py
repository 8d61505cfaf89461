from __future__ import annotations

from typing import Any

from pydantic import BaseModel, model_validator


class TranscriptionResult(BaseModel, frozen=True):
    """Parsed transcription provider body; ``text`` is optional upstream."""

    text: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _match_keys_case_insensitively(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        for key, value in data.items():
            if isinstance(key, str) and key.lower() == "text":
                return {"text": value}
        return {}

    @property
    def has_text(self) -> bool:
        return self.text is not None and bool(self.text.strip())
