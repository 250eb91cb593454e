"""Subtitle record: one timed utterance of an episode."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, ValidationInfo, field_validator

from lexispine.records.base import NonBlankStr, RecordModel, Seconds, TrimmedStr

DAY_SECONDS = 86_400

Offset = Annotated[Seconds, Field(ge=0, lt=DAY_SECONDS)]


class TokenList(RecordModel):
    """``tokens_th`` column shape: a non-empty list of trimmed tokens."""

    tokens: list[TrimmedStr] = Field(min_length=1)


class Subtitle(RecordModel):
    """A subtitle line with start/end offsets in seconds."""

    id: NonBlankStr
    thai: NonBlankStr
    start_sec_th: Offset
    end_sec_th: Offset
    tokens_th: TokenList | None = None

    @field_validator("end_sec_th")
    @classmethod
    def _end_after_start(cls, value: float, info: ValidationInfo) -> float:
        start = info.data.get("start_sec_th")
        if start is not None and value <= start:
            raise ValueError("end_sec_th must be greater than start_sec_th")
        return value

    @property
    def is_tokenized(self) -> bool:
        return self.tokens_th is not None

    @property
    def tokens(self) -> list[str]:
        return list(self.tokens_th.tokens) if self.tokens_th else []


__all__ = ["DAY_SECONDS", "TokenList", "Subtitle"]
