"""Parsing of relationship-finder responses.

The finder is asked for a bare JSON object but models sometimes wrap it in
code fences or prose. Parsing strips fences, tries the whole text, then once
more on the span between the first `{` and the last `}`.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.models import Connection
from ..errors import ResponseParseError

_FENCE_OPEN = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


class CandidateConnection(BaseModel):
    """One connection as the finder reports it."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_id: str = Field(alias="from", min_length=1)
    to_id: str = Field(alias="to", min_length=1)
    label: str = ""
    explanation: str = ""
    category: str = Field(default="", alias="type")
    strength: float = 0.0
    surprise: float = 0.0

    @field_validator("from_id", "to_id", "label", "explanation", "category", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("strength", "surprise", mode="before")
    @classmethod
    def _default_score(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    def to_connection(self) -> Connection:
        return Connection(
            from_id=self.from_id,
            to_id=self.to_id,
            label=self.label,
            explanation=self.explanation,
            category=self.category,
            strength=self.strength,
            surprise=self.surprise,
        )


class CandidatePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    connections: List[CandidateConnection] = Field(default_factory=list)

    @field_validator("connections", mode="before")
    @classmethod
    def _null_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v


def strip_code_fences(raw: str) -> str:
    text = raw.strip()
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def extract_json_object(raw: str) -> Any:
    text = strip_code_fences(raw or "")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ResponseParseError("Could not find JSON in finder response", raw=raw)
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in finder response: {e}", raw=raw) from e


def parse_connections_payload(raw: str) -> List[Connection]:
    """Turn raw finder text into candidate connections (layer not yet set)."""
    data = extract_json_object(raw)
    try:
        payload = CandidatePayload.model_validate(data)
    except ValidationError as e:
        raise ResponseParseError(f"Unexpected finder payload: {e.error_count()} error(s)", raw=raw) from e
    return [c.to_connection() for c in payload.connections]
