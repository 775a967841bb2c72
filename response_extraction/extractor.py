"""Recover one structured record from free-form model output.

Model replies are expected to carry a single JSON record but the wrapping
varies: a fenced ```json block, a bare object embedded in prose, or a
record with small syntax slips such as trailing commas. ``extract`` tries a
fixed sequence of strategies and reports which one succeeded. Failing to
find a record is an ordinary outcome: ``parsed`` is ``None`` and the raw
text is kept for display and audit.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

Strategy = Literal["fenced", "braces"]

_FENCE_RE = re.compile(r"```json[ \t]*\r?\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

_PAIRS = {"{": "}", "[": "]"}


class Extraction(BaseModel):  # Outcome of one extraction attempt
    parsed: Optional[Union[Dict[str, Any], List[Any]]] = None
    raw: str = ""
    strategy: Optional[Strategy] = None
    normalized: bool = False

    @property
    def ok(self) -> bool:
        return self.parsed is not None


def normalize(text: str) -> str:
    """Strip control characters, collapse whitespace and drop trailing commas."""

    text = _CONTROL_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _well_formed(span: str) -> bool:
    span = span.strip()
    if len(span) < 2:
        return False
    closing = _PAIRS.get(span[0])
    return closing is not None and span[-1] == closing


def _loads(span: str) -> Optional[Union[Dict[str, Any], List[Any]]]:
    if not _well_formed(span):
        return None
    try:
        value = json.loads(span)
    except json.JSONDecodeError:
        return None
    if isinstance(value, (dict, list)):
        return value
    return None


def _decode(span: str) -> Tuple[Optional[Union[Dict[str, Any], List[Any]]], bool]:
    """Decode ``span``, retrying exactly once after normalization."""

    value = _loads(span)
    if value is not None:
        return value, False
    if not _well_formed(span):
        return None, False
    value = _loads(normalize(span))
    return value, value is not None


def _fenced_block(text: str) -> Optional[str]:
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else None


def _bracket_span(text: str, opening: str) -> Optional[str]:
    start = text.find(opening)
    end = text.rfind(_PAIRS[opening])
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _bracket_spans(text: str) -> Iterable[str]:
    # First "{" to last "}", then first "[" to last "]".
    for opening in ("{", "["):
        span = _bracket_span(text, opening)
        if span is not None:
            yield span


def extract(raw: Optional[str]) -> Extraction:
    """Return the structured record embedded in ``raw``; never raises."""

    text = raw if isinstance(raw, str) else ""
    if not text.strip():
        return Extraction(raw=text)

    fenced = _fenced_block(text)
    if fenced is not None:
        value, normalized = _decode(fenced)
        if value is not None:
            return Extraction(parsed=value, raw=text, strategy="fenced", normalized=normalized)

    for span in _bracket_spans(text):
        value, normalized = _decode(span)
        if value is not None:
            return Extraction(parsed=value, raw=text, strategy="braces", normalized=normalized)

    return Extraction(raw=text)


T = TypeVar("T")


def validate_shape(
    extraction: Extraction,
    schema: Union[Type[T], TypeAdapter],
    *,
    keys: Iterable[str] = (),
) -> Optional[T]:
    """Validate the parsed record against ``schema`` (a model class, a type or a ``TypeAdapter``).

    When the record is an object holding one of ``keys`` the value under
    the first such key is validated instead, which lets callers accept both
    ``{"summary": {...}}`` and the bare summary.
    """

    data: Any = extraction.parsed
    if data is None:
        return None
    if isinstance(data, dict):
        for key in keys:
            if key in data:
                data = data[key]
                break
    adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        logger.warning("Extracted record does not match %s: %s", exc.title, exc.errors()[:3])
        return None


__all__ = ["Extraction", "extract", "normalize", "validate_shape"]
