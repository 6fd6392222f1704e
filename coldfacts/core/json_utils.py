"""Shared JSON recovery utilities for LLM outputs.

``decode`` runs an ordered list of transform-then-parse stages, each one more
aggressive than the last, and returns a tagged outcome instead of raising.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Union
import json
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_EXCERPT_CHARS = 500

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+\-]*[ \t]*")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


@dataclass(frozen=True)
class Decoded:
    value: Any
    stage: str = "direct"

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    reason: str
    raw_text_excerpt: str = ""

    @property
    def ok(self) -> bool:
        return False


DecodeOutcome = Union[Decoded, Failed]


def strip_code_fences(text: str) -> str:
    """Remove every ``` marker (and its language tag) and trim whitespace."""
    if not text:
        return ""
    return _FENCE_RE.sub("", text).strip()


def extract_braced_span(text: str) -> Optional[str]:
    """Text from the first '{' to the last '}', or None if there is no such span."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def convert_single_quotes(text: str) -> str:
    """Rewrite single-quoted strings as double-quoted ones.

    Apostrophes inside double-quoted strings are left alone; double quotes
    inside a converted string are escaped.
    """
    out = []
    in_double = False
    in_single = False
    escape = False
    for ch in text:
        if in_double:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_double = False
            continue
        if in_single:
            if escape:
                escape = False
                # \' needs no escaping once the delimiter is a double quote
                out.append(ch if ch == "'" else "\\" + ch)
            elif ch == "\\":
                escape = True
            elif ch == "'":
                in_single = False
                out.append('"')
            elif ch == '"':
                out.append('\\"')
            else:
                out.append(ch)
            continue
        if ch == '"':
            in_double = True
            out.append(ch)
        elif ch == "'":
            in_single = True
            out.append('"')
        else:
            out.append(ch)
    return "".join(out)


def repair_json_text(text: str) -> str:
    return convert_single_quotes(remove_trailing_commas(text))


def _parse(text: Optional[str]) -> Tuple[bool, Any]:
    if not text:
        return False, None
    try:
        return True, json.loads(text)
    except (ValueError, RecursionError):
        return False, None


def _direct(normalized: str) -> Optional[str]:
    return normalized


def _bracket(normalized: str) -> Optional[str]:
    return extract_braced_span(normalized)


def _repair(normalized: str) -> Optional[str]:
    span = extract_braced_span(normalized)
    return repair_json_text(span) if span else None


# Ordered cheapest and safest first
STAGES: Tuple[Tuple[str, Callable[[str], Optional[str]]], ...] = (
    ("direct", _direct),
    ("bracket", _bracket),
    ("repair", _repair),
)


def excerpt(text: Optional[str], limit: int = DEFAULT_EXCERPT_CHARS) -> str:
    return (text or "")[:limit]


def decode(raw_text: Optional[str], excerpt_chars: int = DEFAULT_EXCERPT_CHARS) -> DecodeOutcome:
    """Recover a JSON document from degraded backend text. Never raises."""
    normalized = strip_code_fences(raw_text or "")
    for name, transform in STAGES:
        ok, value = _parse(transform(normalized))
        if ok:
            logger.debug(f"Decoded backend text at stage '{name}'")
            return Decoded(value=value, stage=name)
    return Failed(reason="unparseable", raw_text_excerpt=excerpt(raw_text, excerpt_chars))
