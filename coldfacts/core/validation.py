"""Shape validation for decoded backend documents."""

import logging
import re
from typing import Any, List, Tuple

from pydantic import ValidationError

from .errors import ShapeError
from ..models.knowledge import KnowledgeItem, REQUIRED_ITEM_FIELDS

logger = logging.getLogger(__name__)

KNOWLEDGE_FIELD = "knowledge"
TOPICS_FIELD = "topics"

_LIST_MARKER_RE = re.compile(r"^[\d.\-*]+\s*")


def _require_list(decoded: Any, field: str) -> list:
    if not isinstance(decoded, dict):
        raise ShapeError(
            f"Expected a JSON object with a '{field}' list, got {type(decoded).__name__}",
            field=field)
    items = decoded.get(field)
    if not isinstance(items, list):
        raise ShapeError(f"Missing '{field}' list", field=field)
    if not items:
        raise ShapeError(f"'{field}' list is empty", field=field)
    return items


def _first_bad_field(element: dict) -> str:
    """Wire name of the first required field that is missing, non-string or blank."""
    for name in REQUIRED_ITEM_FIELDS:
        value = element.get(name)
        if not isinstance(value, str) or not value.strip():
            return name
    return ""


def validate_knowledge(decoded: Any, field: str = KNOWLEDGE_FIELD) -> List[KnowledgeItem]:
    """Validate a decoded batch; one malformed element rejects the whole batch."""
    items = _require_list(decoded, field)
    validated: List[KnowledgeItem] = []
    for index, element in enumerate(items):
        if not isinstance(element, dict):
            raise ShapeError(
                f"Item {index} is not an object", index=index)
        bad_field = _first_bad_field(element)
        if bad_field:
            raise ShapeError(
                f"Item {index} is missing or has an empty '{bad_field}' field",
                index=index, field=bad_field)
        try:
            validated.append(KnowledgeItem.model_validate(element))
        except ValidationError as e:
            raise ShapeError(f"Item {index} is invalid: {e}", index=index) from e
    logger.debug(f"Validated {len(validated)} knowledge items")
    return validated


def validate_topics(decoded: Any, limit: int = 10) -> Tuple[str, ...]:
    """Non-empty topic strings from a decoded trending document."""
    items = _require_list(decoded, TOPICS_FIELD)
    topics = tuple(t.strip() for t in items if isinstance(t, str) and t.strip())
    if not topics:
        raise ShapeError("No usable entries in 'topics'", field=TOPICS_FIELD)
    return topics[:limit]


def fallback_topics_from_text(text: str, limit: int = 5) -> Tuple[str, ...]:
    """Best-effort topics from plain text: one per line, list markers stripped."""
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    topics = []
    for line in lines[:limit]:
        topic = _LIST_MARKER_RE.sub("", line).strip()
        if topic:
            topics.append(topic)
    return tuple(topics)
