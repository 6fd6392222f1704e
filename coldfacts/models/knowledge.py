"""Data models for generation requests and knowledge records."""

from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


TOPIC_SEPARATOR = ", "


class GenerationRequest(BaseModel):
    """One request for knowledge items; built per call and never mutated."""
    model_config = ConfigDict(frozen=True)

    keyword: Optional[str] = None
    item_count: int = Field(..., ge=1)
    topics: Tuple[str, ...] = Field(default=(), max_length=2)

    @property
    def topic_descriptor(self) -> str:
        """Keyword verbatim if supplied, otherwise the sampled topics."""
        if self.keyword:
            return self.keyword
        return TOPIC_SEPARATOR.join(self.topics)

    @property
    def is_random(self) -> bool:
        return not self.keyword


class RawResponse(BaseModel):
    """Opaque text returned by a single backend call."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    grounding_used: bool = False


class KnowledgeItem(BaseModel):
    """A validated knowledge item as produced by the backend.

    Every field must be a non-empty string once surrounding whitespace is
    removed. The wire format uses camelCase keys.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: StrictStr
    category: StrictStr
    content: StrictStr
    why_interesting: StrictStr = Field(..., alias="whyInteresting")
    icebreaker: StrictStr
    quiz: StrictStr
    source_name: StrictStr = Field(..., alias="sourceName")
    source_url: StrictStr = Field(..., alias="sourceUrl")

    @field_validator("*")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be a non-empty string")
        return value


# Wire names of the fields every item must carry, in prompt order
REQUIRED_ITEM_FIELDS: Tuple[str, ...] = tuple(
    field.alias or name for name, field in KnowledgeItem.model_fields.items()
)


class KnowledgeRecord(KnowledgeItem):
    """A knowledge item with a caller-assigned identity."""
    id: StrictStr

    @classmethod
    def from_item(cls, item: KnowledgeItem, record_id: str) -> "KnowledgeRecord":
        return cls(id=record_id, **item.model_dump())

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class TrendingTopics(BaseModel):
    """Trending keywords plus how they were recovered."""
    topics: Tuple[str, ...]
    from_fallback: bool = False
