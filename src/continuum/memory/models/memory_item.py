"""
Memory Item Models

This module defines the core data models for memory records in the Continuum
memory system. ``Memory`` is what the surprise scorer reads; ``TieredMemory``
adds the tier bookkeeping the consolidation engine maintains.

Store documents may use the legacy keys ``_id``, ``cms_level`` and
``surprise_score``; these are accepted as aliases on validation.
"""

from datetime import UTC, datetime
from typing import Any, Dict, List, Mapping, Optional, Set, Type, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import ValidationError


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ConsolidationEvent(BaseModel):
    """A single promotion recorded in a memory's consolidation history."""

    from_tier: MemoryTier = Field(validation_alias=AliasChoices("from_tier", "from_level"))
    to_tier: MemoryTier = Field(validation_alias=AliasChoices("to_tier", "to_level"))
    timestamp: datetime
    score: float = Field(ge=0.0, le=1.0, validation_alias=AliasChoices("score", "surprise_score"))
    reason: str = ""

    @field_validator("from_tier", "to_tier", mode="before")
    @classmethod
    def _parse_tier(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return MemoryTier.from_string(value)
            except ValueError:
                return value
        return value

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Memory(BaseModel):
    """
    A memory as seen by the surprise scorer.

    ``embedding``, ``source`` and ``related_to`` are optional. Every other
    field must be present; a record that lacks one is rejected rather than
    scored with an invented value.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "_id"))
    content: str
    embedding: Optional[List[float]] = None
    tags: Set[str]
    timestamp: datetime
    emotional_valence: float = Field(ge=-1.0, le=1.0)
    emotional_intensity: float = Field(ge=0.0, le=1.0)
    source: Optional[str] = None
    related_to: List[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        # Document stores hand back non-string identifiers (e.g. ObjectId).
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @field_validator("embedding")
    @classmethod
    def _reject_empty_embedding(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is not None and len(value) == 0:
            return None
        return value

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def shares_tag_with(self, other: "Memory") -> bool:
        """Return True when this memory and ``other`` have at least one tag in common."""
        return not self.tags.isdisjoint(other.tags)


class TieredMemory(Memory):
    """
    A memory together with its tier metadata.

    ``consolidation_history`` is append-only and ordered by timestamp; records
    whose history goes backwards in time are rejected.
    """

    tier: MemoryTier = Field(validation_alias=AliasChoices("tier", "cms_level"))
    created_at: datetime
    last_accessed: Optional[datetime] = None
    access_count: int = Field(default=0, ge=0)
    last_surprise_score: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("last_surprise_score", "surprise_score"),
    )
    consolidation_history: List[ConsolidationEvent] = Field(default_factory=list)

    # Provenance written by the store when a memory is moved between tiers
    consolidated_from: Optional[MemoryTier] = None
    consolidated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_creation_time(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if data.get("created_at") is None and data.get("timestamp") is not None:
            data["created_at"] = data["timestamp"]
        elif data.get("timestamp") is None and data.get("created_at") is not None:
            data["timestamp"] = data["created_at"]
        if data.get("consolidation_history") is None:
            data["consolidation_history"] = []
        return data

    @field_validator("tier", "consolidated_from", mode="before")
    @classmethod
    def _parse_tier(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return MemoryTier.from_string(value)
            except ValueError:
                return value
        return value

    @field_validator("created_at", "last_accessed", "consolidated_at")
    @classmethod
    def _normalize_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_history(self) -> "TieredMemory":
        if self.last_accessed is None:
            self.last_accessed = self.created_at

        previous: Optional[datetime] = None
        for event in self.consolidation_history:
            if previous is not None and event.timestamp < previous:
                raise ValueError("consolidation_history must be ordered by timestamp")
            previous = event.timestamp
        return self

    def age_at(self, now: datetime):
        """Return the age of the memory relative to ``now``."""
        return ensure_utc(now) - self.created_at

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible document for storage."""
        document = self.model_dump(mode="json")
        document["tags"] = sorted(self.tags)
        return document


_ModelT = TypeVar("_ModelT", bound=Memory)


def _coerce(value: Any, model: Type[_ModelT]) -> _ModelT:
    if isinstance(value, model):
        return value

    if isinstance(value, BaseModel):
        value = value.model_dump()

    if not isinstance(value, Mapping):
        raise ValidationError(
            f"Expected a {model.__name__} record or mapping, received {type(value).__name__}"
        )

    memory_id = value.get("id", value.get("_id"))
    try:
        return model.model_validate(value)
    except PydanticValidationError as exc:
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        raise ValidationError(
            f"Invalid {model.__name__} record {memory_id!r}: invalid or missing {', '.join(fields)}",
            memory_id=str(memory_id) if memory_id is not None else None,
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc


def coerce_memory(value: Any) -> Memory:
    """Return ``value`` as a :class:`Memory`, raising ``ValidationError`` when malformed."""
    return _coerce(value, Memory)


def coerce_tiered_memory(value: Any) -> TieredMemory:
    """Return ``value`` as a :class:`TieredMemory`, raising ``ValidationError`` when malformed."""
    return _coerce(value, TieredMemory)
