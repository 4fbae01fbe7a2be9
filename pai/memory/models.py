"""Data models for memory records and their sibling stores."""

from enum import StrEnum

from pydantic import BaseModel, Field

from pai.clock import now_millis, unique_millis

TITLE_MAX_LENGTH = 50


class MemoryType(StrEnum):
    """Memory record type. Selects the storage partition."""

    WORK = "WORK"
    LEARNING = "LEARNING"
    RELATIONSHIP = "RELATIONSHIP"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: str | None) -> "MemoryType":
        """Map free text onto a type; anything unrecognised is ``general``."""
        if not value:
            return cls.GENERAL
        try:
            return cls(value)
        except ValueError:
            pass
        upper = value.strip().upper()
        for member in cls:
            if member.value.upper() == upper:
                return member
        return cls.GENERAL


def new_memory_id(memory_type: MemoryType) -> str:
    """``<type>-<millis>``, unique within this process."""
    return f"{memory_type.value.lower()}-{unique_millis()}"


class MemoryItem(BaseModel):
    """A remembered fact or note."""

    id: str
    title: str
    content: str
    memory_type: MemoryType = MemoryType.GENERAL
    timestamp: int = Field(default_factory=now_millis)  # milliseconds
    tags: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    confidence: float = 1.0

    @classmethod
    def create(
        cls,
        title: str,
        content: str,
        memory_type: MemoryType = MemoryType.GENERAL,
        *,
        tags: list[str] | None = None,
        entities: list[str] | None = None,
        confidence: float = 1.0,
    ) -> "MemoryItem":
        """Build a new record with a fresh id and a display-length title."""
        return cls(
            id=new_memory_id(memory_type),
            title=title.strip()[:TITLE_MAX_LENGTH],
            content=content,
            memory_type=memory_type,
            tags=tags or [],
            entities=entities or [],
            confidence=confidence,
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.title.strip()) and bool(self.content.strip())


class RelationshipNote(BaseModel):
    """A dated note about a person or organisation."""

    note_type: str
    entity: str
    content: str
    timestamp: int = 0  # seconds


class WorkItem(BaseModel):
    """A tracked unit of work with its own directory."""

    id: str
    title: str
    description: str = ""
    status: str = "active"
    created_at: int = 0  # seconds
    completed_at: int | None = None


class Prd(BaseModel):
    """A product requirements document. Free-form Markdown."""

    id: str
    content: str
