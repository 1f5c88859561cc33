import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from projectdeck.services.normalize import (
    as_bool,
    as_string,
    normalize_categories,
    normalize_type,
)

STRING_FIELDS = ("title", "description", "github_link", "site_link", "gemini_link", "vercel_link")


def storage_type(value: Any) -> str:
    """Casing used in the Projects table for a normalized type."""
    return "Pro" if normalize_type(value) == "pro" else "Perso"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeckModel(BaseModel):
    """Base for wire models: camelCase JSON, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TodoItem(DeckModel):
    """One entry of a project's ordered todo list."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    done: bool = False


class LogEntry(DeckModel):
    """A timestamped free-text note."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    date: datetime = Field(default_factory=utcnow)
    content: str = ""


class ProjectFields(DeckModel):
    """Editable fields of a project, normalized on input."""

    title: str = "Nouveau Projet"
    description: str = ""
    type: str = "perso"
    categories: list[str] = Field(default_factory=list)
    favorite: bool = False

    github_link: str = ""
    site_link: str = ""
    gemini_link: str = ""
    vercel_link: str = ""

    logs: list[LogEntry] = Field(default_factory=list)
    todos: list[TodoItem] = Field(default_factory=list)

    @field_validator(*STRING_FIELDS, mode="before")
    @classmethod
    def _coerce_string(cls, value: Any) -> str:
        return as_string(value)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        return normalize_type(value)

    @field_validator("categories", mode="before")
    @classmethod
    def _normalize_categories(cls, value: Any) -> list[str]:
        return normalize_categories(value)

    @field_validator("favorite", mode="before")
    @classmethod
    def _coerce_favorite(cls, value: Any) -> bool:
        return as_bool(value)

    @field_validator("logs", "todos", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []


class ProjectCreate(ProjectFields):
    """Schema for creating a new project (a draft)."""

    def row_values(self) -> dict[str, Any]:
        """Column values for the Projects table."""
        data = self.model_dump(mode="json")
        data["type"] = storage_type(data["type"])
        return data


class ProjectUpdate(ProjectFields):
    """
    Sparse update: only fields explicitly set by the caller are sent.

    ``model_fields_set`` is the source of truth for "is this key present";
    defaults are never mistaken for edits.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    categories: Optional[list[str]] = None
    favorite: Optional[bool] = None

    github_link: Optional[str] = None
    site_link: Optional[str] = None
    gemini_link: Optional[str] = None
    vercel_link: Optional[str] = None

    logs: Optional[list[LogEntry]] = None
    todos: Optional[list[TodoItem]] = None

    @property
    def changed_fields(self) -> set[str]:
        return set(self.model_fields_set)

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def values(self) -> dict[str, Any]:
        """Set fields as attribute values (nested models kept as models)."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def wire(self) -> dict[str, Any]:
        """JSON body for PATCH /projects/{id}."""
        return self.model_dump(mode="json", by_alias=True, include=self.model_fields_set)

    def row_values(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", include=self.model_fields_set)
        if "type" in data:
            data["type"] = storage_type(data["type"])
        return data

    def apply_to(self, project: "ProjectRead") -> "ProjectRead":
        return project.model_copy(update=self.values())


class ProjectRead(ProjectFields):
    """A project as served by the API and held by the client store."""

    id: str
    title: str = "Sans titre"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CombinedTodo(TodoItem):
    """A todo flattened out of its project, for the all-todos view."""
    project_id: str
    project_title: str


class SpeechRequest(DeckModel):
    """Body of POST /tts."""
    text: Any = None
    voice: Optional[str] = None
