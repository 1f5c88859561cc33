import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_project_id() -> str:
    return uuid.uuid4().hex


class Project(SQLModel, table=True):
    """
    Row of the "Projects" table.

    Stored casing for ``type`` is "Pro" / "Perso"; categories keep the casing
    they were first entered with. Both are normalized on the way out.
    """

    __tablename__ = "projects"

    id: str = Field(default_factory=new_project_id, primary_key=True)
    title: str = Field(default="Nouveau Projet", index=True)
    description: str = Field(default="")
    type: str = Field(default="Perso")
    categories: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    favorite: bool = Field(default=False)

    # Links
    github_link: str = Field(default="")
    site_link: str = Field(default="")
    gemini_link: str = Field(default="")
    vercel_link: str = Field(default="")

    # Free-form notes and todo list, stored as JSON arrays
    logs: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    todos: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
