"""
Filter engine: derive the visible projects from the current selections.

Everything here is pure; the same projects and FilterState always give the
same result, in input order.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from projectdeck.schemas import ProjectRead
from projectdeck.services.normalize import (
    BASE_CATEGORIES,
    PROJECT_TYPES,
    as_string,
    category_key,
    dedupe_normalized,
    normalize_type,
)


def type_key(value) -> str:
    return as_string(value).strip().lower()


@dataclass(frozen=True)
class FilterState:
    """Current filter selections. Keys of ``types``/``categories`` are normalized."""

    types: dict[str, bool] = field(default_factory=dict)
    categories: dict[str, bool] = field(default_factory=dict)
    favorite_only: bool = False
    search: str = ""

    @property
    def active_types(self) -> set[str]:
        return {type_key(name) for name, on in self.types.items() if on and type_key(name) in PROJECT_TYPES}

    @property
    def active_categories(self) -> set[str]:
        return {category_key(name) for name, on in self.categories.items() if on and category_key(name)}

    @property
    def search_term(self) -> str:
        return as_string(self.search).strip().lower()

    @property
    def is_active(self) -> bool:
        return bool(self.active_types or self.active_categories or self.favorite_only or self.search_term)

    def toggle_type(self, name: str) -> "FilterState":
        key = type_key(name)
        return replace(self, types={**self.types, key: not self.types.get(key, False)})

    def toggle_category(self, name: str) -> "FilterState":
        key = category_key(name)
        return replace(self, categories={**self.categories, key: not self.categories.get(key, False)})

    def toggle_favorite_only(self) -> "FilterState":
        return replace(self, favorite_only=not self.favorite_only)

    def with_search(self, search: str) -> "FilterState":
        return replace(self, search=search)

    def cleared(self) -> "FilterState":
        return FilterState()


def matches(project: ProjectRead, state: FilterState) -> bool:
    """True when every active predicate holds for ``project``."""
    types = state.active_types
    if types and normalize_type(project.type) not in types:
        return False

    categories = state.active_categories
    if categories and not any(category_key(c) in categories for c in project.categories or []):
        return False

    if state.favorite_only and project.favorite is not True:
        return False

    term = state.search_term
    if term:
        title = as_string(project.title).lower()
        description = as_string(project.description).lower()
        if term not in title and term not in description:
            return False

    return True


def filter_projects(projects: Sequence[ProjectRead], state: FilterState) -> list[ProjectRead]:
    return [project for project in projects if matches(project, state)]


def sorted_options(values: Iterable[str]) -> list[str]:
    """Deduplicate case-insensitively, sort by normalized form, keep first-seen casing."""
    return sorted(dedupe_normalized(values), key=str.lower)


def available_types(projects: Sequence[ProjectRead]) -> list[str]:
    return sorted_options([*PROJECT_TYPES, *(normalize_type(p.type) for p in projects)])


def available_categories(projects: Sequence[ProjectRead]) -> list[str]:
    return sorted_options([*BASE_CATEGORIES, *(c for p in projects for c in p.categories)])
