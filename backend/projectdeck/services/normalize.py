"""
Field normalization shared by the server and the client core.

Every value crossing a boundary (database row -> API, API body -> database,
API JSON -> client Project) goes through the same function for its field,
so type and category casing never drifts between read and write paths.
"""

from typing import Any, Iterable

PROJECT_TYPES = ("pro", "perso")
DEFAULT_PROJECT_TYPE = "perso"
BASE_CATEGORIES = ("formation", "appartement")

PLACEHOLDER_PREFIX = "temp-"
MAX_TTS_CHARS = 1500


def as_string(value: Any, fallback: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return fallback
    return str(value)


def as_bool(value: Any, fallback: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value in (1, "1", "true"):
        return True
    if value in (0, "0", "false"):
        return False
    return fallback


def as_string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def normalize_type(value: Any) -> str:
    """Map any stored or submitted type to ``"pro"`` or ``"perso"``."""
    raw = as_string(value, DEFAULT_PROJECT_TYPE).strip().lower()
    return "pro" if raw == "pro" else DEFAULT_PROJECT_TYPE


def category_key(value: Any) -> str:
    """Comparison key for a category: trimmed and lowercased."""
    return as_string(value).strip().lower()


def dedupe_normalized(values: Iterable[Any]) -> list[str]:
    """
    Trim, drop blanks, and collapse case-insensitive duplicates.

    The first-seen casing of each value is kept; input order is preserved.
    """
    seen: dict[str, str] = {}
    for raw in values:
        value = as_string(raw).strip()
        if not value:
            continue
        seen.setdefault(value.lower(), value)
    return list(seen.values())


def normalize_categories(value: Any) -> list[str]:
    return dedupe_normalized(as_string_list(value))


def is_placeholder_id(project_id: Any) -> bool:
    return as_string(project_id).startswith(PLACEHOLDER_PREFIX)


def truncate_tts_text(text: Any, limit: int = MAX_TTS_CHARS) -> str:
    return as_string(text).strip()[:limit]


def build_tts_text(title: Any, description: Any, limit: int = MAX_TTS_CHARS) -> str:
    """Narration text for a project: ``"<title>. <description>"``."""
    parts = [as_string(title).strip(), as_string(description).strip()]
    return ". ".join(part for part in parts if part)[:limit]
