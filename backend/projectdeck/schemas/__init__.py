from projectdeck.schemas.project import (
    CombinedTodo,
    LogEntry,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
    SpeechRequest,
    TodoItem,
)

__all__ = [
    "CombinedTodo",
    "LogEntry",
    "ProjectCreate",
    "ProjectRead",
    "ProjectUpdate",
    "SpeechRequest",
    "TodoItem",
]
