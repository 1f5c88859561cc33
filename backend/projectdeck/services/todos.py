"""
List operations on a project's todos and logs.

All functions return new lists and never mutate their input, so the result
can go straight into a ProjectUpdate.
"""

from datetime import datetime
from typing import Iterable, Optional

from projectdeck.schemas.project import CombinedTodo, LogEntry, ProjectRead, TodoItem, utcnow


def add_todo(todos: list[TodoItem], text: str) -> list[TodoItem]:
    """New todo on top of the list; blank text is ignored."""
    if not text.strip():
        return list(todos)
    return [TodoItem(text=text), *todos]


def complete_todo(todos: list[TodoItem], todo_id: str) -> list[TodoItem]:
    """Done todos leave the list."""
    return [todo for todo in todos if todo.id != todo_id]


def edit_todo(todos: list[TodoItem], todo_id: str, text: str) -> list[TodoItem]:
    return [
        todo.model_copy(update={"text": text}) if todo.id == todo_id else todo
        for todo in todos
    ]


def move_todo(todos: list[TodoItem], from_index: int, to_index: int) -> list[TodoItem]:
    """Drag-and-drop reorder. Index 0 is the "next up" todo."""
    result = list(todos)
    if from_index == to_index:
        return result
    if not (0 <= from_index < len(result) and 0 <= to_index < len(result)):
        return result
    moved = result.pop(from_index)
    result.insert(to_index, moved)
    return result


def add_log(logs: list[LogEntry], now: Optional[datetime] = None) -> list[LogEntry]:
    """Empty note on top, most recent first."""
    return [LogEntry(date=now or utcnow(), content=""), *logs]


def edit_log(logs: list[LogEntry], log_id: str, content: str) -> list[LogEntry]:
    return [
        log.model_copy(update={"content": content}) if log.id == log_id else log
        for log in logs
    ]


def delete_log(logs: list[LogEntry], log_id: str) -> list[LogEntry]:
    return [log for log in logs if log.id != log_id]


def combine_todos(projects: Iterable[ProjectRead]) -> list[CombinedTodo]:
    """Flatten every project's todos, keeping project order then todo order."""
    combined = []
    for project in projects:
        for todo in project.todos:
            combined.append(
                CombinedTodo(
                    id=todo.id,
                    text=todo.text,
                    done=todo.done,
                    project_id=project.id,
                    project_title=project.title,
                )
            )
    return combined
