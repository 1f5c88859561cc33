"""
Per-project edit buffer with debounced auto-save.

Keystrokes land in a local buffer and restart a timer. When the timer fires
(or ``flush`` is called) the buffer is compared with the last values known
to be persisted, and only the fields that differ are committed as one
sparse ProjectUpdate. A cycle with no differences sends nothing.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from projectdeck.config import get_settings
from projectdeck.exceptions import DeckException, ValidationError
from projectdeck.logging_config import get_logger
from projectdeck.schemas import ProjectRead, ProjectUpdate
from projectdeck.services import todos as todo_ops
from projectdeck.services.normalize import category_key

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "github_link",
    "site_link",
    "gemini_link",
    "vercel_link",
    "type",
    "categories",
    "todos",
    "logs",
)

LINK_FIELDS = {
    "github": "github_link",
    "site": "site_link",
    "gemini": "gemini_link",
    "vercel": "vercel_link",
}

CommitFn = Callable[[str, ProjectUpdate], Awaitable[Optional[ProjectRead]]]


def normalized_value(field: str, value: Any) -> Any:
    """Value as the backend would store it, so comparisons are like for like."""
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"{field!r} is not an editable field")
    return getattr(ProjectUpdate(**{field: value}), field)


class ProjectEditor:
    """Local edit buffer for one project."""

    def __init__(self, project: ProjectRead, commit: CommitFn, delay: Optional[float] = None):
        self.project_id = project.id
        self._commit = commit
        self._delay = get_settings().autosave_delay_seconds if delay is None else delay
        self._persisted = {name: getattr(project, name) for name in EDITABLE_FIELDS}
        self._buffer = dict(self._persisted)
        self._timer: Optional[asyncio.TimerHandle] = None
        self._flush_task: Optional[asyncio.Task] = None

    # --- Buffer access ---

    def value(self, field: str) -> Any:
        return self._buffer[field]

    @property
    def pending_changes(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self._buffer.items()
            if value != self._persisted[name]
        }

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def set(self, field: str, value: Any) -> None:
        """Buffer a keystroke-level change and restart the debounce timer."""
        self._buffer[field] = normalized_value(field, value)
        self._schedule()

    def set_title(self, title: str) -> None:
        self.set("title", title)

    def set_description(self, description: str) -> None:
        self.set("description", description)

    def set_link(self, kind: str, url: str) -> None:
        if kind not in LINK_FIELDS:
            raise ValidationError(f"Unknown link kind {kind!r}")
        self.set(LINK_FIELDS[kind], url)

    def set_type(self, project_type: str) -> None:
        self.set("type", project_type)

    def toggle_category(self, name: str) -> None:
        key = category_key(name)
        current = self._buffer["categories"]
        if any(category_key(c) == key for c in current):
            self.set("categories", [c for c in current if category_key(c) != key])
        else:
            self.set("categories", [*current, name])

    def rebase(self, project: ProjectRead) -> None:
        """Take in a newer stored record without discarding unsaved edits."""
        pending = self.pending_changes
        self.project_id = project.id
        for name in EDITABLE_FIELDS:
            stored = getattr(project, name)
            self._persisted[name] = stored
            if name not in pending:
                self._buffer[name] = stored

    def hold(self) -> None:
        """Stop the auto-save timer but keep the buffer."""
        self._cancel_timer()

    def resume(self) -> None:
        if self.pending_changes:
            self._schedule()

    def discard(self) -> None:
        """Forget unsaved edits (the project is going away)."""
        self._cancel_timer()
        self._buffer = dict(self._persisted)

    # --- Todos and logs: text edits are debounced, structure changes save at once ---

    async def add_todo(self, text: str) -> Optional[ProjectRead]:
        self._buffer["todos"] = todo_ops.add_todo(self._buffer["todos"], text)
        return await self.flush()

    async def complete_todo(self, todo_id: str) -> Optional[ProjectRead]:
        self._buffer["todos"] = todo_ops.complete_todo(self._buffer["todos"], todo_id)
        return await self.flush()

    async def move_todo(self, from_index: int, to_index: int) -> Optional[ProjectRead]:
        self._buffer["todos"] = todo_ops.move_todo(self._buffer["todos"], from_index, to_index)
        return await self.flush()

    def edit_todo(self, todo_id: str, text: str) -> None:
        self.set("todos", todo_ops.edit_todo(self._buffer["todos"], todo_id, text))

    async def add_log(self) -> Optional[ProjectRead]:
        self._buffer["logs"] = todo_ops.add_log(self._buffer["logs"])
        return await self.flush()

    async def delete_log(self, log_id: str) -> Optional[ProjectRead]:
        self._buffer["logs"] = todo_ops.delete_log(self._buffer["logs"], log_id)
        return await self.flush()

    def edit_log(self, log_id: str, content: str) -> None:
        self.set("logs", todo_ops.edit_log(self._buffer["logs"], log_id, content))

    # --- Commit cycle ---

    def _schedule(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._fire)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self._flush_task = asyncio.get_running_loop().create_task(self._autosave())

    async def _autosave(self) -> None:
        try:
            await self.flush()
        except DeckException as e:
            logger.warning(f"Auto-save skipped for project {self.project_id}: {e.message}")

    async def flush(self) -> Optional[ProjectRead]:
        """
        Commit pending changes now.

        Returns the stored project after a successful commit, None when there
        was nothing to send or the store rolled the change back.
        """
        self._cancel_timer()
        changes = self.pending_changes
        if not changes:
            return None

        previous = {name: self._persisted[name] for name in changes}
        self._persisted.update(changes)
        logger.debug(f"Auto-saving {sorted(changes)} for project {self.project_id}")

        saved = await self._commit(self.project_id, ProjectUpdate(**changes))
        if saved is None:
            # Store restored the old values; show them again.
            for name, value in previous.items():
                self._persisted[name] = value
                if self._buffer[name] == changes[name]:
                    self._buffer[name] = value
            return None

        self.project_id = saved.id
        return saved

    async def aclose(self) -> None:
        """Save whatever is still buffered and stop the timer."""
        await self.flush()
        if self._flush_task is not None and not self._flush_task.done():
            await self._flush_task
