"""
Session-side project store with optimistic sync.

Local changes are applied to the in-memory list first and then persisted.
A failed request puts the previous values back and leaves a Notice for the
UI. Only input rejected before any request was made raises past the store.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from projectdeck.exceptions import DeckException, NotFoundError, PlaceholderIdError, ValidationError
from projectdeck.logging_config import get_logger
from projectdeck.schemas import ProjectCreate, ProjectRead, ProjectUpdate
from projectdeck.services.normalize import PLACEHOLDER_PREFIX, is_placeholder_id

logger = get_logger(__name__)

DELETE_CONFIRMATION = "SUPPRIMER"


class ProjectBackend(Protocol):
    async def list_projects(self) -> list[ProjectRead]: ...

    async def create_project(self, draft: ProjectCreate) -> ProjectRead: ...

    async def update_project(self, project_id: str, patch: ProjectUpdate) -> ProjectRead: ...

    async def delete_project(self, project_id: str) -> None: ...


@dataclass(frozen=True)
class Notice:
    """A transient message for the UI region of a project (or the whole page)."""
    level: str  # "info" | "warning" | "error"
    message: str
    project_id: Optional[str] = None


def new_placeholder_id() -> str:
    return f"{PLACEHOLDER_PREFIX}{uuid.uuid4().hex}"


def check_delete_confirmation(confirmation: str) -> None:
    """The typed phrase must match exactly, case and spacing included."""
    if confirmation != DELETE_CONFIRMATION:
        raise ValidationError(f"Type {DELETE_CONFIRMATION} to confirm deletion")


class ProjectStore:
    """Authoritative-for-the-session list of projects."""

    def __init__(
        self,
        backend: ProjectBackend,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self._backend = backend
        self._on_notice = on_notice
        self._projects: list[ProjectRead] = []
        # placeholder id -> future resolving to the real id (None if the create failed)
        self._pending_creates: dict[str, asyncio.Future] = {}
        self._aliases: dict[str, str] = {}
        self.notices: list[Notice] = []
        self.error: Optional[str] = None

    # --- Reads ---

    @property
    def projects(self) -> list[ProjectRead]:
        return list(self._projects)

    def resolve_id(self, project_id: str) -> str:
        """Real id for a placeholder that has since been reconciled."""
        return self._aliases.get(project_id, project_id)

    def index_of(self, project_id: str) -> Optional[int]:
        project_id = self.resolve_id(project_id)
        for index, project in enumerate(self._projects):
            if project.id == project_id:
                return index
        return None

    def get(self, project_id: str) -> Optional[ProjectRead]:
        index = self.index_of(project_id)
        return self._projects[index] if index is not None else None

    # --- Operations ---

    async def load(self) -> bool:
        """Replace the list with the backend's. Keeps the old list on failure."""
        try:
            projects = await self._backend.list_projects()
        except DeckException as e:
            self.error = e.message
            self.notify("error", f"Could not load projects: {e.message}")
            return False
        self._projects = list(projects)
        self.error = None
        logger.info(f"Loaded {len(self._projects)} projects")
        return True

    async def create(self, draft: Optional[ProjectCreate] = None) -> Optional[ProjectRead]:
        """
        Insert a placeholder at the head of the list, then reconcile its id.

        Returns the reconciled project, or None when the backend refused it
        (the placeholder is gone from the list by then).
        """
        draft = draft or ProjectCreate()
        placeholder_id = new_placeholder_id()
        placeholder = ProjectRead.model_validate({**draft.model_dump(), "id": placeholder_id})
        self._projects.insert(0, placeholder)

        pending = asyncio.get_running_loop().create_future()
        self._pending_creates[placeholder_id] = pending
        logger.debug(f"Inserted placeholder {placeholder_id}")

        try:
            created = await self._backend.create_project(draft)
        except DeckException as e:
            self._drop(placeholder_id)
            pending.set_result(None)
            self.notify("error", f"Could not create project: {e.message}")
            return None
        finally:
            self._pending_creates.pop(placeholder_id, None)

        index = self.index_of(placeholder_id)
        self._aliases[placeholder_id] = created.id
        if index is not None:
            # Keep local edits made while the create was in flight; only the identity changes.
            self._projects[index] = self._projects[index].model_copy(
                update={"id": created.id, "created_at": created.created_at, "updated_at": created.updated_at}
            )
        pending.set_result(created.id)
        logger.info(f"Project {placeholder_id} saved as {created.id}")
        return self.get(created.id)

    async def update(self, project_id: str, patch: ProjectUpdate) -> Optional[ProjectRead]:
        """
        Apply ``patch`` locally, then send exactly the fields it carries.

        On failure the patched fields get their previous values back. Returns
        the current record on success, None when the change was rolled back
        or the project never got persisted.
        """
        index = self.index_of(project_id)
        if index is None:
            raise NotFoundError("Project", project_id)
        if patch.is_empty():
            return self._projects[index]

        previous = self._projects[index]
        self._projects[index] = patch.apply_to(previous)
        target_id = previous.id

        if is_placeholder_id(target_id):
            pending = self._pending_creates.get(target_id)
            real_id = await pending if pending is not None else None
            if real_id is None:
                logger.debug(f"Dropping update for unsaved project {target_id}")
                return None
            target_id = real_id

        try:
            saved = await self._backend.update_project(target_id, patch)
        except DeckException as e:
            reverted = {name: getattr(previous, name) for name in patch.changed_fields}
            self._patch_local(target_id, reverted)
            self.notify("warning", f"Could not save: {e.message}", target_id)
            return None

        self._patch_local(target_id, {"updated_at": saved.updated_at})
        return self.get(target_id)

    async def remove(self, project_id: str, confirmation: str) -> bool:
        """Delete after an exact typed confirmation; rolled back on failure."""
        check_delete_confirmation(confirmation)
        project_id = self.resolve_id(project_id)
        if is_placeholder_id(project_id):
            raise PlaceholderIdError(project_id)
        index = self.index_of(project_id)
        if index is None:
            raise NotFoundError("Project", project_id)

        removed = self._projects.pop(index)
        try:
            await self._backend.delete_project(project_id)
        except DeckException as e:
            self._projects.insert(min(index, len(self._projects)), removed)
            self.notify("error", f"Could not delete: {e.message}", project_id)
            return False

        logger.info(f"Deleted project {project_id}")
        return True

    # --- Internals ---

    def _drop(self, project_id: str) -> None:
        index = self.index_of(project_id)
        if index is not None:
            del self._projects[index]

    def _patch_local(self, project_id: str, values: dict) -> None:
        index = self.index_of(project_id)
        if index is not None:
            self._projects[index] = self._projects[index].model_copy(update=values)

    def notify(self, level: str, message: str, project_id: Optional[str] = None) -> None:
        notice = Notice(level=level, message=message, project_id=project_id)
        self.notices.append(notice)
        log = logger.warning if level == "warning" else logger.error if level == "error" else logger.info
        log(message + (f" (project={project_id})" if project_id else ""))
        if self._on_notice is not None:
            self._on_notice(notice)
