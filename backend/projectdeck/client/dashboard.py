"""
Dashboard session: one object per open dashboard.

Owns the store, the current filters, the viewer position, one editor per
opened project and the narration controller, and routes user intents to
them. Nothing outside this module touches the store's list directly.
"""

from typing import Callable, Optional

from projectdeck.client.api import DeckClient
from projectdeck.client.editor import ProjectEditor
from projectdeck.client.filters import FilterState, available_categories, available_types, filter_projects
from projectdeck.client.narration import AudioPlayer, NarrationController, SubprocessPlayer, narration_text
from projectdeck.client.store import Notice, ProjectStore, check_delete_confirmation
from projectdeck.exceptions import NotFoundError
from projectdeck.logging_config import get_logger
from projectdeck.schemas import CombinedTodo, ProjectCreate, ProjectRead, ProjectUpdate
from projectdeck.services import todos as todo_ops
from projectdeck.services.normalize import build_tts_text

logger = get_logger(__name__)


class Dashboard:
    def __init__(
        self,
        client: DeckClient,
        player: Optional[AudioPlayer] = None,
        autosave_delay: Optional[float] = None,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self.store = ProjectStore(client, on_notice=on_notice)
        self.filters = FilterState()
        self.viewer_index: Optional[int] = None
        self.narration = NarrationController(
            client.synthesize,
            player or SubprocessPlayer(),
            playlist=self.visible,
            on_error=self._narration_failed,
        )
        self._autosave_delay = autosave_delay
        self._editors: dict[str, ProjectEditor] = {}

    # --- Derived views ---

    def visible(self) -> list[ProjectRead]:
        return filter_projects(self.store.projects, self.filters)

    @property
    def counts(self) -> tuple[int, int]:
        """(shown, total)"""
        return len(self.visible()), len(self.store.projects)

    @property
    def available_types(self) -> list[str]:
        return available_types(self.store.projects)

    @property
    def available_categories(self) -> list[str]:
        return available_categories(self.store.projects)

    def combined_todos(self) -> list[CombinedTodo]:
        return todo_ops.combine_todos(self.store.projects)

    # --- Loading and filters ---

    async def load(self) -> bool:
        return await self.store.load()

    def set_filters(self, filters: FilterState) -> None:
        self.filters = filters
        logger.debug(f"Filters changed: {self.counts[0]} of {self.counts[1]} projects visible")
        if self.viewer_index is not None and self.viewer_index >= len(self.visible()):
            self.viewer_index = None

    # --- Viewer ---

    def open(self, index: int) -> ProjectRead:
        visible = self.visible()
        if not 0 <= index < len(visible):
            raise NotFoundError("Visible project", str(index))
        self.viewer_index = index
        return visible[index]

    def focus(self, index: int) -> ProjectRead:
        """Swipe to another project; narration follows the rules of manual navigation."""
        project = self.open(index)
        self.narration.focus(index)
        return project

    async def close_viewer(self) -> None:
        self.narration.auto_mode = False
        self.narration.stop()
        for editor in self._editors.values():
            await editor.flush()
        self.viewer_index = None

    def editor_for(self, project_id: str) -> ProjectEditor:
        project = self.store.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        editor = self._editors.get(project.id)
        if editor is None:
            editor = ProjectEditor(project, self.store.update, delay=self._autosave_delay)
            self._editors[project.id] = editor
        return editor

    # --- Narration ---

    def _text_for(self, project: ProjectRead) -> str:
        editor = self._editors.get(project.id)
        if editor is None:
            return narration_text(project)
        return build_tts_text(editor.value("title"), editor.value("description"))

    def play(self, project_id: str) -> None:
        project = self._require(project_id)
        self.narration.play(self._text_for(project), project.id)

    def toggle_auto(self, enabled: bool, index: int) -> None:
        if not enabled:
            logger.info("Auto mode off")
            self.narration.toggle_auto(False, index, "", "")
            return
        project = self.open(index)
        logger.info(f"Auto mode on from position {index}")
        self.narration.toggle_auto(True, index, self._text_for(project), project.id)

    def _narration_failed(self, message: str) -> None:
        self.store.notify("error", f"Narration error: {message}")

    # --- Mutations ---

    async def create_project(self, draft: Optional[ProjectCreate] = None) -> Optional[ProjectRead]:
        project = await self.store.create(draft)
        if project is not None:
            ids = [p.id for p in self.visible()]
            if project.id in ids:
                self.viewer_index = ids.index(project.id)
        return project

    async def toggle_favorite(self, project_id: str) -> Optional[ProjectRead]:
        project = self._require(project_id)
        return await self.store.update(project.id, ProjectUpdate(favorite=not project.favorite))

    async def delete_project(self, project_id: str, confirmation: str) -> bool:
        check_delete_confirmation(confirmation)
        project = self._require(project_id)
        if self.narration.status.project_id == project.id:
            self.narration.stop()
        editor = self._editors.get(project.id)
        if editor is not None:
            editor.hold()
        removed = False
        try:
            removed = await self.store.remove(project.id, confirmation)
        finally:
            if editor is not None:
                if removed:
                    self._editors.pop(project.id, None)
                    editor.discard()
                else:
                    # The project is back in the list; its unsaved edits still need saving.
                    editor.resume()
        if removed and self.viewer_index is not None and self.viewer_index >= len(self.visible()):
            self.viewer_index = None
        return removed

    async def complete_todo(self, project_id: str, todo_id: str) -> Optional[ProjectRead]:
        """Tick a todo from the combined list; only that project's todos change."""
        editor = self._editors.get(self.store.resolve_id(project_id))
        if editor is not None:
            return await editor.complete_todo(todo_id)
        project = self._require(project_id)
        todos = todo_ops.complete_todo(project.todos, todo_id)
        return await self.store.update(project.id, ProjectUpdate(todos=todos))

    async def aclose(self) -> None:
        for editor in self._editors.values():
            await editor.aclose()
        await self.narration.close()

    def _require(self, project_id: str) -> ProjectRead:
        project = self.store.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project
