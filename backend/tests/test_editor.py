"""
Debounced editing tests.

Editors run with a 20ms delay; ``settle`` waits long enough for a pending
timer to fire and its save to complete.
"""

import asyncio

import pytest

from projectdeck.client.editor import ProjectEditor, normalized_value
from projectdeck.exceptions import ValidationError
from projectdeck.schemas import ProjectRead, TodoItem

DELAY = 0.02


async def settle() -> None:
    await asyncio.sleep(DELAY * 5)


class RecordingCommit:
    """Stands in for ProjectStore.update."""

    def __init__(self, project: ProjectRead, fail: bool = False):
        self.project = project
        self.fail = fail
        self.calls: list[tuple[str, dict]] = []

    async def __call__(self, project_id, patch):
        self.calls.append((project_id, patch.wire()))
        if self.fail:
            return None
        self.project = patch.apply_to(self.project)
        return self.project


@pytest.fixture
def project():
    return ProjectRead(
        id="p1",
        title="Formation AWS",
        description="Notes",
        categories=["Formation"],
        todos=[TodoItem(id="t1", text="lire la doc"), TodoItem(id="t2", text="faire le lab")],
    )


@pytest.fixture
def commit(project):
    return RecordingCommit(project)


@pytest.fixture
def editor(project, commit):
    return ProjectEditor(project, commit, delay=DELAY)


class TestDebounce:
    @pytest.mark.asyncio
    async def test_rapid_edits_collapse_into_one_save(self, editor, commit):
        editor.set_title("F")
        editor.set_title("Fo")
        editor.set_title("Formation GCP")

        assert editor.has_pending_timer
        assert commit.calls == []

        await settle()

        assert commit.calls == [("p1", {"title": "Formation GCP"})]
        assert not editor.has_pending_timer

    @pytest.mark.asyncio
    async def test_save_carries_every_changed_field(self, editor, commit):
        editor.set_title("Formation GCP")
        editor.set_description("Cloud")
        editor.set_link("github", "https://github.com/me/gcp")

        await settle()

        assert commit.calls == [(
            "p1",
            {"title": "Formation GCP", "description": "Cloud", "githubLink": "https://github.com/me/gcp"},
        )]

    @pytest.mark.asyncio
    async def test_edit_back_to_stored_value_sends_nothing(self, editor, commit):
        editor.set_title("Something else")
        editor.set_title("Formation AWS")

        await settle()

        assert commit.calls == []

    @pytest.mark.asyncio
    async def test_flush_saves_immediately(self, editor, commit):
        editor.set_description("Now")

        saved = await editor.flush()

        assert saved.description == "Now"
        assert commit.calls == [("p1", {"description": "Now"})]
        assert not editor.has_pending_timer

    @pytest.mark.asyncio
    async def test_flush_without_changes_returns_none(self, editor, commit):
        assert await editor.flush() is None
        assert commit.calls == []

    @pytest.mark.asyncio
    async def test_rolled_back_save_restores_buffer(self, project):
        commit = RecordingCommit(project, fail=True)
        editor = ProjectEditor(project, commit, delay=DELAY)
        editor.set_title("Lost")

        assert await editor.flush() is None

        assert editor.value("title") == "Formation AWS"
        assert editor.pending_changes == {}

    @pytest.mark.asyncio
    async def test_discard_cancels_pending_save(self, editor, commit):
        editor.set_title("Never saved")
        editor.discard()

        await settle()

        assert commit.calls == []
        assert editor.value("title") == "Formation AWS"


class TestFieldEdits:
    @pytest.mark.asyncio
    async def test_type_is_normalized_in_buffer(self, editor):
        editor.set_type("PRO")
        assert editor.value("type") == "pro"
        editor.discard()

    @pytest.mark.asyncio
    async def test_toggle_category_is_case_insensitive(self, editor, commit):
        editor.toggle_category("formation")
        assert editor.value("categories") == []

        editor.toggle_category("IA")
        assert editor.value("categories") == ["IA"]

        await settle()
        assert commit.calls == [("p1", {"categories": ["IA"]})]

    def test_unknown_link_kind(self, editor):
        with pytest.raises(ValidationError):
            editor.set_link("gitlab", "https://gitlab.com")

    def test_non_editable_field(self):
        with pytest.raises(ValidationError):
            normalized_value("favorite", True)

    @pytest.mark.asyncio
    async def test_rebase_keeps_unsaved_edits(self, editor, project):
        editor.set_title("Mine")
        newer = project.model_copy(update={"description": "from elsewhere", "id": "real"})

        editor.rebase(newer)

        assert editor.project_id == "real"
        assert editor.value("title") == "Mine"
        assert editor.value("description") == "from elsewhere"
        editor.discard()


class TestTodosAndLogs:
    """Structure changes save at once, text edits are debounced."""

    @pytest.mark.asyncio
    async def test_add_todo_goes_on_top_and_saves(self, editor, commit):
        saved = await editor.add_todo("nouvelle tâche")

        assert [t.text for t in saved.todos] == ["nouvelle tâche", "lire la doc", "faire le lab"]
        assert len(commit.calls) == 1

    @pytest.mark.asyncio
    async def test_blank_todo_is_ignored(self, editor, commit):
        assert await editor.add_todo("   ") is None
        assert commit.calls == []

    @pytest.mark.asyncio
    async def test_complete_todo_removes_it(self, editor):
        saved = await editor.complete_todo("t1")

        assert [t.id for t in saved.todos] == ["t2"]

    @pytest.mark.asyncio
    async def test_move_todo(self, editor):
        saved = await editor.move_todo(1, 0)

        assert [t.id for t in saved.todos] == ["t2", "t1"]

    @pytest.mark.asyncio
    async def test_edit_todo_is_debounced(self, editor, commit):
        editor.edit_todo("t1", "lire")
        editor.edit_todo("t1", "lire la doc AWS")
        assert commit.calls == []

        await settle()

        assert len(commit.calls) == 1
        todos = commit.calls[0][1]["todos"]
        assert todos[0] == {"id": "t1", "text": "lire la doc AWS", "done": False}

    @pytest.mark.asyncio
    async def test_logs_add_edit_delete(self, editor, commit):
        saved = await editor.add_log()
        log_id = saved.logs[0].id
        assert saved.logs[0].content == ""

        editor.edit_log(log_id, "Premier module terminé")
        await settle()
        assert commit.project.logs[0].content == "Premier module terminé"

        saved = await editor.delete_log(log_id)
        assert saved.logs == []
        assert len(commit.calls) == 3

    @pytest.mark.asyncio
    async def test_aclose_flushes_pending(self, editor, commit):
        editor.set_title("Last words")

        await editor.aclose()

        assert commit.calls == [("p1", {"title": "Last words"})]
