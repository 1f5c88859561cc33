"""
Optimistic sync tests for ProjectStore.

The backend is the in-memory FakeBackend from conftest; failures are injected
per operation to exercise rollback.
"""

import asyncio

import pytest
import pytest_asyncio

from projectdeck.client.store import DELETE_CONFIRMATION, ProjectStore, check_delete_confirmation
from projectdeck.exceptions import NotFoundError, PlaceholderIdError, ValidationError
from projectdeck.schemas import ProjectCreate, ProjectUpdate


@pytest.fixture
def notices():
    return []


@pytest_asyncio.fixture
async def store(backend, notices):
    store = ProjectStore(backend, on_notice=notices.append)
    await store.load()
    return store


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_replaces_list(self, store):
        assert [p.id for p in store.projects] == ["p1", "p2", "p3"]
        assert store.error is None

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_list(self, store, backend, notices):
        backend.fail.add("list")

        assert await store.load() is False

        assert [p.id for p in store.projects] == ["p1", "p2", "p3"]
        assert store.error == "list refused"
        assert notices[-1].level == "error"


class TestUpdate:
    """Sparse optimistic updates with per-field rollback."""

    @pytest.mark.asyncio
    async def test_update_applies_locally_and_sends_only_changed_fields(self, store, backend):
        saved = await store.update("p1", ProjectUpdate(title="AWS avancé"))

        assert saved.title == "AWS avancé"
        assert store.get("p1").title == "AWS avancé"
        assert backend.calls_of("update") == [("update", "p1", {"title": "AWS avancé"})]

    @pytest.mark.asyncio
    async def test_failed_update_restores_previous_values(self, store, backend, notices):
        backend.fail.add("update")

        result = await store.update("p2", ProjectUpdate(favorite=False, title="Renamed"))

        assert result is None
        project = store.get("p2")
        assert project.favorite is True
        assert project.title == "Gestion Appartement"
        assert notices[-1].level == "warning"
        assert notices[-1].project_id == "p2"

    @pytest.mark.asyncio
    async def test_rollback_leaves_other_fields_alone(self, store, backend):
        gate = asyncio.Event()
        real_update = backend.update_project

        async def slow_failing_update(project_id, patch):
            if "favorite" in patch.changed_fields:
                await gate.wait()
                backend.fail.add("update")
            return await real_update(project_id, patch)

        backend.update_project = slow_failing_update

        pending = asyncio.create_task(store.update("p1", ProjectUpdate(favorite=True)))
        await asyncio.sleep(0)
        await store.update("p1", ProjectUpdate(description="edited meanwhile"))
        gate.set()
        await pending

        project = store.get("p1")
        assert project.favorite is False
        assert project.description == "edited meanwhile"

    @pytest.mark.asyncio
    async def test_empty_patch_sends_nothing(self, store, backend):
        result = await store.update("p1", ProjectUpdate())

        assert result.id == "p1"
        assert backend.calls_of("update") == []

    @pytest.mark.asyncio
    async def test_unknown_project(self, store):
        with pytest.raises(NotFoundError):
            await store.update("missing", ProjectUpdate(title="x"))

    @pytest.mark.asyncio
    async def test_update_normalizes_values(self, store):
        await store.update("p1", ProjectUpdate(type="PRO", categories=["ia", "IA", " "]))

        project = store.get("p1")
        assert project.type == "pro"
        assert project.categories == ["ia"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_reconciles_placeholder_id(self, store, backend):
        created = await store.create(ProjectCreate(title="Nouveau"))

        assert created.id == "rec1"
        assert store.projects[0].id == "rec1"
        assert not any(p.id.startswith("temp-") for p in store.projects)

    @pytest.mark.asyncio
    async def test_placeholder_is_visible_while_saving(self, store, backend):
        backend.gate = asyncio.Event()

        task = asyncio.create_task(store.create())
        await asyncio.sleep(0)

        head = store.projects[0]
        assert head.id.startswith("temp-")
        assert head.title == "Nouveau Projet"

        backend.gate.set()
        created = await task
        assert store.resolve_id(head.id) == created.id
        assert store.get(head.id).id == created.id

    @pytest.mark.asyncio
    async def test_failed_create_drops_placeholder(self, store, backend, notices):
        backend.fail.add("create")

        assert await store.create() is None

        assert [p.id for p in store.projects] == ["p1", "p2", "p3"]
        assert notices[-1].level == "error"

    @pytest.mark.asyncio
    async def test_edit_during_create_waits_for_real_id(self, store, backend):
        backend.gate = asyncio.Event()
        create = asyncio.create_task(store.create())
        await asyncio.sleep(0)
        placeholder_id = store.projects[0].id

        update = asyncio.create_task(store.update(placeholder_id, ProjectUpdate(title="Typed early")))
        await asyncio.sleep(0)
        assert store.projects[0].title == "Typed early"
        assert backend.calls_of("update") == []

        backend.gate.set()
        created = await create
        saved = await update

        assert backend.calls_of("update") == [("update", created.id, {"title": "Typed early"})]
        assert saved.id == created.id
        assert store.get(created.id).title == "Typed early"

    @pytest.mark.asyncio
    async def test_edit_of_failed_create_is_dropped(self, store, backend):
        backend.gate = asyncio.Event()
        backend.fail.add("create")
        create = asyncio.create_task(store.create())
        await asyncio.sleep(0)
        placeholder_id = store.projects[0].id

        update = asyncio.create_task(store.update(placeholder_id, ProjectUpdate(title="lost")))
        await asyncio.sleep(0)
        backend.gate.set()

        assert await create is None
        assert await update is None
        assert backend.calls_of("update") == []


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_with_confirmation(self, store, backend):
        assert await store.remove("p2", DELETE_CONFIRMATION) is True

        assert [p.id for p in store.projects] == ["p1", "p3"]
        assert backend.calls_of("delete") == [("delete", "p2")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("typed", ["supprimer", "SUPPRIMER ", "", "DELETE"])
    async def test_wrong_confirmation_is_rejected(self, store, backend, typed):
        with pytest.raises(ValidationError):
            await store.remove("p2", typed)

        assert len(store.projects) == 3
        assert backend.calls_of("delete") == []

    @pytest.mark.asyncio
    async def test_failed_delete_reinserts_at_same_position(self, store, backend, notices):
        backend.fail.add("delete")

        assert await store.remove("p2", DELETE_CONFIRMATION) is False

        assert [p.id for p in store.projects] == ["p1", "p2", "p3"]
        assert notices[-1].project_id == "p2"

    @pytest.mark.asyncio
    async def test_unsaved_project_cannot_be_deleted(self, store, backend):
        backend.gate = asyncio.Event()
        create = asyncio.create_task(store.create())
        await asyncio.sleep(0)

        with pytest.raises(PlaceholderIdError):
            await store.remove(store.projects[0].id, DELETE_CONFIRMATION)

        backend.gate.set()
        await create


def test_confirmation_phrase():
    check_delete_confirmation("SUPPRIMER")
    with pytest.raises(ValidationError):
        check_delete_confirmation("Supprimer")
