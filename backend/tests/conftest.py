"""
Pytest configuration and fixtures for ProjectDeck tests.
"""

import asyncio
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

import projectdeck.models  # noqa: F401  (registers the projects table)
from projectdeck.main import app
from projectdeck.database import get_session
from projectdeck.exceptions import BackendError
from projectdeck.routes.tts import get_speech_client
from projectdeck.schemas import ProjectCreate, ProjectRead, ProjectUpdate
from projectdeck.services.speech import SpeechClient


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine on a throwaway SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


class SpeechProviderStub:
    """Records provider calls and answers with canned audio or an error."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.audio = b"ID3-fake-mp3"
        self.error_body: Optional[dict] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json=self.error_body or {"error": {"message": "boom"}})
        return httpx.Response(200, content=self.audio, headers={"Content-Type": "audio/mpeg"})


@pytest.fixture
def speech_provider():
    return SpeechProviderStub()


@pytest_asyncio.fixture(scope="function")
async def client(test_engine, speech_provider):
    """Async test client with a test database and a stubbed speech provider."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    speech = SpeechClient(api_key="test-key", transport=httpx.MockTransport(speech_provider))

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_speech_client] = lambda: speech

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await speech.aclose()


class FakeBackend:
    """
    In-memory stand-in for DeckClient's project operations.

    Calls are recorded; ``fail`` makes the next call of that operation raise
    BackendError, and ``gate`` holds create responses until released.
    """

    def __init__(self, projects: Optional[list[ProjectRead]] = None):
        self.projects = {p.id: p for p in projects or []}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self._next_id = 0

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail:
            self.fail.discard(operation)
            raise BackendError(f"{operation} refused")

    async def list_projects(self) -> list[ProjectRead]:
        self.calls.append(("list",))
        self._maybe_fail("list")
        return list(self.projects.values())

    async def create_project(self, draft: ProjectCreate) -> ProjectRead:
        self.calls.append(("create", draft))
        if self.gate is not None:
            await self.gate.wait()
        self._maybe_fail("create")
        self._next_id += 1
        project = ProjectRead.model_validate({**draft.model_dump(), "id": f"rec{self._next_id}"})
        self.projects[project.id] = project
        return project

    async def update_project(self, project_id: str, patch: ProjectUpdate) -> ProjectRead:
        self.calls.append(("update", project_id, patch.wire()))
        self._maybe_fail("update")
        project = patch.apply_to(self.projects[project_id])
        self.projects[project_id] = project
        return project

    async def delete_project(self, project_id: str) -> None:
        self.calls.append(("delete", project_id))
        self._maybe_fail("delete")
        self.projects.pop(project_id, None)

    async def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
        self.calls.append(("synthesize", text))
        self._maybe_fail("synthesize")
        return text.encode()

    def calls_of(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]


def make_project(project_id: str, **fields) -> ProjectRead:
    return ProjectRead.model_validate({"id": project_id, **fields})


@pytest.fixture
def sample_projects() -> list[ProjectRead]:
    return [
        make_project("p1", title="Formation AWS", description="Notes, labs et rappels AWS",
                     type="pro", categories=["formation"], favorite=False),
        make_project("p2", title="Gestion Appartement", description="Suivi des documents",
                     type="perso", categories=["appartement"], favorite=True),
        make_project("p3", title="NoteSpeak AI", description="reads notes aloud",
                     type="perso", categories=["Formation", "IA"], favorite=True),
    ]


@pytest.fixture
def backend(sample_projects) -> FakeBackend:
    return FakeBackend(sample_projects)
