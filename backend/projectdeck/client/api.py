"""
HTTP client for the ProjectDeck API.

This is the boundary between the client core and the backend: it speaks the
camelCase wire format, validates ids before any request goes out, and turns
every transport or HTTP failure into a BackendError (projects) or a
NarrationError (speech).
"""

from typing import Optional

import httpx

from projectdeck.config import get_settings
from projectdeck.exceptions import BackendError, NarrationError, PlaceholderIdError, ValidationError
from projectdeck.logging_config import get_logger
from projectdeck.schemas import ProjectCreate, ProjectRead, ProjectUpdate
from projectdeck.services.normalize import MAX_TTS_CHARS, is_placeholder_id, truncate_tts_text

logger = get_logger(__name__)


def error_message(response: httpx.Response) -> str:
    """Message from a structured error body, falling back to the raw text."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text.strip() or f"HTTP {response.status_code}"


def require_stored_id(project_id: str) -> str:
    if not project_id:
        raise ValidationError("Missing project id")
    if is_placeholder_id(project_id):
        raise PlaceholderIdError(project_id)
    return project_id


class DeckClient:
    """Async client for the /projects and /tts endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
        voice: str = "alloy",
    ):
        self.voice = voice
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=base_url or get_settings().api_url,
            timeout=httpx.Timeout(30.0),
        )

    async def __aenter__(self) -> "DeckClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {url} failed: {e}") from e
        if response.is_error:
            raise BackendError(error_message(response), status_code=response.status_code)
        return response

    # --- Projects ---

    async def list_projects(self) -> list[ProjectRead]:
        response = await self._request("GET", "/projects/")
        projects = [ProjectRead.model_validate(item) for item in response.json()]
        logger.debug(f"Fetched {len(projects)} projects")
        return projects

    async def create_project(self, draft: ProjectCreate) -> ProjectRead:
        response = await self._request(
            "POST", "/projects/", json=draft.model_dump(mode="json", by_alias=True)
        )
        return ProjectRead.model_validate(response.json())

    async def update_project(self, project_id: str, patch: ProjectUpdate) -> ProjectRead:
        require_stored_id(project_id)
        if patch.is_empty():
            raise ValidationError("No fields to update")
        response = await self._request("PATCH", f"/projects/{project_id}", json=patch.wire())
        return ProjectRead.model_validate(response.json())

    async def delete_project(self, project_id: str) -> None:
        require_stored_id(project_id)
        await self._request("DELETE", f"/projects/{project_id}")

    # --- Narration ---

    async def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
        """
        Audio bytes for ``text``.

        No timeout: a pending request only ends when it completes or the
        calling task is cancelled.
        """
        safe_text = truncate_tts_text(text, MAX_TTS_CHARS)
        if not safe_text:
            raise ValidationError("Empty text")
        try:
            response = await self._http.post(
                "/tts",
                json={"text": safe_text, "voice": voice or self.voice},
                timeout=None,
            )
        except httpx.HTTPError as e:
            raise NarrationError(f"TTS request failed: {e}") from e
        if response.is_error:
            raise NarrationError(error_message(response))
        return response.content
