"""
Narration controller: synthesize, play, and auto-advance through projects.

States are ``idle``, ``synthesizing`` and ``playing``. At most one synthesis
task and one audio resource exist at a time; both belong to the controller.
Each ``play``/``stop`` bumps a token, and a result carrying an older token is
dropped without touching visible state.
"""

import asyncio
import contextlib
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from projectdeck.config import get_settings
from projectdeck.exceptions import DeckException, NarrationError, ValidationError
from projectdeck.logging_config import get_logger
from projectdeck.schemas import ProjectRead
from projectdeck.services.normalize import MAX_TTS_CHARS, build_tts_text, truncate_tts_text

logger = get_logger(__name__)


class AudioResource:
    """
    Decoded audio held in a temporary file.

    ``release`` frees the file once; later calls are no-ops.
    """

    def __init__(self, path: Path):
        self.path = path
        self.released = False

    @classmethod
    def from_bytes(cls, data: bytes, suffix: str = ".mp3") -> "AudioResource":
        fd, name = tempfile.mkstemp(prefix="projectdeck-", suffix=suffix)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)
        return cls(Path(name))

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._free()

    def _free(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            self.path.unlink()


class AudioPlayer(Protocol):
    async def play(self, resource: AudioResource) -> None:
        """Return when playback ends naturally; cancellation stops it."""


class SubprocessPlayer:
    """Plays audio files through an external command (ffplay by default)."""

    def __init__(self, command: Optional[Sequence[str]] = None):
        self.command = list(command or get_settings().player_command)

    def arguments(self, path: Path) -> list[str]:
        if not any("{path}" in part for part in self.command):
            return [*self.command, str(path)]
        return [part.replace("{path}", str(path)) for part in self.command]

    async def play(self, resource: AudioResource) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.arguments(resource.path),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise NarrationError(f"Cannot start audio player: {e}") from e

        try:
            returncode = await process.wait()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.terminate()
                await process.wait()
            raise

        if returncode != 0:
            raise NarrationError(f"Audio player exited with status {returncode}")


class NarrationPhase(str, Enum):
    IDLE = "idle"
    SYNTHESIZING = "synthesizing"
    PLAYING = "playing"


@dataclass(frozen=True)
class NarrationStatus:
    phase: NarrationPhase
    project_id: Optional[str]
    auto_mode: bool
    active_index: int
    error: Optional[str] = None

    def is_loading(self, project_id: str) -> bool:
        return self.phase is NarrationPhase.SYNTHESIZING and self.project_id == project_id

    def is_playing(self, project_id: str) -> bool:
        return self.phase is NarrationPhase.PLAYING and self.project_id == project_id


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def narration_text(project: ProjectRead, limit: int = MAX_TTS_CHARS) -> str:
    return build_tts_text(project.title, project.description, limit)


class NarrationController:
    """Single-flight text-to-speech playback with an auto-advance mode."""

    def __init__(
        self,
        synthesize: Callable[[str], Awaitable[bytes]],
        player: AudioPlayer,
        playlist: Callable[[], Sequence[ProjectRead]] = tuple,
        max_chars: int = MAX_TTS_CHARS,
        resource_factory: Callable[[bytes], AudioResource] = AudioResource.from_bytes,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self._synthesize = synthesize
        self._player = player
        self._playlist = playlist
        self._max_chars = max_chars
        self._resource_factory = resource_factory
        self._on_error = on_error

        self._token = 0
        self._task: Optional[asyncio.Task] = None
        self._resource: Optional[AudioResource] = None
        self._phase = NarrationPhase.IDLE
        self._project_id: Optional[str] = None
        self._listeners: list[Callable[[NarrationStatus], None]] = []

        self.auto_mode = False
        self.active_index = 0
        self.error: Optional[str] = None

    # --- Observation ---

    @property
    def status(self) -> NarrationStatus:
        return NarrationStatus(
            phase=self._phase,
            project_id=self._project_id,
            auto_mode=self.auto_mode,
            active_index=self.active_index,
            error=self.error,
        )

    @property
    def token(self) -> int:
        return self._token

    def subscribe(self, listener: Callable[[NarrationStatus], None]) -> Callable[[], None]:
        """Call ``listener`` on every status change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Commands ---

    def play(self, text: str, project_id: str) -> None:
        """Narrate ``text`` for ``project_id``, superseding anything in progress."""
        safe_text = truncate_tts_text(text, self._max_chars)
        if not safe_text:
            raise ValidationError("Empty narration text")

        token = self._supersede()
        self.error = None
        self._set_phase(NarrationPhase.SYNTHESIZING, project_id)
        logger.debug(f"Narration #{token} requested for project {project_id}")
        self._task = asyncio.get_running_loop().create_task(self._run(token, safe_text, project_id))

    def stop(self) -> None:
        """Cancel and release everything; auto mode is left as is."""
        self._supersede()
        self._set_phase(NarrationPhase.IDLE, None)

    def toggle_auto(self, enabled: bool, start_index: int, text: str, project_id: str) -> None:
        if not enabled:
            self.auto_mode = False
            self.stop()
            return
        self.auto_mode = True
        self.active_index = start_index
        try:
            self.play(text, project_id)
        except ValidationError:
            self.auto_mode = False
            self._emit()
            raise

    def focus(self, index: int) -> None:
        """The user navigated to ``index`` of the visible list."""
        playlist = self._playlist()
        if not 0 <= index < len(playlist):
            return
        project = playlist[index]
        if project.id == self._project_id:
            return
        if self._project_id is not None:
            self.stop()
        if self.auto_mode:
            self.active_index = index
            self._play_project(project)

    async def join(self) -> None:
        """Wait until no narration is pending (auto mode included)."""
        while self._task is not None and not self._task.done():
            await asyncio.wait([self._task])

    async def close(self) -> None:
        """Teardown: stop, leave auto mode, and wait for the task to unwind."""
        task = self._task
        self.auto_mode = False
        self.stop()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    # --- Internals ---

    def _supersede(self) -> int:
        self._token += 1
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        self._release()
        return self._token

    def _release(self, resource: Optional[AudioResource] = None) -> None:
        target = resource or self._resource
        if target is None:
            return
        if self._resource is target:
            self._resource = None
        target.release()

    async def _run(self, token: int, text: str, project_id: str) -> None:
        try:
            completed = await self._narrate(token, text, project_id)
        except asyncio.CancelledError:
            logger.debug(f"Narration #{token} cancelled")
            raise
        except Exception as e:
            if token == self._token:
                self._fail(e)
            else:
                logger.debug(f"Dropping failure of stale narration #{token}: {e}")
            return

        if completed and token == self._token:
            self._finished()

    async def _narrate(self, token: int, text: str, project_id: str) -> bool:
        audio = await self._synthesize(text)
        if token != self._token:
            logger.debug(f"Dropping stale narration #{token}")
            return False

        resource = self._resource_factory(audio)
        self._resource = resource
        try:
            self._set_phase(NarrationPhase.PLAYING, project_id)
            await self._player.play(resource)
        finally:
            self._release(resource)
        return True

    def _finished(self) -> None:
        self._task = None
        self._set_phase(NarrationPhase.IDLE, None)
        if not self.auto_mode:
            return

        playlist = self._playlist()
        next_index = self.active_index + 1
        if next_index >= len(playlist):
            logger.info("Auto mode reached the end of the list")
            self.auto_mode = False
            self._emit()
            return

        self.active_index = next_index
        self._play_project(playlist[next_index])

    def _play_project(self, project: ProjectRead) -> None:
        try:
            self.play(narration_text(project, self._max_chars), project.id)
        except ValidationError as e:
            self._fail(e)

    def _fail(self, error: Exception) -> None:
        message = error.message if isinstance(error, DeckException) else str(error) or type(error).__name__
        logger.warning(f"Narration error: {message}")
        self._task = None
        self.error = message
        self.auto_mode = False
        self._set_phase(NarrationPhase.IDLE, None)
        if self._on_error is not None:
            self._on_error(message)

    def _set_phase(self, phase: NarrationPhase, project_id: Optional[str]) -> None:
        self._phase = phase
        self._project_id = project_id
        self._emit()

    def _emit(self) -> None:
        status = self.status
        for listener in list(self._listeners):
            listener(status)
