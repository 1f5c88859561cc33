from projectdeck.client.api import DeckClient
from projectdeck.client.dashboard import Dashboard
from projectdeck.client.editor import ProjectEditor
from projectdeck.client.filters import FilterState, filter_projects
from projectdeck.client.narration import NarrationController, NarrationPhase, SubprocessPlayer
from projectdeck.client.store import DELETE_CONFIRMATION, Notice, ProjectStore

__all__ = [
    "DELETE_CONFIRMATION",
    "Dashboard",
    "DeckClient",
    "FilterState",
    "NarrationController",
    "NarrationPhase",
    "Notice",
    "ProjectEditor",
    "ProjectStore",
    "SubprocessPlayer",
    "filter_projects",
]
