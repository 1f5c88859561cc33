from projectdeck.models.project import Project, new_project_id

__all__ = [
    "Project",
    "new_project_id",
]
