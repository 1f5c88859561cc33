"""
Project routes for the ProjectDeck API.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from projectdeck.database import get_session
from projectdeck.models import Project
from projectdeck.schemas import ProjectCreate, ProjectUpdate, ProjectRead
from projectdeck.exceptions import NotFoundError, PlaceholderIdError, ValidationError
from projectdeck.logging_config import get_logger
from projectdeck.services.normalize import is_placeholder_id

logger = get_logger(__name__)

router = APIRouter()


async def get_project_or_404(session: AsyncSession, project_id: str) -> Project:
    if is_placeholder_id(project_id):
        raise PlaceholderIdError(project_id)
    project = await session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project", project_id)
    return project


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """Create a new project; the response carries the assigned id."""
    project = Project(**project_in.row_values())
    session.add(project)
    await session.flush()
    await session.refresh(project)

    logger.info(f"Created project: id={project.id} title='{project.title}'")

    return project


@router.get("/", response_model=list[ProjectRead])
async def list_projects(
    session: AsyncSession = Depends(get_session),
) -> list[Project]:
    """List all projects, newest first."""
    result = await session.execute(
        select(Project).order_by(Project.created_at.desc())
    )
    projects = list(result.scalars().all())

    logger.debug(f"Listed {len(projects)} projects")

    return projects


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: str,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """Get a project by ID."""
    return await get_project_or_404(session, project_id)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    project_in: ProjectUpdate,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """
    Update a project.

    Only keys present in the request body are written; everything else
    keeps its stored value.
    """
    project = await get_project_or_404(session, project_id)

    if project_in.is_empty():
        raise ValidationError("No fields to update")

    update_data = project_in.row_values()

    logger.info(f"Updating project {project_id}: {sorted(update_data)}")

    for field, value in update_data.items():
        setattr(project, field, value)

    project.updated_at = datetime.now(timezone.utc)
    await session.flush()
    await session.refresh(project)
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete a project."""
    project = await get_project_or_404(session, project_id)

    logger.info(f"Deleting project {project_id}: '{project.title}'")

    await session.delete(project)
