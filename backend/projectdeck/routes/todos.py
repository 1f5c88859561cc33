"""
Combined todo list across all projects.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from projectdeck.database import get_session
from projectdeck.models import Project
from projectdeck.schemas import CombinedTodo, ProjectRead
from projectdeck.logging_config import get_logger
from projectdeck.services.todos import combine_todos

logger = get_logger(__name__)

router = APIRouter()


@router.get("/", response_model=list[CombinedTodo])
async def list_todos(
    session: AsyncSession = Depends(get_session),
) -> list[CombinedTodo]:
    """Every open todo, grouped by project in dashboard order."""
    result = await session.execute(
        select(Project).order_by(Project.created_at.desc())
    )
    projects = [ProjectRead.model_validate(row) for row in result.scalars().all()]
    todos = combine_todos(projects)

    logger.debug(f"Listed {len(todos)} todos across {len(projects)} projects")

    return todos
