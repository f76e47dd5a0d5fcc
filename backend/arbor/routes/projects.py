"""
Project routes for the Arbor API.
"""

import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from arbor.context import RequestContext, get_request_context
from arbor.database import get_session
from arbor.models import Project
from arbor.schemas import ProjectCreate, ProjectUpdate, ProjectRead, Page
from arbor.services.projects import ProjectService
from arbor.services.query import FieldFilter, ListParams

router = APIRouter()


def get_project_service(session: AsyncSession = Depends(get_session)) -> ProjectService:
    return ProjectService(session)


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ProjectService = Depends(get_project_service),
) -> Project:
    """Create a new project."""
    return await service.create(ctx, project_in)


@router.get("/", response_model=Page[ProjectRead])
async def list_projects(
    page: int | None = None,
    limit: int | None = None,
    sort: str | None = Query(default=None, max_length=64),
    active: bool | None = None,
    search: str | None = Query(default=None, max_length=255),
    ctx: RequestContext = Depends(get_request_context),
    service: ProjectService = Depends(get_project_service),
) -> Page[ProjectRead]:
    """List projects of the request tenant."""
    params = ListParams(
        page=page,
        limit=limit,
        sort=sort,
        search=search,
        filters={"active": FieldFilter.optional(active)},
    )
    return await service.find_all(ctx, params)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: ProjectService = Depends(get_project_service),
) -> Project:
    """Get a project by ID."""
    return await service.find_one(ctx, project_id)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: ProjectService = Depends(get_project_service),
) -> Project:
    """Update a project."""
    return await service.update(ctx, project_id, project_in)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: ProjectService = Depends(get_project_service),
) -> None:
    """Delete a project and all its tasks."""
    await service.remove(ctx, project_id)
