"""
Task routes for the Arbor API.
"""

import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from arbor.context import RequestContext, get_request_context
from arbor.database import get_session
from arbor.exceptions import BadRequestError
from arbor.models import Task
from arbor.schemas import TaskCreate, TaskUpdate, TaskRead, HierarchyAudit, Page
from arbor.services.query import FieldFilter, ListParams
from arbor.services.tasks import TaskService

router = APIRouter()

NULL_FILTER_VALUES = ("", "null")


def get_task_service(session: AsyncSession = Depends(get_session)) -> TaskService:
    return TaskService(session)


def parse_parent_filter(raw: str | None) -> FieldFilter:
    """
    Turn the ``parent_task_id`` query parameter into a three-state filter.

    Absent -> no constraint, ``null`` or empty -> root tasks only,
    a UUID -> direct children of that task.
    """
    if raw is None:
        return FieldFilter.unset()
    if raw.strip().lower() in NULL_FILTER_VALUES:
        return FieldFilter.is_null()
    try:
        return FieldFilter.equals(uuid.UUID(raw))
    except ValueError:
        raise BadRequestError(
            "parent_task_id must be a UUID or 'null'",
            error_code="validation_error",
            details=[{
                "loc": ["query", "parent_task_id"],
                "msg": f"Invalid value {raw!r}",
                "type": "value_error",
            }],
        )


@router.get("/", response_model=Page[TaskRead])
async def list_tasks(
    page: int | None = None,
    limit: int | None = None,
    sort: str | None = Query(default=None, max_length=64, description="field:asc|desc"),
    tenant_id: uuid.UUID | None = None,
    project_id: uuid.UUID | None = None,
    parent_task_id: str | None = Query(
        default=None,
        description="Task UUID for direct children, or 'null' for root tasks",
    ),
    search: str | None = Query(default=None, max_length=255),
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> Page[TaskRead]:
    """
    List tasks with pagination, sorting, filtering and name search.

    Unknown sort fields fall back to the default order (newest id first).
    """
    params = ListParams(
        page=page,
        limit=limit,
        sort=sort,
        search=search,
        filters={
            "tenant_id": FieldFilter.optional(tenant_id),
            "project_id": FieldFilter.optional(project_id),
            "parent_task_id": parse_parent_filter(parent_task_id),
        },
    )
    return await service.find_all(ctx, params)


@router.get("/integrity", response_model=HierarchyAudit)
async def audit_hierarchy(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> HierarchyAudit:
    """Report parent loops stored in a project's task hierarchy."""
    return await service.audit_hierarchy(ctx, project_id)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> Task:
    """Get a task by ID."""
    return await service.find_one(ctx, task_id)


@router.get("/{task_id}/descendants", response_model=list[TaskRead])
async def list_descendants(
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> list[Task]:
    """Get every task below a task in the hierarchy."""
    return await service.find_descendants(ctx, task_id)


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> Task:
    """
    Create a new task.

    Pass parent_task_id to create a subtask; the parent must already exist.
    """
    return await service.create(ctx, task_in)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> Task:
    """
    Update a task.

    Setting parent_task_id to null moves the task to the root level.
    """
    return await service.update(ctx, task_id, task_in)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
) -> None:
    """Delete a task. Fails while the task still has child tasks."""
    await service.remove(ctx, task_id)
