"""
Task service: create/read/update/delete for the task hierarchy.

Every operation takes the caller's RequestContext and only touches rows of
that tenant. Structural rules checked here:
- a supplied parent must exist (same tenant)
- reparenting may not make a task its own ancestor
- a task with children cannot be deleted

Uniqueness and foreign keys are enforced by the database; failed writes are
translated into domain errors in ``_translate_integrity_error``.
"""

import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arbor.config import Settings, get_settings
from arbor.context import RequestContext
from arbor.exceptions import (
    ArborException,
    NotFoundError,
    ConflictError,
    SelfParentError,
    CircularReferenceError,
    HierarchyTooDeepError,
    TaskHasChildrenError,
    TenantMismatchError,
    UnresolvedReferenceError,
)
from arbor.logging_config import get_logger
from arbor.models import Task
from arbor.schemas import TaskCreate, TaskUpdate, TaskRead, HierarchyAudit, Page
from arbor.services.graph import build_hierarchy_graph, get_descendants, find_cycles
from arbor.services.hierarchy import ParentAssignment, validate_parent_assignment
from arbor.services.query import ListParams, QueryResource, build_query_plan
from arbor.services.store import ConstraintKind, TaskStore, classify_integrity_error

logger = get_logger(__name__)


TASK_RESOURCE = QueryResource(
    model=Task,
    id_column=Task.id,
    sortable={
        "id": Task.id,
        "name": Task.name,
        "tenant_id": Task.tenant_id,
        "project_id": Task.project_id,
        "parent_task_id": Task.parent_task_id,
        "created_at": Task.created_at,
        "updated_at": Task.updated_at,
    },
    filterable={
        "tenant_id": Task.tenant_id,
        "project_id": Task.project_id,
        "parent_task_id": Task.parent_task_id,
    },
    search_column=Task.name,
)


class TaskService:
    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.store = TaskStore(session)
        self.settings = settings or get_settings()

    async def find_all(self, ctx: RequestContext, params: ListParams) -> Page[TaskRead]:
        """One page of the tenant's tasks plus the total matching count."""
        plan = build_query_plan(
            TASK_RESOURCE,
            params,
            scope=(Task.tenant_id == ctx.tenant_id,),
            default_limit=self.settings.default_page_size,
            max_limit=self.settings.max_page_size,
        )
        tasks, total = await self.store.list(plan)

        logger.debug(
            f"Listed {len(tasks)}/{total} tasks for tenant={ctx.tenant_id} "
            f"(page={plan.page} limit={plan.limit} offset={plan.offset})"
        )

        return Page[TaskRead](
            data=[TaskRead.model_validate(task) for task in tasks],
            total=total,
            page=plan.page,
            limit=plan.limit,
        )

    async def find_one(
        self,
        ctx: RequestContext,
        task_id: uuid.UUID,
        resource: str = "Task",
    ) -> Task:
        task = await self.store.get(ctx.tenant_id, task_id)
        if not task:
            raise NotFoundError(resource, str(task_id))
        return task

    async def create(self, ctx: RequestContext, task_in: TaskCreate) -> Task:
        """
        Create a task, optionally under an existing parent.

        No cycle check is needed: a new task cannot be anyone's ancestor yet.
        With a depth limit configured, the parent's ancestor chain is held to it.
        """
        if task_in.tenant_id is not None and task_in.tenant_id != ctx.tenant_id:
            raise TenantMismatchError(str(task_in.tenant_id))

        if task_in.parent_task_id is not None:
            await self.find_one(ctx, task_in.parent_task_id, resource="Parent task")

        if not await self.store.project_exists(ctx.tenant_id, task_in.project_id):
            raise await self._unresolved_reference(ctx, task_in.project_id)

        task = Task(
            tenant_id=ctx.tenant_id,
            project_id=task_in.project_id,
            name=task_in.name,
            parent_task_id=task_in.parent_task_id,
        )

        max_depth = self.settings.hierarchy_max_depth
        if task_in.parent_task_id is not None and max_depth is not None:
            result = await validate_parent_assignment(
                self.store, ctx.tenant_id, task.id, task_in.parent_task_id, max_depth=max_depth,
            )
            if result is ParentAssignment.TOO_DEEP:
                logger.warning(f"Depth limit rejected: new task '{task_in.name}' under {task_in.parent_task_id}")
                raise HierarchyTooDeepError(str(task_in.parent_task_id), max_depth)

        try:
            task = await self.store.insert(task)
        except IntegrityError as exc:
            await self.store.rollback()
            error = await self._translate_integrity_error(
                exc, ctx, task_in.name, task_in.project_id, task_in.parent_task_id,
            )
            if error is None:
                raise
            raise error from exc

        logger.info(
            f"Created task: id={task.id} name='{task.name}' project={task.project_id} "
            f"parent={task.parent_task_id} actor={ctx.actor_id}"
        )

        return task

    async def update(self, ctx: RequestContext, task_id: uuid.UUID, task_in: TaskUpdate) -> Task:
        """
        Apply the fields present in ``task_in``.

        ``parent_task_id`` may be set to another task (validated against the
        hierarchy) or explicitly to None to detach the task to the root level.
        """
        task = await self.find_one(ctx, task_id)
        update_data = task_in.model_dump(exclude_unset=True)

        if "parent_task_id" in update_data:
            await self._check_new_parent(ctx, task, update_data["parent_task_id"])

        logger.info(f"Updating task {task_id}: {update_data}")

        # Captured before the write; a failed flush expires the instance
        project_id = task.project_id
        name = update_data.get("name", task.name)
        parent_task_id = update_data.get("parent_task_id", task.parent_task_id)

        for field, value in update_data.items():
            setattr(task, field, value)

        try:
            task = await self.store.save(task)
        except IntegrityError as exc:
            await self.store.rollback()
            error = await self._translate_integrity_error(exc, ctx, name, project_id, parent_task_id)
            if error is None:
                raise
            raise error from exc

        return task

    async def remove(self, ctx: RequestContext, task_id: uuid.UUID) -> None:
        """Delete a childless task. Hierarchies are removed leaves-first."""
        task = await self.find_one(ctx, task_id)

        child_count = await self.store.count_children(ctx.tenant_id, task_id)
        if child_count > 0:
            logger.warning(f"Refusing to delete task {task_id}: {child_count} child task(s)")
            raise TaskHasChildrenError(str(task_id), child_count)

        logger.info(f"Deleting task {task_id}: '{task.name}'")

        try:
            await self.store.delete(task)
        except IntegrityError as exc:
            # A child was attached after the count above
            await self.store.rollback()
            violation = classify_integrity_error(exc)
            if violation is None or violation.kind is not ConstraintKind.FOREIGN_KEY:
                raise
            child_count = await self.store.count_children(ctx.tenant_id, task_id)
            raise TaskHasChildrenError(str(task_id), child_count) from exc

    async def find_descendants(self, ctx: RequestContext, task_id: uuid.UUID) -> list[Task]:
        """Every task below ``task_id`` in the hierarchy, ordered by name."""
        await self.find_one(ctx, task_id)

        graph = await build_hierarchy_graph(self.store, ctx.tenant_id)
        descendant_ids = get_descendants(graph, task_id)

        logger.debug(f"Task {task_id} has {len(descendant_ids)} descendants")

        return await self.store.get_many(ctx.tenant_id, descendant_ids)

    async def audit_hierarchy(self, ctx: RequestContext, project_id: uuid.UUID) -> HierarchyAudit:
        """
        Report parent loops stored in a project.

        Loops can only appear when concurrent reparent requests each passed
        validation on their own. They are reported, not repaired.
        """
        if not await self.store.project_exists(ctx.tenant_id, project_id):
            raise NotFoundError("Project", str(project_id))

        graph = await build_hierarchy_graph(self.store, ctx.tenant_id, project_id)
        cycles = find_cycles(graph)
        task_count = sum(1 for _, data in graph.nodes(data=True) if "name" in data)

        if cycles:
            logger.warning(f"Hierarchy audit found {len(cycles)} cycle(s) in project {project_id}")

        return HierarchyAudit(project_id=project_id, task_count=task_count, cycles=cycles)

    async def _check_new_parent(
        self,
        ctx: RequestContext,
        task: Task,
        parent_task_id: uuid.UUID | None,
    ) -> None:
        if parent_task_id is None:
            # Detaching to the root level is always allowed
            return

        if parent_task_id == task.id:
            logger.warning(f"Self-parent rejected: {task.id}")
            raise SelfParentError(str(task.id))

        if parent_task_id == task.parent_task_id:
            return

        await self.find_one(ctx, parent_task_id, resource="Parent task")

        result = await validate_parent_assignment(
            self.store,
            ctx.tenant_id,
            task.id,
            parent_task_id,
            max_depth=self.settings.hierarchy_max_depth,
        )

        if result is ParentAssignment.SELF_PARENT:
            raise SelfParentError(str(task.id))
        if result is ParentAssignment.CYCLE:
            logger.warning(f"Cycle rejected: {parent_task_id} is a descendant of {task.id}")
            raise CircularReferenceError(str(task.id), str(parent_task_id))
        if result is ParentAssignment.TOO_DEEP:
            logger.warning(f"Depth limit rejected: {task.id} under {parent_task_id}")
            raise HierarchyTooDeepError(str(parent_task_id), self.settings.hierarchy_max_depth)

    async def _unresolved_reference(
        self,
        ctx: RequestContext,
        project_id: uuid.UUID,
    ) -> UnresolvedReferenceError:
        if not await self.store.tenant_exists(ctx.tenant_id):
            return UnresolvedReferenceError("Tenant", str(ctx.tenant_id))
        return UnresolvedReferenceError("Project", str(project_id))

    async def _translate_integrity_error(
        self,
        exc: IntegrityError,
        ctx: RequestContext,
        name: str,
        project_id: uuid.UUID,
        parent_task_id: uuid.UUID | None,
    ) -> ArborException | None:
        """
        Map a failed task write onto a domain error.

        Returns None when the error is not a constraint this service knows
        about; the caller then re-raises the original.
        """
        violation = classify_integrity_error(exc)
        if violation is None:
            return None

        if violation.kind is ConstraintKind.UNIQUE:
            logger.warning(f"Duplicate task name rejected: '{name}' in project {project_id}")
            return ConflictError(f'Task with name "{name}" already exists for project {project_id}')

        column = violation.column
        if column is None:
            # Backend did not name the key; find the reference that is missing
            if not await self.store.tenant_exists(ctx.tenant_id):
                column = "tenant_id"
            elif not await self.store.project_exists(ctx.tenant_id, project_id):
                column = "project_id"
            elif parent_task_id is not None and not await self.store.get(ctx.tenant_id, parent_task_id):
                column = "parent_task_id"

        if column == "tenant_id":
            return UnresolvedReferenceError("Tenant", str(ctx.tenant_id))
        if column == "project_id":
            return UnresolvedReferenceError("Project", str(project_id))
        if column == "parent_task_id":
            return NotFoundError("Parent task", str(parent_task_id))
        return None
