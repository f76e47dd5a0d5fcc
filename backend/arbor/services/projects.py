"""
Project service: tenant-scoped project CRUD.

Deleting a project cascades to its tasks at the database level.
"""

import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arbor.config import Settings, get_settings
from arbor.context import RequestContext
from arbor.exceptions import ArborException, ConflictError, NotFoundError, UnresolvedReferenceError
from arbor.logging_config import get_logger
from arbor.models import Project
from arbor.schemas import ProjectCreate, ProjectUpdate, ProjectRead, Page
from arbor.services.query import ListParams, QueryResource, build_query_plan
from arbor.services.store import ConstraintKind, ProjectStore, classify_integrity_error

logger = get_logger(__name__)


PROJECT_RESOURCE = QueryResource(
    model=Project,
    id_column=Project.id,
    sortable={
        "id": Project.id,
        "name": Project.name,
        "code": Project.code,
        "active": Project.active,
        "created_at": Project.created_at,
    },
    filterable={
        "active": Project.active,
    },
    search_column=Project.name,
)


class ProjectService:
    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.store = ProjectStore(session)
        self.settings = settings or get_settings()

    async def find_all(self, ctx: RequestContext, params: ListParams) -> Page[ProjectRead]:
        plan = build_query_plan(
            PROJECT_RESOURCE,
            params,
            scope=(Project.tenant_id == ctx.tenant_id,),
            default_limit=self.settings.default_page_size,
            max_limit=self.settings.max_page_size,
        )
        projects, total = await self.store.list(plan)

        logger.debug(f"Listed {len(projects)}/{total} projects for tenant={ctx.tenant_id}")

        return Page[ProjectRead](
            data=[ProjectRead.model_validate(project) for project in projects],
            total=total,
            page=plan.page,
            limit=plan.limit,
        )

    async def find_one(self, ctx: RequestContext, project_id: uuid.UUID) -> Project:
        project = await self.store.get(ctx.tenant_id, project_id)
        if not project:
            raise NotFoundError("Project", str(project_id))
        return project

    async def create(self, ctx: RequestContext, project_in: ProjectCreate) -> Project:
        project = Project(tenant_id=ctx.tenant_id, **project_in.model_dump())

        try:
            project = await self.store.insert(project)
        except IntegrityError as exc:
            await self.store.rollback()
            error = self._translate_integrity_error(exc, ctx, project_in.name)
            if error is None:
                raise
            raise error from exc

        logger.info(f"Created project: id={project.id} name='{project.name}' tenant={ctx.tenant_id}")

        return project

    async def update(
        self,
        ctx: RequestContext,
        project_id: uuid.UUID,
        project_in: ProjectUpdate,
    ) -> Project:
        project = await self.find_one(ctx, project_id)
        update_data = project_in.model_dump(exclude_unset=True)

        logger.info(f"Updating project {project_id}: {update_data}")

        name = update_data.get("name", project.name)
        for field, value in update_data.items():
            setattr(project, field, value)

        try:
            project = await self.store.save(project)
        except IntegrityError as exc:
            await self.store.rollback()
            error = self._translate_integrity_error(exc, ctx, name)
            if error is None:
                raise
            raise error from exc

        return project

    async def remove(self, ctx: RequestContext, project_id: uuid.UUID) -> None:
        """Delete a project and all its tasks."""
        project = await self.find_one(ctx, project_id)

        logger.info(f"Deleting project {project_id}: '{project.name}'")

        await self.store.delete(project)

    def _translate_integrity_error(
        self,
        exc: IntegrityError,
        ctx: RequestContext,
        name: str,
    ) -> ArborException | None:
        violation = classify_integrity_error(exc)
        if violation is None:
            return None
        if violation.kind is ConstraintKind.UNIQUE:
            return ConflictError(f'Project with name "{name}" already exists for this tenant')
        # The only foreign key on projects is the tenant
        return UnresolvedReferenceError("Tenant", str(ctx.tenant_id))
