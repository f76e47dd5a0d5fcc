"""
Tenant-scoped persistence for tasks and projects.

Every read and write goes through a store bound to one request session and
filters on the tenant id it is given. Constraint enforcement (uniqueness,
foreign keys) is left to the database; ``classify_integrity_error`` tells the
services which kind of constraint a failed write tripped.
"""

import enum
import re
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func
from sqlmodel import select

from arbor.models import Tenant, Project, Task
from arbor.models.timestamps import utc_now
from arbor.services.query import QueryPlan

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

# Longest first so "parent_task_id" is not mistaken for another column
REFERENCE_COLUMNS = ("parent_task_id", "project_id", "tenant_id")

_KEY_DETAIL = re.compile(r"Key \((?P<column>[a-z_]+)\)")


class ConstraintKind(str, enum.Enum):
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"


@dataclass(frozen=True)
class ConstraintViolation:
    kind: ConstraintKind
    column: str | None = None  # None when the backend does not say which


def _sqlstate(error) -> str | None:
    for candidate in (error, getattr(error, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def _constraint_name(error) -> str | None:
    for candidate in (error, getattr(error, "__cause__", None)):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
        diag = getattr(candidate, "diag", None)
        if diag is not None and getattr(diag, "constraint_name", None):
            return diag.constraint_name
    return None


def _reference_column(constraint: str | None, message: str) -> str | None:
    if constraint:
        for column in REFERENCE_COLUMNS:
            if column in constraint:
                return column
    match = _KEY_DETAIL.search(message)
    if match and match.group("column") in REFERENCE_COLUMNS:
        return match.group("column")
    return None


def classify_integrity_error(exc: IntegrityError) -> ConstraintViolation | None:
    """
    Work out which constraint a failed write violated.

    PostgreSQL drivers expose a SQLSTATE and the constraint name; SQLite only
    gives a message, and for foreign keys not even the column. Returns None
    for integrity errors that are neither unique nor foreign-key violations.
    """
    error = exc.orig
    message = str(error)
    code = _sqlstate(error)

    if code == UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
        return ConstraintViolation(ConstraintKind.UNIQUE)
    if code == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in message:
        return ConstraintViolation(
            ConstraintKind.FOREIGN_KEY,
            column=_reference_column(_constraint_name(error), message),
        )
    return None


class TenantScopedStore:
    """Basic reads and writes for one tenant-owned model."""

    model = None

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, tenant_id: uuid.UUID, row_id: uuid.UUID):
        query = select(self.model).where(
            self.model.id == row_id,
            self.model.tenant_id == tenant_id,
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_many(self, tenant_id: uuid.UUID, row_ids) -> list:
        row_ids = list(row_ids)
        if not row_ids:
            return []
        query = (
            select(self.model)
            .where(self.model.id.in_(row_ids), self.model.tenant_id == tenant_id)
            .order_by(self.model.name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def insert(self, row):
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def save(self, row):
        row.updated_at = utc_now()
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def delete(self, row) -> None:
        await self.session.delete(row)
        await self.session.flush()

    async def rollback(self) -> None:
        """Discard the failed write so the session can keep reading."""
        await self.session.rollback()

    async def list(self, plan: QueryPlan) -> tuple[list, int]:
        """Run a query plan; returns (rows for the page, total matching rows)."""
        total = (await self.session.execute(plan.count_statement())).scalar_one()
        result = await self.session.execute(plan.page_statement())
        return list(result.scalars().all()), total

    async def tenant_exists(self, tenant_id: uuid.UUID) -> bool:
        return await self.session.get(Tenant, tenant_id) is not None


class ProjectStore(TenantScopedStore):
    model = Project

    async def exists(self, tenant_id: uuid.UUID, project_id: uuid.UUID) -> bool:
        return await self.get(tenant_id, project_id) is not None


class TaskStore(TenantScopedStore):
    model = Task

    async def get_parent_id(self, tenant_id: uuid.UUID, task_id: uuid.UUID) -> uuid.UUID | None:
        """Parent of a task; None for a root task or a task that does not exist."""
        query = select(Task.parent_task_id).where(
            Task.id == task_id,
            Task.tenant_id == tenant_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count_children(self, tenant_id: uuid.UUID, task_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(Task).where(
            Task.parent_task_id == task_id,
            Task.tenant_id == tenant_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def project_exists(self, tenant_id: uuid.UUID, project_id: uuid.UUID) -> bool:
        return await ProjectStore(self.session).exists(tenant_id, project_id)

    async def hierarchy_rows(
        self,
        tenant_id: uuid.UUID,
        project_id: uuid.UUID | None = None,
    ) -> list[tuple[uuid.UUID, uuid.UUID | None, str]]:
        """(id, parent_task_id, name) for every task in the tenant or one project."""
        query = select(Task.id, Task.parent_task_id, Task.name).where(Task.tenant_id == tenant_id)
        if project_id is not None:
            query = query.where(Task.project_id == project_id)
        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]
