import uuid
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from arbor.models.timestamps import timestamp_field

if TYPE_CHECKING:
    from arbor.models.project import Project


class Task(SQLModel, table=True):
    """
    Task model - one node of a project's work breakdown.

    Key fields:
    - parent_task_id: Self-reference; None means the task is a root
    - (tenant_id, project_id, name): unique together

    Whether a task is a root/child or leaf/internal node is derived from
    parent_task_id edges and never stored.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "project_id", "name",
            name="uq_tasks_tenant_id_project_id_name",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True, max_length=255)

    # Foreign keys
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", ondelete="CASCADE", index=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    parent_task_id: uuid.UUID | None = Field(default=None, foreign_key="tasks.id", index=True)

    # Timestamps
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()

    # Relationships
    project: "Project" = Relationship(back_populates="tasks")
