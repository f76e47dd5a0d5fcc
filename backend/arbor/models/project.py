import uuid
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from arbor.models.timestamps import timestamp_field

if TYPE_CHECKING:
    from arbor.models.tenant import Tenant
    from arbor.models.task import Task


class Project(SQLModel, table=True):
    """Project model - groups tasks together within a tenant."""

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_projects_tenant_id_name"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", ondelete="CASCADE", index=True)
    name: str = Field(index=True, max_length=255)
    code: str | None = Field(default=None, max_length=50)
    active: bool = Field(default=True)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()

    # Relationships
    tenant: "Tenant" = Relationship(back_populates="projects")
    tasks: list["Task"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"passive_deletes": True},
    )
