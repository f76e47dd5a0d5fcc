import uuid
from datetime import datetime
from typing import TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship

from arbor.models.timestamps import timestamp_field

if TYPE_CHECKING:
    from arbor.models.project import Project


class Tenant(SQLModel, table=True):
    """Tenant model - the isolation boundary every other row belongs to."""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    created_at: datetime = timestamp_field()

    # Relationships
    projects: list["Project"] = Relationship(
        back_populates="tenant",
        sa_relationship_kwargs={"passive_deletes": True},
    )
