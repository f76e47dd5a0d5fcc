import uuid
from datetime import datetime
from pydantic import BaseModel, Field, computed_field, field_validator


class TaskCreate(BaseModel):
    """Schema for creating a new task."""
    tenant_id: uuid.UUID | None = None  # Defaults to the request tenant
    project_id: uuid.UUID
    name: str = Field(min_length=1, max_length=255)
    parent_task_id: uuid.UUID | None = None


class TaskUpdate(BaseModel):
    """
    Schema for partially updating a task.

    Only fields present in the request body are applied. Sending
    ``"parent_task_id": null`` detaches the task to the root level, which is
    different from leaving the field out.
    """
    name: str | None = Field(default=None, min_length=1, max_length=255)
    parent_task_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("name cannot be null")
        return value


class TaskRead(BaseModel):
    """Schema for reading a task."""
    id: uuid.UUID
    tenant_id: uuid.UUID
    project_id: uuid.UUID
    name: str
    parent_task_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HierarchyAudit(BaseModel):
    """Cycles found in a project's stored hierarchy."""
    project_id: uuid.UUID
    task_count: int
    cycles: list[list[uuid.UUID]]

    @computed_field
    @property
    def is_consistent(self) -> bool:
        return not self.cycles
