import uuid
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""
    name: str = Field(min_length=1, max_length=255)
    code: str | None = Field(default=None, max_length=50)
    active: bool = True


class ProjectUpdate(BaseModel):
    """Schema for updating a project."""
    name: str | None = Field(default=None, min_length=1, max_length=255)
    code: str | None = Field(default=None, max_length=50)
    active: bool | None = None

    @field_validator("name", "active")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value


class ProjectRead(BaseModel):
    """Schema for reading a project."""
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    code: str | None
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
