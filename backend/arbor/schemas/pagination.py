import math
from typing import Generic, TypeVar
from pydantic import BaseModel, computed_field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated response envelope."""
    data: list[T]
    total: int
    page: int
    limit: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
