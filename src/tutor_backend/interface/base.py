from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field

from tutor_backend.settings import settings
from tutor_backend.utils import page_count

T = TypeVar("T")

class ListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(settings.DEFAULT_PAGE_LIMIT, ge=1, le=100)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

class BaseEntityList(BaseModel):
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Update timestamp")

class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, items: List[T], total: int, params: ListQuery) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            page=params.page,
            limit=params.limit,
            pages=page_count(total, params.limit)
        )
