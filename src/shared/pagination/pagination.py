"""Pagination query parameters."""

from pydantic import BaseModel, Field

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


class PaginationParams(BaseModel):
    """Query parameters for pagination.

    Can be used as dependency in FastAPI routes:
    ```python
    @router.get("/users")
    async def list_users(pagination: PaginationParams = Depends()):
        stmt = select(User).offset(pagination.skip).limit(pagination.limit)
    ```
    """

    page: int | None = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int | None = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page")

    @property
    def skip(self) -> int:
        """Offset for the database query."""
        if not self.is_paginated:
            return 0
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int | None:
        """Row limit for the database query (None = no limit)."""
        return self.page_size

    @property
    def is_paginated(self) -> bool:
        return self.page is not None and self.page_size is not None


__all__ = ["PaginationParams"]
