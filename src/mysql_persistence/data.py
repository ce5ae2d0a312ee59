"""
mysql_persistence.data

Value types shared by persistence operations.

Responsibilities:
- Paging parameters with skip/take clamping.
- Data pages returned by paged queries.
- Free-form filter parameters handed to child persistences.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PagingParams(BaseModel):
    skip: int | None = None
    take: int | None = None
    # Whether the page should carry the total number of matching items.
    total: bool = False

    def get_skip(self, min_skip: int) -> int:
        if self.skip is None or self.skip < min_skip:
            return min_skip
        return self.skip

    def get_take(self, max_take: int) -> int:
        if self.take is None:
            return max_take
        if self.take < 0:
            return 0
        return min(self.take, max_take)


class DataPage(BaseModel, Generic[T]):
    data: list[T] = Field(default_factory=list)
    total: int | None = None

    @property
    def has_data(self) -> bool:
        return len(self.data) > 0

    @property
    def has_total(self) -> bool:
        return self.total is not None


class FilterParams(dict[str, Any]):
    """
    Filter keys and values; child persistences turn them into SQL conditions.
    """

    @classmethod
    def from_tuples(cls, *tuples: Any) -> FilterParams:
        if len(tuples) % 2 != 0:
            raise ValueError("Filter tuples must come in key/value pairs")
        return cls(zip(tuples[0::2], tuples[1::2], strict=True))

    def get_as_nullable_string(self, key: str) -> str | None:
        value = self.get(key)
        if value is None:
            return None
        return str(value)
