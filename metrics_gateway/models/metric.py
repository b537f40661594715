from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class SortField(str, Enum):
    TYPE = "type"
    NAME = "name"
    CREATED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


_SORT_FIELDS = {
    "type": SortField.TYPE,
    "name": SortField.NAME,
    "createdat": SortField.CREATED_AT,
}


@dataclass(frozen=True)
class MetricRecord:
    id: int
    type: str
    name: str
    payload_json: str | None
    created_at: datetime


@dataclass(frozen=True)
class MetricView:
    id: int
    type: str
    name: str
    payload: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class MetricFilter:
    type: str | None = None
    name: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


@dataclass(frozen=True)
class MetricSort:
    """Single-key sort. Rows with equal keys are ordered by id in the same direction."""

    field: SortField = SortField.CREATED_AT
    order: SortOrder = SortOrder.DESC

    @property
    def descending(self) -> bool:
        return self.order is SortOrder.DESC

    @classmethod
    def resolve(cls, sort_by: str | None, sort_order: str | None) -> MetricSort:
        # Unknown or missing values fall back to created_at / desc.
        key = (sort_by or "").strip().lower().replace("_", "")
        order = SortOrder.ASC if (sort_order or "").strip().lower() == "asc" else SortOrder.DESC
        return cls(field=_SORT_FIELDS.get(key, SortField.CREATED_AT), order=order)


@dataclass(frozen=True)
class MetricQuery:
    type: str | None = None
    name: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    page: int = 1
    page_size: int = 10

    def to_filter(self) -> MetricFilter:
        return MetricFilter(
            type=self.type, name=self.name, from_date=self.from_date, to_date=self.to_date
        )


@dataclass(frozen=True)
class PagedResult(Generic[T]):
    items: list[T]
    total_count: int
    page: int
    page_size: int
    total_pages: int


@dataclass(frozen=True)
class TypeCount:
    type: str
    count: int


@dataclass(frozen=True)
class MetricsAggregation:
    total_count: int
    type_counts: list[TypeCount] = field(default_factory=list)


@dataclass(frozen=True)
class DailyAverage:
    date: date
    type: str
    name: str
    count: int
    average_values: dict[str, float] = field(default_factory=dict)
