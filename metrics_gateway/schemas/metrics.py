from __future__ import annotations

import datetime as dt
from collections.abc import Sequence
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from metrics_gateway.core.exceptions import InvalidRequestError
from metrics_gateway.core.timeutil import to_utc
from metrics_gateway.models.metric import MetricQuery

MAX_PAGE_SIZE = 100
# Ids and page numbers are 32-bit signed integers in the metrics store.
MAX_INT32 = 2**31 - 1

SORT_FIELDS = {"type": "type", "name": "name", "createdat": "createdAt"}
SORT_ORDERS = {"asc", "desc"}

RequestT = TypeVar("RequestT", bound=BaseModel)


def parse_request(model: type[RequestT], **values: Any) -> RequestT:
    """Build a request model, turning validation failures into InvalidRequestError."""
    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise InvalidRequestError(format_errors(e.errors())) from e


def format_errors(errors: Sequence[Any]) -> list[str]:
    """Render pydantic/FastAPI error dicts as "location: message" strings."""
    return [_error_message(err) for err in errors]


def _error_message(err: Any) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
    message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


class _MetricFilters(BaseModel):
    type: str | None = Field(default=None, max_length=100)
    name: str | None = Field(default=None, max_length=255)
    from_date: datetime | None = None
    to_date: datetime | None = None

    @field_validator("type", "name")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v

    @field_validator("from_date", "to_date")
    @classmethod
    def _dates_to_utc(cls, v: datetime | None) -> datetime | None:
        return None if v is None else to_utc(v)

    @model_validator(mode="after")
    def _check_range(self) -> _MetricFilters:
        if self.from_date and self.to_date and self.to_date < self.from_date:
            raise ValueError("toDate must be greater than or equal to fromDate")
        return self


class MetricQueryRequest(_MetricFilters):
    sort_by: str | None = None
    sort_order: str | None = None
    page: int = Field(default=1, ge=1, le=MAX_INT32)
    page_size: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("sort_by")
    @classmethod
    def _check_sort_by(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        key = v.strip().lower().replace("_", "")
        if key not in SORT_FIELDS:
            raise ValueError("SortBy must be one of: Type, Name, CreatedAt")
        return SORT_FIELDS[key]

    @field_validator("sort_order")
    @classmethod
    def _check_sort_order(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        order = v.strip().lower()
        if order not in SORT_ORDERS:
            raise ValueError("SortOrder must be 'asc' or 'desc'")
        return order

    def to_query(self) -> MetricQuery:
        return MetricQuery(
            type=self.type,
            name=self.name,
            from_date=self.from_date,
            to_date=self.to_date,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            page=self.page,
            page_size=self.page_size,
        )


class MetricAggregationRequest(_MetricFilters):
    pass


class DailyAverageRequest(_MetricFilters):
    from_date: datetime
    to_date: datetime


class MetricIdRequest(BaseModel):
    id: int = Field(ge=1, le=MAX_INT32)


class MetricsByTypeRequest(BaseModel):
    type: str = Field(min_length=1, max_length=100)
    page: int = Field(default=1, ge=1, le=MAX_INT32)
    page_size: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("type")
    @classmethod
    def _type_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Type cannot be null or empty")
        return v


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MetricRead(_CamelModel):
    id: int
    type: str
    name: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class MetricPage(_CamelModel):
    items: list[MetricRead]
    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total_pages: int = Field(ge=0)


class TypeAggregationRead(_CamelModel):
    type: str
    count: int = Field(ge=0)


class MetricsAggregationRead(_CamelModel):
    total_count: int = Field(ge=0)
    type_aggregations: list[TypeAggregationRead] = Field(default_factory=list)


class DailyAverageRead(_CamelModel):
    date: dt.date
    type: str
    name: str
    average_values: dict[str, float] = Field(default_factory=dict)
    count: int = Field(ge=0)
