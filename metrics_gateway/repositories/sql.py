from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, Select, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from metrics_gateway.core.timeutil import to_utc
from metrics_gateway.db.models import MetricRow
from metrics_gateway.models.metric import (
    MetricFilter,
    MetricRecord,
    MetricSort,
    SortField,
    TypeCount,
)

SORT_COLUMNS = {
    SortField.TYPE: MetricRow.type,
    SortField.NAME: MetricRow.name,
    SortField.CREATED_AT: MetricRow.created_at,
}


class SqlMetricRepository:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session

    async def ping(self) -> None:
        await self._session.execute(text("SELECT 1"))

    async def get_by_id(self, metric_id: int) -> MetricRecord | None:
        row = await self._session.get(MetricRow, metric_id)
        if row is None:
            return None
        return _to_record(row)

    async def count(self, criteria: MetricFilter) -> int:
        stmt = select(func.count()).select_from(MetricRow).where(*_conditions(criteria))
        return int(await self._session.scalar(stmt) or 0)

    async def fetch(
        self,
        criteria: MetricFilter,
        *,
        sort: MetricSort,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MetricRecord]:
        stmt: Select[Any] = _ordered(select(MetricRow).where(*_conditions(criteria)), sort)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = await self._session.scalars(stmt)
        return [_to_record(row) for row in rows]

    async def count_by_type(self, criteria: MetricFilter) -> list[TypeCount]:
        stmt = (
            select(MetricRow.type, func.count(MetricRow.id))
            .where(*_conditions(criteria))
            .group_by(MetricRow.type)
        )
        result = await self._session.execute(stmt)
        return [TypeCount(type=metric_type or "", count=int(n)) for metric_type, n in result]

    async def distinct_types(self) -> list[str]:
        stmt = select(MetricRow.type).distinct().order_by(MetricRow.type)
        return list(await self._session.scalars(stmt))


def _conditions(criteria: MetricFilter) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if criteria.type:
        conditions.append(MetricRow.type == criteria.type)
    if criteria.name:
        conditions.append(MetricRow.name.contains(criteria.name, autoescape=True))
    if criteria.from_date is not None:
        conditions.append(MetricRow.created_at >= to_utc(criteria.from_date))
    if criteria.to_date is not None:
        conditions.append(MetricRow.created_at <= to_utc(criteria.to_date))
    return conditions


def _ordered(stmt: Select[Any], sort: MetricSort) -> Select[Any]:
    column = SORT_COLUMNS[sort.field]
    if sort.descending:
        return stmt.order_by(column.desc(), MetricRow.id.desc())
    return stmt.order_by(column.asc(), MetricRow.id.asc())


def _to_record(row: MetricRow) -> MetricRecord:
    return MetricRecord(
        id=row.id,
        type=row.type,
        name=row.name,
        payload_json=row.payload_json,
        created_at=to_utc(row.created_at),
    )
