from __future__ import annotations

import asyncio
import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from metrics_gateway.core.timeutil import to_utc
from metrics_gateway.models.metric import (
    MetricFilter,
    MetricRecord,
    MetricSort,
    SortField,
    TypeCount,
)


@dataclass
class FakeMetricRepository:
    _records: list[MetricRecord]
    fail_with: Exception | None

    def __init__(self) -> None:
        self._records = []
        self.fail_with = None

    def add(
        self,
        *,
        type: str,
        name: str,
        created_at: datetime,
        payload: dict[str, Any] | str | None = None,
    ) -> MetricRecord:
        payload_json = payload if isinstance(payload, str) or payload is None else json.dumps(payload)
        record = MetricRecord(
            id=len(self._records) + 1,
            type=type,
            name=name,
            payload_json=payload_json,
            created_at=to_utc(created_at),
        )
        self._records.append(record)
        return record

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _matching(self, criteria: MetricFilter) -> list[MetricRecord]:
        return [
            r
            for r in self._records
            if (not criteria.type or r.type == criteria.type)
            and (not criteria.name or criteria.name.lower() in r.name.lower())
            and (criteria.from_date is None or r.created_at >= criteria.from_date)
            and (criteria.to_date is None or r.created_at <= criteria.to_date)
        ]

    async def ping(self) -> None:
        self._check()

    async def get_by_id(self, metric_id: int) -> MetricRecord | None:
        self._check()
        return next((r for r in self._records if r.id == metric_id), None)

    async def count(self, criteria: MetricFilter) -> int:
        self._check()
        return len(self._matching(criteria))

    async def fetch(
        self,
        criteria: MetricFilter,
        *,
        sort: MetricSort,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MetricRecord]:
        self._check()
        rows = self._matching(criteria)
        attr = {
            SortField.TYPE: "type",
            SortField.NAME: "name",
            SortField.CREATED_AT: "created_at",
        }[sort.field]
        rows.sort(key=lambda r: (getattr(r, attr), r.id), reverse=sort.descending)
        end = None if limit is None else offset + limit
        return rows[offset:end]

    async def count_by_type(self, criteria: MetricFilter) -> list[TypeCount]:
        self._check()
        counts = Counter(r.type for r in self._matching(criteria))
        return [TypeCount(type=t, count=n) for t, n in counts.items()]

    async def distinct_types(self) -> list[str]:
        self._check()
        return sorted({r.type for r in self._records})


class BlockingMetricRepository(FakeMetricRepository):
    """Storage whose reads never complete until released."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def count(self, criteria: MetricFilter) -> int:
        self.started.set()
        await self.release.wait()
        return await super().count(criteria)
