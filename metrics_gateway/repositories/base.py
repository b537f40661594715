from __future__ import annotations

from typing import Protocol

from metrics_gateway.models.metric import MetricFilter, MetricRecord, MetricSort, TypeCount


class MetricRepository(Protocol):
    async def ping(self) -> None: ...

    async def get_by_id(self, metric_id: int) -> MetricRecord | None: ...

    async def count(self, criteria: MetricFilter) -> int: ...

    async def fetch(
        self,
        criteria: MetricFilter,
        *,
        sort: MetricSort,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MetricRecord]: ...

    async def count_by_type(self, criteria: MetricFilter) -> list[TypeCount]: ...

    async def distinct_types(self) -> list[str]: ...
