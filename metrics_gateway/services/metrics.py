from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from statistics import fmean

from metrics_gateway.core.timeutil import end_of_day, start_of_day, utc_day
from metrics_gateway.models.metric import (
    DailyAverage,
    MetricFilter,
    MetricQuery,
    MetricRecord,
    MetricsAggregation,
    MetricSort,
    MetricView,
    PagedResult,
    SortField,
    SortOrder,
)
from metrics_gateway.repositories.base import MetricRepository
from metrics_gateway.services.payload import decode_payload, extract_numerics

DAILY_AVERAGE_MAX_DAYS = 30
DAILY_AVERAGE_TOP_FIELDS = 5

NEWEST_FIRST = MetricSort(field=SortField.CREATED_AT, order=SortOrder.DESC)


class MetricService:
    """Read-side operations over stored metrics.

    Input is assumed to be validated already (page bounds, sort names, date
    ordering). The service holds no state between calls.
    """

    def __init__(
        self, repo: MetricRepository, *, daily_average_max_days: int = DAILY_AVERAGE_MAX_DAYS
    ) -> None:
        self._repo = repo
        self._daily_average_max_days = daily_average_max_days

    async def get_metric(self, metric_id: int) -> MetricView | None:
        record = await self._repo.get_by_id(metric_id)
        return None if record is None else to_view(record)

    async def list_types(self) -> list[str]:
        return await self._repo.distinct_types()

    async def list_by_type(
        self, metric_type: str, *, page: int, page_size: int
    ) -> list[MetricView]:
        records = await self._repo.fetch(
            MetricFilter(type=metric_type),
            sort=NEWEST_FIRST,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return [to_view(r) for r in records]

    async def query_metrics(self, query: MetricQuery) -> PagedResult[MetricView]:
        criteria = query.to_filter()
        sort = MetricSort.resolve(query.sort_by, query.sort_order)

        total_count = await self._repo.count(criteria)
        records = await self._repo.fetch(
            criteria,
            sort=sort,
            offset=(query.page - 1) * query.page_size,
            limit=query.page_size,
        )
        return PagedResult(
            items=[to_view(r) for r in records],
            total_count=total_count,
            page=query.page,
            page_size=query.page_size,
            total_pages=math.ceil(total_count / query.page_size),
        )

    async def aggregate(
        self,
        *,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        metric_type: str | None = None,
        name: str | None = None,
    ) -> MetricsAggregation:
        criteria = MetricFilter(type=metric_type, name=name, from_date=from_date, to_date=to_date)
        total_count = await self._repo.count(criteria)
        type_counts = sorted(
            await self._repo.count_by_type(criteria), key=lambda tc: (-tc.count, tc.type)
        )
        return MetricsAggregation(total_count=total_count, type_counts=type_counts)

    async def daily_averages(
        self,
        *,
        from_date: datetime,
        to_date: datetime,
        metric_type: str | None = None,
        name: str | None = None,
    ) -> list[DailyAverage]:
        first_day, last_day = self.clamp_days(from_date, to_date)
        records = await self._repo.fetch(
            MetricFilter(
                type=metric_type,
                name=name,
                from_date=start_of_day(first_day),
                to_date=end_of_day(last_day),
            ),
            sort=MetricSort(field=SortField.CREATED_AT, order=SortOrder.ASC),
        )

        buckets: dict[tuple[date, str, str], list[str | None]] = defaultdict(list)
        for record in records:
            key = (utc_day(record.created_at), record.type, record.name)
            buckets[key].append(record.payload_json)

        return [
            DailyAverage(
                date=day,
                type=metric_type_,
                name=name_,
                count=len(payloads),
                average_values=average_top_fields(payloads),
            )
            for (day, metric_type_, name_), payloads in sorted(buckets.items())
        ]

    def clamp_days(self, from_date: datetime, to_date: datetime) -> tuple[date, date]:
        """Calendar-day bounds of a rollup, capped at the configured span."""
        first_day = utc_day(from_date)
        last_day = utc_day(to_date)
        max_span = timedelta(days=self._daily_average_max_days)
        if last_day - first_day > max_span:
            last_day = first_day + max_span
        return first_day, last_day


def average_top_fields(
    payloads: list[str | None], *, limit: int = DAILY_AVERAGE_TOP_FIELDS
) -> dict[str, float]:
    """Mean of each numeric payload field, keeping the `limit` most frequent fields.

    Frequency is the number of coercible values a field contributed across all
    payloads. Equal frequencies keep the order in which fields were first seen.
    """
    values: dict[str, list[float]] = {}
    for payload in payloads:
        for key, number in extract_numerics(payload).items():
            values.setdefault(key, []).append(number)

    ranked = sorted(values.items(), key=lambda item: len(item[1]), reverse=True)
    return {key: fmean(numbers) for key, numbers in ranked[:limit]}


def to_view(record: MetricRecord) -> MetricView:
    return MetricView(
        id=record.id,
        type=record.type,
        name=record.name,
        payload=decode_payload(record.payload_json),
        created_at=record.created_at,
    )
