from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status

from metrics_gateway.api.deps import Pipeline, Repository, Service
from metrics_gateway.models.metric import MetricView
from metrics_gateway.schemas.metrics import (
    DailyAverageRead,
    DailyAverageRequest,
    MetricAggregationRequest,
    MetricIdRequest,
    MetricPage,
    MetricQueryRequest,
    MetricRead,
    MetricsAggregationRead,
    MetricsByTypeRequest,
    TypeAggregationRead,
    parse_request,
)

router = APIRouter(prefix="/metrics")

TypeFilter = Annotated[str | None, Query(alias="type")]
NameFilter = Annotated[str | None, Query()]
FromDate = Annotated[datetime | None, Query(alias="fromDate")]
ToDate = Annotated[datetime | None, Query(alias="toDate")]


def _to_read(view: MetricView) -> MetricRead:
    return MetricRead.model_validate(view.__dict__)


@router.get("", response_model=MetricPage)
async def list_metrics(
    response: Response,
    service: Service,
    pipeline: Pipeline,
    metric_type: TypeFilter = None,
    name: NameFilter = None,
    from_date: FromDate = None,
    to_date: ToDate = None,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
    page: Annotated[int, Query()] = 1,
    page_size: Annotated[int, Query(alias="pageSize")] = 10,
) -> MetricPage:
    request = parse_request(
        MetricQueryRequest,
        type=metric_type,
        name=name,
        from_date=from_date,
        to_date=to_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    result = await pipeline.run("query_metrics", lambda: service.query_metrics(request.to_query()))

    response.headers["X-Total-Count"] = str(result.total_count)
    response.headers["X-Page"] = str(result.page)
    response.headers["X-Page-Size"] = str(result.page_size)
    response.headers["X-Total-Pages"] = str(result.total_pages)
    return MetricPage(
        items=[_to_read(v) for v in result.items],
        total_count=result.total_count,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/health", tags=["meta"])
async def health(repo: Repository, pipeline: Pipeline) -> dict[str, str]:
    await pipeline.run("ping", repo.ping)
    return {"status": "healthy", "timestamp": datetime.now(tz=timezone.utc).isoformat()}


@router.get("/types", response_model=list[str])
async def list_metric_types(service: Service, pipeline: Pipeline) -> list[str]:
    return await pipeline.run("list_types", service.list_types)


@router.get("/aggregation", response_model=MetricsAggregationRead)
async def aggregate_metrics(
    service: Service,
    pipeline: Pipeline,
    metric_type: TypeFilter = None,
    name: NameFilter = None,
    from_date: FromDate = None,
    to_date: ToDate = None,
) -> MetricsAggregationRead:
    request = parse_request(
        MetricAggregationRequest,
        type=metric_type,
        name=name,
        from_date=from_date,
        to_date=to_date,
    )
    result = await pipeline.run(
        "aggregate",
        lambda: service.aggregate(
            from_date=request.from_date,
            to_date=request.to_date,
            metric_type=request.type,
            name=request.name,
        ),
    )
    return MetricsAggregationRead(
        total_count=result.total_count,
        type_aggregations=[
            TypeAggregationRead(type=tc.type, count=tc.count) for tc in result.type_counts
        ],
    )


@router.get("/daily-averages", response_model=list[DailyAverageRead])
async def daily_averages(
    service: Service,
    pipeline: Pipeline,
    from_date: FromDate = None,
    to_date: ToDate = None,
    metric_type: TypeFilter = None,
    name: NameFilter = None,
) -> list[DailyAverageRead]:
    request = parse_request(
        DailyAverageRequest,
        type=metric_type,
        name=name,
        from_date=from_date,
        to_date=to_date,
    )
    rows = await pipeline.run(
        "daily_averages",
        lambda: service.daily_averages(
            from_date=request.from_date,
            to_date=request.to_date,
            metric_type=request.type,
            name=request.name,
        ),
    )
    return [DailyAverageRead.model_validate(r.__dict__) for r in rows]


@router.get("/type/{metric_type}", response_model=list[MetricRead])
async def list_metrics_by_type(
    metric_type: str,
    service: Service,
    pipeline: Pipeline,
    page: Annotated[int, Query()] = 1,
    page_size: Annotated[int, Query(alias="pageSize")] = 10,
) -> list[MetricRead]:
    request = parse_request(MetricsByTypeRequest, type=metric_type, page=page, page_size=page_size)
    views = await pipeline.run(
        "list_by_type",
        lambda: service.list_by_type(
            request.type, page=request.page, page_size=request.page_size
        ),
    )
    return [_to_read(v) for v in views]


@router.get("/{metric_id}", response_model=MetricRead)
async def get_metric(metric_id: int, service: Service, pipeline: Pipeline) -> MetricRead:
    request = parse_request(MetricIdRequest, id=metric_id)
    view = await pipeline.run("get_metric", lambda: service.get_metric(request.id))
    if view is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Metric with id {metric_id} not found",
        )
    return _to_read(view)
