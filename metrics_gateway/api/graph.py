"""GraphQL view of the metrics read operations.

Resolvers validate their arguments with the same request models as the REST
routes and run the service through the request's operation pipeline. Invalid
arguments and storage failures surface as GraphQL errors.
"""

import datetime as dt
from datetime import datetime
from typing import Annotated, Any

import strawberry
from strawberry.fastapi import GraphQLRouter
from strawberry.scalars import JSON
from strawberry.types import Info

from metrics_gateway.api.deps import Pipeline, Service
from metrics_gateway.core.pipeline import OperationPipeline
from metrics_gateway.models.metric import MetricView
from metrics_gateway.schemas.metrics import (
    DailyAverageRequest,
    MetricAggregationRequest,
    MetricIdRequest,
    MetricQueryRequest,
    MetricsByTypeRequest,
    parse_request,
)
from metrics_gateway.services.metrics import MetricService

TypeArgument = Annotated[str | None, strawberry.argument(name="type")]


@strawberry.type
class Metric:
    id: int
    type: str
    name: str
    payload: JSON
    created_at: datetime

    @classmethod
    def from_view(cls, view: MetricView) -> "Metric":
        return cls(
            id=view.id,
            type=view.type,
            name=view.name,
            payload=view.payload,
            created_at=view.created_at,
        )


@strawberry.type
class MetricPage:
    items: list[Metric]
    total_count: int
    page: int
    page_size: int
    total_pages: int


@strawberry.type
class TypeAggregation:
    type: str
    count: int


@strawberry.type
class MetricsAggregation:
    total_count: int
    type_aggregations: list[TypeAggregation]


@strawberry.type
class DailyAverageMetric:
    date: dt.date
    type: str
    name: str
    count: int
    average_values: JSON = strawberry.field(
        description="Average of the five most frequent numeric payload fields"
    )


@strawberry.input
class MetricFilterInput:
    type: str | None = None
    name: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


def _runtime(info: Info) -> tuple[MetricService, OperationPipeline]:
    return info.context["service"], info.context["pipeline"]


@strawberry.type
class Query:
    @strawberry.field
    async def metrics(
        self,
        info: Info,
        where: MetricFilterInput | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> MetricPage:
        where = where or MetricFilterInput()
        request = parse_request(
            MetricQueryRequest,
            type=where.type,
            name=where.name,
            from_date=where.from_date,
            to_date=where.to_date,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )
        service, pipeline = _runtime(info)
        result = await pipeline.run("query_metrics", lambda: service.query_metrics(request.to_query()))
        return MetricPage(
            items=[Metric.from_view(v) for v in result.items],
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )

    @strawberry.field
    async def metric_by_id(self, info: Info, id: int) -> Metric | None:
        request = parse_request(MetricIdRequest, id=id)
        service, pipeline = _runtime(info)
        view = await pipeline.run("get_metric", lambda: service.get_metric(request.id))
        return None if view is None else Metric.from_view(view)

    @strawberry.field
    async def metrics_by_type(
        self,
        info: Info,
        metric_type: Annotated[str, strawberry.argument(name="type")],
        page: int = 1,
        page_size: int = 10,
    ) -> list[Metric]:
        request = parse_request(
            MetricsByTypeRequest, type=metric_type, page=page, page_size=page_size
        )
        service, pipeline = _runtime(info)
        views = await pipeline.run(
            "list_by_type",
            lambda: service.list_by_type(
                request.type, page=request.page, page_size=request.page_size
            ),
        )
        return [Metric.from_view(v) for v in views]

    @strawberry.field
    async def metrics_aggregation(
        self,
        info: Info,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        metric_type: TypeArgument = None,
        name: str | None = None,
    ) -> MetricsAggregation:
        request = parse_request(
            MetricAggregationRequest,
            type=metric_type,
            name=name,
            from_date=from_date,
            to_date=to_date,
        )
        service, pipeline = _runtime(info)
        result = await pipeline.run(
            "aggregate",
            lambda: service.aggregate(
                from_date=request.from_date,
                to_date=request.to_date,
                metric_type=request.type,
                name=request.name,
            ),
        )
        return MetricsAggregation(
            total_count=result.total_count,
            type_aggregations=[
                TypeAggregation(type=tc.type, count=tc.count) for tc in result.type_counts
            ],
        )

    @strawberry.field
    async def daily_average_metrics(
        self,
        info: Info,
        from_date: datetime,
        to_date: datetime,
        metric_type: TypeArgument = None,
        name: str | None = None,
    ) -> list[DailyAverageMetric]:
        request = parse_request(
            DailyAverageRequest,
            type=metric_type,
            name=name,
            from_date=from_date,
            to_date=to_date,
        )
        service, pipeline = _runtime(info)
        rows = await pipeline.run(
            "daily_averages",
            lambda: service.daily_averages(
                from_date=request.from_date,
                to_date=request.to_date,
                metric_type=request.type,
                name=request.name,
            ),
        )
        return [
            DailyAverageMetric(
                date=r.date,
                type=r.type,
                name=r.name,
                count=r.count,
                average_values=r.average_values,
            )
            for r in rows
        ]

    @strawberry.field
    async def metric_types(self, info: Info) -> list[str]:
        service, pipeline = _runtime(info)
        return await pipeline.run("list_types", service.list_types)


schema = strawberry.Schema(query=Query)


async def get_context(service: Service, pipeline: Pipeline) -> dict[str, Any]:
    return {"service": service, "pipeline": pipeline}


def create_graphql_router(*, ide: bool = True) -> GraphQLRouter:
    return GraphQLRouter(
        schema,
        context_getter=get_context,
        graphql_ide="graphiql" if ide else None,
    )
