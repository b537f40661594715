from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from metrics_gateway.core.config import Settings
from metrics_gateway.core.pipeline import OperationPipeline, default_pipeline
from metrics_gateway.repositories.base import MetricRepository
from metrics_gateway.repositories.sql import SqlMetricRepository
from metrics_gateway.services.metrics import MetricService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session


def get_metric_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MetricRepository:
    return SqlMetricRepository(session=session)


def get_metric_service(
    repo: Annotated[MetricRepository, Depends(get_metric_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MetricService:
    return MetricService(repo, daily_average_max_days=settings.daily_average_max_days)


def get_pipeline(request: Request) -> OperationPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if not isinstance(pipeline, OperationPipeline):
        return default_pipeline()
    return pipeline


Repository = Annotated[MetricRepository, Depends(get_metric_repository)]
Service = Annotated[MetricService, Depends(get_metric_service)]
Pipeline = Annotated[OperationPipeline, Depends(get_pipeline)]
