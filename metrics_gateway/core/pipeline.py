"""Wrappers applied around core service calls.

An operation is a zero-argument coroutine factory. A wrapper takes the
operation's name and the operation and returns a new operation. Wrappers are
listed outermost first.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from metrics_gateway.core.exceptions import StorageUnavailableError

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Wrapper = Callable[[str, Operation[Any]], Operation[Any]]

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def log_operation(name: str, operation: Operation[Any]) -> Operation[Any]:
    async def run() -> Any:
        started = time.perf_counter()
        logger.debug("%s started", name)
        try:
            result = await operation()
        except asyncio.CancelledError:
            logger.info("%s cancelled after %.1f ms", name, _elapsed_ms(started))
            raise
        except Exception:
            logger.exception("%s failed after %.1f ms", name, _elapsed_ms(started))
            raise
        logger.info("%s completed in %.1f ms", name, _elapsed_ms(started))
        return result

    return run


def translate_storage_errors(name: str, operation: Operation[Any]) -> Operation[Any]:
    async def run() -> Any:
        try:
            return await operation()
        except (SQLAlchemyError, OSError) as e:
            raise StorageUnavailableError(name) from e

    return run


class OperationPipeline:
    def __init__(self, wrappers: Sequence[Wrapper]) -> None:
        self._wrappers = list(wrappers)

    @property
    def wrappers(self) -> list[Wrapper]:
        return list(self._wrappers)

    async def run(self, name: str, operation: Operation[T]) -> T:
        wrapped: Operation[Any] = operation
        for wrapper in reversed(self._wrappers):
            wrapped = wrapper(name, wrapped)
        return await wrapped()


def default_pipeline() -> OperationPipeline:
    return OperationPipeline([log_operation, translate_storage_errors])
