"""Async primitives for configuring modules in parallel."""

from __future__ import annotations

import asyncio
import inspect
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Iterable

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag shared by a pool and its callers."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError("operation cancelled")


class BoundedSemaphore:
    """``asyncio.Semaphore`` that reports how many permits are held."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self.in_use = 0
        self._semaphore = asyncio.Semaphore(limit)

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self.in_use += 1
            try:
                yield
            finally:
                self.in_use -= 1


@dataclass(slots=True)
class WorkerPool(Generic[T]):
    """Run coroutines with at most ``max_concurrency`` in flight.

    Permits are granted in submission order. The first coroutine to fail, in
    completion order, cancels the token and every other coroutine; its exception
    reaches the caller unchanged.
    """

    max_concurrency: int
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    _semaphore: BoundedSemaphore | None = field(init=False, default=None, repr=False)
    _failures: list[Exception] = field(init=False, default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")

    async def gather(self, coroutines: Iterable[Awaitable[T]]) -> list[T]:
        """Run every coroutine and return the results in submission order."""

        # the semaphore must be created inside the running loop
        self._semaphore = BoundedSemaphore(self.max_concurrency)
        self._failures = []
        tasks = [asyncio.create_task(self._guarded(coroutine)) for coroutine in coroutines]
        if not tasks:
            return []
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await _cancel(tasks)
            raise

        if self._failures:
            self.cancel_token.cancel()
            await _cancel(tasks)
            raise self._failures[0]
        return [task.result() for task in tasks]

    async def _guarded(self, coroutine: Awaitable[T]) -> T:
        assert self._semaphore is not None
        try:
            async with self._semaphore.permit():
                self.cancel_token.raise_if_cancelled()
                return await coroutine
        except Exception as exc:
            self._failures.append(exc)
            raise
        finally:
            # a coroutine cancelled before it started would otherwise warn "never awaited"
            if inspect.iscoroutine(coroutine):
                coroutine.close()


async def _cancel(tasks: list[asyncio.Task[T]]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


__all__ = [
    "BoundedSemaphore",
    "CancellationToken",
    "WorkerPool",
]
