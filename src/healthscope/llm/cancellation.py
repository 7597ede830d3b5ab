"""Cooperative cancellation for streamed responses."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from typing import TypeVar

T = TypeVar("T")


class CancellationToken:
    """Set once by the caller to stop a stream; never reset."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


async def _next_item(iterator: AsyncIterator[T]) -> T:
    return await iterator.__anext__()


async def iterate_until_cancelled(
    source: AsyncIterator[T], token: CancellationToken | None
) -> AsyncIterator[T]:
    """Yield from ``source`` until it ends or ``token`` is cancelled.

    Cancellation also interrupts a pending wait for the next item, so a
    stalled connection does not keep the caller waiting.
    """
    if token is None:
        async for item in source:
            yield item
        return

    iterator = source.__aiter__()
    cancel_wait = asyncio.ensure_future(token.wait())
    next_item: asyncio.Future | None = None
    try:
        while not token.cancelled:
            next_item = asyncio.ensure_future(_next_item(iterator))
            done, _ = await asyncio.wait(
                {next_item, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
            if next_item not in done:
                break
            try:
                item = next_item.result()
            except StopAsyncIteration:
                break
            next_item = None
            yield item
    finally:
        for pending in (next_item, cancel_wait):
            if pending is not None and not pending.done():
                pending.cancel()
                with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                    await pending
