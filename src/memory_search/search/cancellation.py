"""
Cancellation support for channel calls.

A channel call may be given an asyncio.Event. If the event fires before
the call completes, the in-flight query task is cancelled (which closes
its driver session) and ChannelCancelledError is raised.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable
from typing import TypeVar

from memory_search.search.exceptions import ChannelCancelledError

T = TypeVar("T")


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: asyncio.Event | None,
    channel: str,
) -> T:
    """Await ``awaitable`` unless ``cancel_event`` fires first.

    Args:
        awaitable: The channel's query coroutine
        cancel_event: Optional cancellation signal
        channel: Channel name reported in the error

    Returns:
        The awaitable's result

    Raises:
        ChannelCancelledError: If the event fired first
    """
    if cancel_event is None:
        return await awaitable

    if cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise ChannelCancelledError(f"{channel} channel cancelled", channel=channel)

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()

    if work in done:
        return work.result()

    work.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await work
    raise ChannelCancelledError(f"{channel} channel cancelled", channel=channel)
