"""
Per-key call coalescing for asyncio.

Concurrent callers asking for the same key share one in-flight computation:
the first caller runs it, the others await its outcome. Unrelated keys never
wait on each other.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Tuple

logger = logging.getLogger(__name__)


class SingleFlight:
    """In-flight future map keyed by an arbitrary hashable key."""

    def __init__(self):
        self._calls: Dict[Hashable, asyncio.Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._calls

    async def do(
        self,
        key: Hashable,
        fn: Callable[[], Awaitable[Any]]
    ) -> Tuple[Any, bool]:
        """
        Run fn() once per key among concurrent callers.

        Returns:
            (result, shared) where shared is True when the result came from
            another caller's computation.
        """
        while True:
            existing = self._calls.get(key)
            if existing is None:
                break
            try:
                return await asyncio.shield(existing), True
            except asyncio.CancelledError:
                if not existing.cancelled():
                    raise
                # The leading call was cancelled; try again, possibly as leader.
                logger.debug(f"In-flight call for {key!r} was cancelled, retrying")

        future = asyncio.get_running_loop().create_future()
        self._calls[key] = future
        try:
            result = await fn()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except BaseException as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure is not reported at GC.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result, False
        finally:
            self._calls.pop(key, None)
