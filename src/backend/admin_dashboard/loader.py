from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestResultLoader(Generic[T]):
    """
    Latest-request-wins wrapper around an async view builder.

    Every ``load()`` takes a new ticket. When a build finishes after a newer
    one was started its result (or error) is discarded, so a slow response
    for an old window selection never overwrites a newer one.
    """

    def __init__(self, builder: Callable[..., Awaitable[T]]):
        self._builder = builder
        self._issued = 0
        self._applied = 0
        self.current: Optional[T] = None

    @property
    def loading(self) -> bool:
        return self._applied < self._issued

    async def load(self, *args: Any, **kwargs: Any) -> Optional[T]:
        self._issued += 1
        ticket = self._issued
        try:
            result = await self._builder(*args, **kwargs)
        except Exception:
            if ticket != self._issued:
                logger.debug("Dropping failed stale load #%d (latest is #%d)", ticket, self._issued)
                return None
            raise
        finally:
            # Settles on success, error and cancellation alike.
            if ticket == self._issued:
                self._applied = ticket
        if ticket != self._issued:
            logger.debug("Dropping stale load #%d (latest is #%d)", ticket, self._issued)
            return None
        self.current = result
        return result
