"""Awaitable facade for the blocking repository, checkout service and cart stores."""
from __future__ import annotations

from functools import partial
from typing import Any, Callable, TypeVar

import anyio

T = TypeVar("T")


class AsyncDBProxy:
    """Dispatch method calls of a blocking object to anyio worker threads.

    Plain attributes are returned unchanged, so ``proxy.session_id`` works
    while ``await proxy.clear_cart()`` runs off the event loop.
    """

    __slots__ = ("_target",)

    def __init__(self, target: Any):
        self._target = target

    @property
    def sync(self) -> Any:
        return self._target

    async def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await anyio.to_thread.run_sync(partial(func, *args, **kwargs))

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if callable(attr):
            return partial(self.run, attr)
        return attr
