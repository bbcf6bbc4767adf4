from __future__ import annotations

import threading

import pytest

from truthhair.core.async_db import AsyncDBProxy


class SyncRepo:
    name = "orders"

    def __init__(self):
        self.threads: list[int] = []

    def get_order(self, order_id):
        self.threads.append(threading.get_ident())
        return {"id": order_id}


@pytest.mark.asyncio
async def test_proxy_runs_sync_methods_in_worker_thread():
    repo = SyncRepo()
    proxy = AsyncDBProxy(repo)

    result = await proxy.get_order("o-1")

    assert result == {"id": "o-1"}
    assert repo.threads and repo.threads[0] != threading.get_ident()


@pytest.mark.asyncio
async def test_proxy_passes_through_attributes_and_run():
    repo = SyncRepo()
    proxy = AsyncDBProxy(repo)

    assert proxy.name == "orders"
    assert proxy.sync is repo
    assert await proxy.run(lambda a, b=0: a + b, 2, b=3) == 5
