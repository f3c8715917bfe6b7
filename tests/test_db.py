import contextlib
import json

import pytest

from ogckit.drivers.postgres.db import Db


class FakePool:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def _next(self, method, sql, args):
        self.calls.append((method, sql, args))
        return self.results.pop(0) if self.results else None

    async def fetchval(self, sql, *args):
        return await self._next("fetchval", sql, args)

    async def fetch(self, sql, *args):
        return await self._next("fetch", sql, args)

    async def execute(self, sql, *args):
        self.calls.append(("execute", sql, args))
        return "OK"

    @contextlib.asynccontextmanager
    async def acquire(self):
        yield self

    @contextlib.asynccontextmanager
    async def transaction(self):
        yield


@pytest.mark.asyncio
async def test_read_collection_round_trip():
    collection = {"id": "test.me-_", "type": "Collection", "links": []}
    db = Db(FakePool(json.dumps(collection)))
    assert await db.read_collection("test.me-_") == collection


@pytest.mark.asyncio
async def test_job_register_and_dismiss():
    pool = FakePool("test-job", json.dumps({"job_id": "test-job", "status": "dismissed"}))
    db = Db(pool)
    assert await db.register({"jobID": "test-job"}) == "test-job"
    info = await db.dismiss("test-job")
    assert info["status"] == "dismissed"
    assert info["jobID"] == "test-job"


@pytest.mark.asyncio
async def test_list_items_reads_collection_for_bbox():
    pool = FakePool(json.dumps({"id": "c"}), 0, None)
    fc = await Db(pool).list_items("c", {"bbox": [0, 0, 1, 1]})
    assert fc["numberMatched"] == 0
    assert "meta.collections" in pool.calls[0][1]


@pytest.mark.asyncio
async def test_tile_without_known_collections_is_empty():
    db = Db(FakePool(None, None))
    assert await db.tile("a,b", {}, "3", 1, 2) == b""


@pytest.mark.asyncio
async def test_search_uses_pool():
    pool = FakePool([])
    fc = await Db(pool).search({})
    assert fc["type"] == "FeatureCollection"
    assert pool.calls[0][0] == "fetch"