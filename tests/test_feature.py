import contextlib
import json

import pytest

from ogckit.drivers.postgres.collection import PgCollections
from ogckit.drivers.postgres.feature import PgFeatures, datetime_condition


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


class Driver(PgCollections, PgFeatures):
    def __init__(self, pool):
        self.pool = pool


def test_datetime_instant_uses_same_bound_twice():
    sql = datetime_condition("2020-01-01T00:00:00Z")
    bound = "CAST('2020-01-01T00:00:00Z' AS timestamptz)"
    assert f"BETWEEN {bound} AND {bound}" in sql


def test_datetime_open_start_and_end():
    start_open = datetime_condition("../2020-01-01T00:00:00Z")
    assert "BETWEEN to_timestamp('-infinity') AND CAST('2020-01-01T00:00:00Z'" in start_open
    end_open = datetime_condition("2020-01-01T00:00:00Z/..")
    assert "AND NOW()" in end_open


def test_datetime_invalid_raises():
    with pytest.raises(ValueError):
        datetime_condition("yesterday'; DROP TABLE x")


@pytest.mark.asyncio
async def test_create_feature_returns_id_and_targets_table():
    pool = FakePool("abc")
    feature = {"type": "Feature", "collection": "places", "geometry": None}
    assert await PgFeatures.create_feature(Driver(pool), feature) == "abc"
    method, sql, args = pool.calls[0]
    assert 'items."places"' in sql
    assert json.loads(args[0]) == feature


@pytest.mark.asyncio
async def test_create_feature_without_collection_raises():
    with pytest.raises(ValueError):
        await PgFeatures.create_feature(Driver(FakePool()), {"type": "Feature"})


@pytest.mark.asyncio
async def test_read_feature_decodes_and_binds_srid():
    pool = FakePool(json.dumps({"id": "a", "type": "Feature"}))
    feature = await PgFeatures.read_feature(Driver(pool), "c", "a", "EPSG:2056")
    assert feature == {"id": "a", "type": "Feature"}
    assert pool.calls[0][2] == (2056, "a")


@pytest.mark.asyncio
async def test_read_feature_missing_returns_none():
    assert await PgFeatures.read_feature(Driver(FakePool(None)), "c", "a", None) is None


@pytest.mark.asyncio
async def test_list_items_counts_and_defaults():
    pool = FakePool(2, json.dumps([{"id": "a"}, {"id": "b"}]))
    fc = await PgFeatures.list_items(Driver(pool), "c", {})
    assert fc["numberMatched"] == 2
    assert fc["numberReturned"] == len(fc["features"])
    assert [f["id"] for f in fc["features"]] == ["a", "b"]
    sql, args = pool.calls[1][1], pool.calls[1][2]
    assert "LIMIT NULL" in sql and "OFFSET 0" in sql
    assert args == (4326,)


@pytest.mark.asyncio
async def test_list_items_limit_offset_and_properties():
    pool = FakePool(0, None)
    query = {"limit": 10, "offset": 20, "NAME": "Bern"}
    fc = await PgFeatures.list_items(Driver(pool), "c", query)
    assert fc["features"] == [] and fc["numberMatched"] == 0
    count_sql = pool.calls[0][1]
    assert "properties ->> 'NAME' = 'Bern'" in count_sql
    assert "LIMIT 10" in pool.calls[1][1] and "OFFSET 20" in pool.calls[1][1]


@pytest.mark.asyncio
async def test_list_items_bbox_uses_storage_crs():
    collection = {"id": "c", "storageCrs": "http://www.opengis.net/def/crs/EPSG/0/2056"}
    pool = FakePool(json.dumps(collection), 0, None)
    await PgFeatures.list_items(Driver(pool), "c", {"bbox": [7, 46, 8, 47]})
    count_sql = pool.calls[1][1]
    assert "geom && ST_Transform(ST_MakeEnvelope(" in count_sql
    assert ", 2056)" in count_sql


@pytest.mark.asyncio
async def test_list_items_bbox_unknown_collection():
    with pytest.raises(LookupError):
        await PgFeatures.list_items(Driver(FakePool(None)), "c", {"bbox": [7, 46, 8, 47]})


@pytest.mark.asyncio
async def test_list_items_bad_bbox():
    pool = FakePool(json.dumps({"id": "c"}))
    with pytest.raises(ValueError):
        await PgFeatures.list_items(Driver(pool), "c", {"bbox": [1, 2, 3]})


@pytest.mark.asyncio
async def test_delete_feature_binds_id():
    pool = FakePool()
    await PgFeatures.delete_feature(Driver(pool), "c", "x")
    assert pool.calls == [("execute", 'DELETE FROM items."c" WHERE id = $1', ("x",))]