import json

import pytest

from ogckit.drivers.postgres.collection import PgCollections
from ogckit.drivers.postgres.tile import PgTiles


class FakePool:
    def __init__(self, collections, tiles):
        self.collections = collections
        self.tiles = tiles
        self.fetch_calls = []

    async def fetchval(self, sql, *args):
        found = self.collections.get(args[0])
        return json.dumps(found) if found is not None else None

    async def fetch(self, sql, *args):
        self.fetch_calls.append((sql, args))
        return [(tile,) for tile in self.tiles]


class Driver(PgCollections, PgTiles):
    def __init__(self, pool):
        self.pool = pool


def make_pool():
    collections = {
        "roads": {"id": "roads"},
        "places": {"id": "places", "storageCrs": "http://www.opengis.net/def/crs/EPSG/0/2056"},
    }
    return FakePool(collections, [b"ab", b"cd"])


@pytest.mark.asyncio
async def test_tile_concatenates_layers():
    pool = make_pool()
    result = await PgTiles.tile(Driver(pool), "roads,places", {}, "3", 5, 7)
    assert result == b"abcd"
    sql, args = pool.fetch_calls[0]
    assert args == (3, 5, 7)
    assert sql.count("ST_AsMVT(") == 2
    assert 'items."roads"' in sql and 'items."places"' in sql


@pytest.mark.asyncio
async def test_tile_uses_storage_srid():
    pool = make_pool()
    await PgTiles.tile(Driver(pool), "places", {}, "0", 0, 0)
    sql, _ = pool.fetch_calls[0]
    assert "margin => (64.0 / 4096)), 2056)" in sql


@pytest.mark.asyncio
async def test_tile_skips_unknown_collections():
    pool = make_pool()
    await PgTiles.tile(Driver(pool), "roads,missing", {}, "1", 0, 1)
    sql, _ = pool.fetch_calls[0]
    assert "missing" not in sql
    assert sql.count("ST_AsMVT(") == 1


@pytest.mark.asyncio
async def test_tile_without_known_collections():
    pool = make_pool()
    assert await PgTiles.tile(Driver(pool), "missing", {}, "1", 0, 0) == b""
    assert pool.fetch_calls == []


@pytest.mark.asyncio
async def test_tile_rejects_bad_matrix():
    with pytest.raises(ValueError):
        await PgTiles.tile(Driver(make_pool()), "roads", {}, "WebMercatorQuad", 0, 0)


@pytest.mark.asyncio
async def test_tile_rejects_negative_index():
    with pytest.raises(ValueError):
        await PgTiles.tile(Driver(make_pool()), "roads", {}, "2", -1, 0)