import json

import pytest

from ogckit.drivers.postgres.style import PgStyles


class FakePool:
    def __init__(self, values=()):
        self.values = list(values)
        self.calls = []

    async def fetchval(self, sql, *args):
        self.calls.append((sql, args))
        return self.values.pop(0) if self.values else None


class Driver(PgStyles):
    def __init__(self, pool):
        self.pool = pool


@pytest.mark.asyncio
async def test_list_styles():
    styles = [{"id": "night", "title": "Night", "links": []}]
    result = await PgStyles.list_styles(Driver(FakePool([json.dumps(styles)])))
    assert result == {"styles": styles}


@pytest.mark.asyncio
async def test_list_styles_empty():
    assert await PgStyles.list_styles(Driver(FakePool([None]))) == {"styles": []}


@pytest.mark.asyncio
async def test_read_style_returns_value():
    stylesheet = {"id": "night", "value": {"version": 8, "layers": []}}
    pool = FakePool([json.dumps(stylesheet)])
    result = await PgStyles.read_style(Driver(pool), "night")
    assert result == stylesheet["value"]
    assert pool.calls[0][1] == ("night",)


@pytest.mark.asyncio
async def test_read_missing_style():
    assert await PgStyles.read_style(Driver(FakePool()), "missing") is None