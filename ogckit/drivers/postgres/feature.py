"""Features kept in PostgreSQL/PostGIS, one table per collection."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable
from datetime import date as _date
from typing import Any

from ogckit.drivers.base import (
    FeatureTransactions,
    Json,
    _decode_json,
    _quote_ident,
    _quote_literal,
    srid_from_crs,
)

_ROWS = """
items.id,
items.collection,
properties,
ST_AsGeoJSON(ST_Transform(geom, $1))::jsonb AS geometry,
links,
"""

_ROWS_STAC = """
items.id,
items.collection,
properties,
ST_AsGeoJSON(ST_Transform(geom, $1))::jsonb AS geometry,
links,
meta.collection ->> 'stac_version' AS stac_version,
COALESCE(
    (meta.collection -> 'stac_extensions'),
    '[]'::jsonb
) AS stac_extensions,
assets,
COALESCE(
    bbox,
    array_to_json(
        ARRAY[
            st_xmin(st_transform(geom, 4326)::box2d),
            st_ymin(st_transform(geom, 4326)::box2d),
            st_xmax(st_transform(geom, 4326)::box2d),
            st_ymax(st_transform(geom, 4326)::box2d)
        ]
    )::jsonb
) as bbox
"""

# Query keys with a meaning of their own; every other key filters on a property.
_QUERY_KEYS = frozenset(
    {"limit", "offset", "bbox", "bbox-crs", "datetime", "crs", "filter", "filter-lang", "filter-crs"}
)

_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}(?:[Tt ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:[Zz]|[+-]\d{2}:\d{2})?)?"
)
_OPEN = ("", "..")


def _sql_number(value: Any) -> str:
    """Render a finite number for SQL, rejecting anything else."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"`{value}` is not a number") from None
    if not math.isfinite(number):
        raise ValueError(f"`{value}` is not a finite number")
    return repr(number)


def _split(value: Any) -> list[str]:
    """Accept a comma separated string or an iterable of strings."""
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part) for part in value]


def _bbox_bounds(bbox: Any) -> list[str]:
    """Return the horizontal bounds ``minx, miny, maxx, maxy`` of a 2D or 3D bbox."""
    values = bbox.split(",") if isinstance(bbox, str) else list(bbox)
    numbers = [_sql_number(v) for v in values]
    if len(numbers) == 4:
        return numbers
    if len(numbers) == 6:
        return [numbers[0], numbers[1], numbers[3], numbers[4]]
    raise ValueError("bbox must hold 4 or 6 numbers")


def _limit_offset(query: Json) -> tuple[str, int]:
    limit = query.get("limit")
    offset = int(query.get("offset") or 0)
    if offset < 0:
        raise ValueError("offset must not be negative")
    if limit is None:
        return "NULL", offset
    limit = int(limit)
    if limit < 0:
        raise ValueError("limit must not be negative")
    return str(limit), offset


def _feature_collection(features: Iterable[Json], number_matched: int) -> Json:
    features = list(features)
    return {
        "type": "FeatureCollection",
        "features": features,
        "links": [],
        "numberMatched": int(number_matched),
        "numberReturned": len(features),
    }


def _instant(value: Any) -> str:
    text = value.isoformat() if isinstance(value, _date) else str(value).strip()
    if not _RFC3339.fullmatch(text):
        raise ValueError(f"Invalid datetime `{value}`")
    return f"CAST('{_quote_literal(text)}' AS timestamptz)"


def datetime_condition(datetime: Any) -> str:
    """Return the SQL condition matching items against an instant or an interval.

    Intervals are written ``start/end`` where either side may be ``..`` or empty.
    """
    if isinstance(datetime, str) and "/" in datetime:
        start, _, end = datetime.partition("/")
        start, end = start.strip(), end.strip()
        lower = "to_timestamp('-infinity')" if start in _OPEN else _instant(start)
        upper = "NOW()" if end in _OPEN else _instant(end)
    else:
        lower = upper = _instant(datetime)

    return f"""
    (
        CASE
            WHEN (properties->'datetime') IS NOT NULL THEN (
                CAST(properties->>'datetime' AS timestamptz)
                BETWEEN {lower} AND {upper}
            )
            WHEN (
                (properties->'datetime') IS NULL
                AND (properties->'start_datetime') IS NOT NULL
                AND (properties->'end_datetime') IS NOT NULL
            ) THEN (
                ({lower}, {upper}) OVERLAPS (
                    CAST(properties->>'start_datetime' AS timestamptz),
                    CAST(properties->>'end_datetime' AS timestamptz)
                )
            )
            ELSE TRUE
        END
    )
    """


def _property_condition(key: str, value: Any) -> str:
    k = _quote_literal(str(key))
    v = _quote_literal(str(value))
    return f"""
    CASE
        WHEN properties ? '{k}' THEN (
            CASE
                WHEN jsonb_typeof(properties -> '{k}') = 'number'
                THEN RTRIM(properties ->> '{k}', '.0') = RTRIM('{v}', '.0')
                ELSE properties ->> '{k}' = '{v}'
            END
        )
        ELSE TRUE
    END
    """


def _collection_of(feature: Json) -> str:
    collection = feature.get("collection")
    if not collection:
        raise ValueError("feature has no `collection`")
    return collection


class PgFeatures(FeatureTransactions):
    """Features stored in ``items.<collection>`` tables.

    Mixed into a driver that also reads collections and holds an asyncpg-style
    connection pool as ``pool``.
    """

    pool: Any
    stac: bool = True

    @property
    def _rows(self) -> str:
        return _ROWS_STAC if self.stac else _ROWS.rstrip().rstrip(",")

    async def create_feature(self, feature: Json) -> str:
        table = f"items.{_quote_ident(_collection_of(feature))}"
        return await self.pool.fetchval(
            f"""
            INSERT INTO {table} (
                id,
                properties,
                geom,
                links,
                assets,
                bbox
            ) VALUES (
                COALESCE($1::jsonb ->> 'id', gen_random_uuid()::text),
                $1::jsonb -> 'properties',
                ST_GeomFromGeoJSON($1::jsonb -> 'geometry'),
                $1::jsonb -> 'links',
                COALESCE($1::jsonb -> 'assets', '{{}}'::jsonb),
                $1::jsonb -> 'bbox'
            )
            RETURNING id
            """,
            json.dumps(feature),
        )

    async def read_feature(self, collection: str, id: str, crs: Any) -> Json | None:
        value = await self.pool.fetchval(
            f"""
            SELECT row_to_json(t)
            FROM (
                SELECT {self._rows}
                FROM items.{_quote_ident(collection)} items JOIN meta.collections meta
                    ON items.collection = meta.id
                WHERE items.id = $2
            ) t
            """,
            srid_from_crs(crs),
            id,
        )
        return _decode_json(value)

    async def update_feature(self, feature: Json) -> None:
        table = f"items.{_quote_ident(_collection_of(feature))}"
        await self.pool.execute(
            f"""
            UPDATE {table}
            SET
                properties = $1::jsonb -> 'properties',
                geom = ST_GeomFromGeoJSON($1::jsonb -> 'geometry'),
                links = $1::jsonb -> 'links',
                assets = COALESCE($1::jsonb -> 'assets', '{{}}'::jsonb)
            WHERE id = $1::jsonb ->> 'id'
            """,
            json.dumps(feature),
        )

    async def delete_feature(self, collection: str, id: str) -> None:
        await self.pool.execute(
            f"DELETE FROM items.{_quote_ident(collection)} WHERE id = $1", id
        )

    async def list_items(self, collection: str, query: Json) -> Json:
        conditions = ["TRUE"]

        bbox = query.get("bbox")
        if bbox is not None:
            bbox_srid = srid_from_crs(query.get("bbox-crs"))
            found = await self.read_collection(collection)
            if found is None:
                raise LookupError(f"collection `{collection}` does not exist")
            storage_srid = srid_from_crs(found.get("storageCrs"))
            minx, miny, maxx, maxy = _bbox_bounds(bbox)
            conditions.append(
                f"geom && ST_Transform(ST_MakeEnvelope({minx}, {miny}, {maxx}, {maxy}, "
                f"{bbox_srid}), {storage_srid})"
            )

        if query.get("datetime") is not None:
            conditions.append(datetime_condition(query["datetime"]))

        for key, value in query.items():
            if key not in _QUERY_KEYS:
                conditions.append(_property_condition(key, value))

        where = " AND ".join(conditions)
        table = f"items.{_quote_ident(collection)}"
        limit, offset = _limit_offset(query)

        number_matched = await self.pool.fetchval(
            f"SELECT count(*) FROM {table} WHERE {where}"
        )
        value = await self.pool.fetchval(
            f"""
            SELECT array_to_json(array_agg(row_to_json(t)))
            FROM (
                SELECT {self._rows}
                FROM {table} items JOIN meta.collections meta
                    ON items.collection = meta.id
                WHERE {where}
                LIMIT {limit}
                OFFSET {offset}
            ) t
            """,
            srid_from_crs(query.get("crs")),
        )
        return _feature_collection(_decode_json(value) or [], number_matched or 0)