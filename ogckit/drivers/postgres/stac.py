"""STAC item search over all collections in PostgreSQL."""

from __future__ import annotations

import json
from typing import Any

from ogckit.drivers.base import (
    Json,
    StacSearch,
    _decode_json,
    _quote_ident,
    _quote_literal,
)
from ogckit.drivers.postgres.feature import (
    _bbox_bounds,
    _feature_collection,
    _limit_offset,
    _split,
    datetime_condition,
)


class PgStac(StacSearch):
    """Searches the union of every collection's item table.

    Mixed into a driver that holds an asyncpg-style connection pool as ``pool``.
    """

    pool: Any

    async def search(self, query: Json) -> Json:
        conditions = ["TRUE"]

        bbox = query.get("bbox")
        if bbox is not None:
            minx, miny, maxx, maxy = _bbox_bounds(bbox)
            conditions.append(f"geom && ST_MakeEnvelope({minx}, {miny}, {maxx}, {maxy}, 4326)")

        if query.get("datetime") is not None:
            conditions.append(datetime_condition(query["datetime"]))

        ids = query.get("ids")
        if ids is not None:
            quoted = "','".join(_quote_literal(i) for i in _split(ids))
            conditions.append(f"id IN ('{quoted}')")

        intersects = query.get("intersects")
        if intersects is not None:
            if not isinstance(intersects, str):
                intersects = json.dumps(intersects)
            conditions.append(f"geom && ST_GeomFromGeoJSON('{_quote_literal(intersects)}')")

        where = " AND ".join(conditions)
        limit, offset = _limit_offset(query)

        async with self.pool.acquire() as conn, conn.transaction():
            rows = await conn.fetch(
                """
                SELECT id FROM meta.collections
                WHERE collection ->> 'type' = 'Collection'
                """
            )
            collection_ids = [row[0] for row in rows]
            requested = query.get("collections")
            if requested is not None:
                collection_ids = [c for c in _split(requested) if c in collection_ids]
            if not collection_ids:
                return _feature_collection([], 0)

            union = " UNION ALL ".join(
                f"SELECT * FROM items.{_quote_ident(c)}" for c in collection_ids
            )
            number_matched = await conn.fetchval(
                f"""
                WITH items AS ({union})
                SELECT count(*) FROM items
                WHERE {where}
                """
            )
            value = await conn.fetchval(
                f"""
                WITH items AS ({union})
                SELECT array_to_json(array_agg(row_to_json(t)))
                FROM (
                    SELECT
                        id,
                        collection,
                        properties,
                        ST_AsGeoJSON(ST_Transform(geom, 4326))::jsonb as geometry,
                        links,
                        assets,
                        bbox
                    FROM items
                    WHERE {where}
                    LIMIT {limit}
                    OFFSET {offset}
                ) t
                """
            )

        return _feature_collection(_decode_json(value) or [], number_matched or 0)