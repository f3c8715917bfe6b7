"""Mapbox vector tiles rendered by PostGIS."""

from __future__ import annotations

from typing import Any

from ogckit.drivers.base import (
    Json,
    TileTransactions,
    _quote_ident,
    _quote_literal,
    srid_from_crs,
)


class PgTiles(TileTransactions):
    """Renders tiles with ``ST_AsMVT`` over the item tables.

    Mixed into a driver that also reads collections and holds an asyncpg-style
    connection pool as ``pool``.
    """

    pool: Any

    async def tile(self, collections: str, tms: Json, matrix: str, row: int, col: int) -> bytes:
        zoom = int(matrix)
        if row < 0 or col < 0:
            raise ValueError("tile row and column must not be negative")

        layers = []
        for collection in collections.split(","):
            found = await self.read_collection(collection)
            if found is None:
                continue
            storage_srid = srid_from_crs(found.get("storageCrs"))
            name = _quote_literal(collection)
            layers.append(
                f"""
                SELECT ST_AsMVT(mvtgeom, '{name}', 4096, 'geom')
                FROM (
                    SELECT
                        ST_AsMVTGeom(ST_Transform(ST_Force2D(geom), 3857), ST_TileEnvelope($1, $3, $2), 4096, 64, TRUE) AS geom,
                        '{name}' as collection,
                        properties
                    FROM items.{_quote_ident(collection)}
                    WHERE geom && ST_Transform(ST_TileEnvelope($1, $3, $2, margin => (64.0 / 4096)), {storage_srid})
                ) AS mvtgeom
                """
            )

        if not layers:
            return b""

        records = await self.pool.fetch(" UNION ALL ".join(layers), zoom, row, col)
        return b"".join(bytes(record[0]) for record in records if record[0] is not None)