"""Collection metadata kept in PostgreSQL/PostGIS."""

from __future__ import annotations

import json
from typing import Any

from ogckit.drivers.base import (
    CollectionTransactions,
    Json,
    _decode_json,
    _quote_ident,
    _quote_literal,
    srid_from_crs,
)


class PgCollections(CollectionTransactions):
    """Collections stored in ``meta.collections``, one ``items`` table each.

    Mixed into a driver that holds an asyncpg-style connection pool as ``pool``.
    """

    pool: Any

    async def create_collection(self, collection: Json) -> str:
        collection_id = collection["id"]
        table = f"items.{_quote_ident(collection_id)}"
        statements = [
            f"""
            CREATE TABLE {table} (
                id text PRIMARY KEY DEFAULT gen_random_uuid()::text,
                collection text REFERENCES meta.collections(id) DEFAULT '{_quote_literal(collection_id)}',
                properties jsonb,
                geom geometry NOT NULL,
                links jsonb NOT NULL DEFAULT '[]'::jsonb,
                assets jsonb NOT NULL DEFAULT '{{}}'::jsonb,
                bbox jsonb
            )
            """,
            f"CREATE INDEX ON {table} USING btree (collection)",
            f"CREATE INDEX ON {table} USING gin (properties)",
            f"CREATE INDEX ON {table} USING gist (geom)",
        ]
        srid = srid_from_crs(collection.get("storageCrs"))

        async with self.pool.acquire() as conn, conn.transaction():
            for statement in statements:
                await conn.execute(statement)
            await conn.execute(
                "SELECT UpdateGeometrySRID('items', $1, 'geom', $2)", collection_id, srid
            )
            await conn.execute(
                "INSERT INTO meta.collections ( id, collection ) VALUES ( $1, $2::jsonb )",
                collection_id,
                json.dumps(collection),
            )
        return collection_id

    async def read_collection(self, id: str) -> Json | None:
        value = await self.pool.fetchval(
            "SELECT collection FROM meta.collections WHERE id = $1", id
        )
        return _decode_json(value)

    async def update_collection(self, collection: Json) -> None:
        await self.pool.execute(
            "UPDATE meta.collections SET collection = $2::jsonb WHERE id = $1",
            collection["id"],
            json.dumps(collection),
        )

    async def delete_collection(self, id: str) -> None:
        async with self.pool.acquire() as conn, conn.transaction():
            await conn.execute(f"DROP TABLE IF EXISTS items.{_quote_ident(id)}")
            await conn.execute("DELETE FROM meta.collections WHERE id = $1", id)

    async def list_collections(self, query: Json) -> Json:
        value = await self.pool.fetchval(
            """
            SELECT array_to_json(array_agg(collection))
            FROM meta.collections
            WHERE collection ->> 'type' = 'Collection'
            """
        )
        collections = list(_decode_json(value) or [])
        return {
            "collections": collections,
            "links": [],
            "numberMatched": len(collections),
            "numberReturned": len(collections),
        }