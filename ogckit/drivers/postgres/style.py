"""Styles kept in PostgreSQL."""

from __future__ import annotations

from typing import Any

from ogckit.drivers.base import Json, StyleTransactions, _decode_json


class PgStyles(StyleTransactions):
    """Styles stored in ``meta.styles``.

    Mixed into a driver that holds an asyncpg-style connection pool as ``pool``.
    """

    pool: Any

    async def list_styles(self) -> Json:
        value = await self.pool.fetchval(
            """
            SELECT array_to_json(array_agg(row_to_json(t)))
            FROM (
                SELECT id, title, links FROM meta.styles
            ) t
            """
        )
        return {"styles": list(_decode_json(value) or [])}

    async def read_style(self, id: str) -> Any | None:
        value = await self.pool.fetchval(
            """
            SELECT row_to_json(t)
            FROM (
                SELECT id, value FROM meta.styles WHERE id = $1
            ) t
            """,
            id,
        )
        stylesheet = _decode_json(value)
        return None if stylesheet is None else stylesheet.get("value")