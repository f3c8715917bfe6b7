"""The PostgreSQL/PostGIS driver."""

from __future__ import annotations

from typing import Any

from ogckit.drivers.postgres.collection import PgCollections
from ogckit.drivers.postgres.edr import PgEdr
from ogckit.drivers.postgres.feature import PgFeatures
from ogckit.drivers.postgres.job import PgJobs
from ogckit.drivers.postgres.stac import PgStac
from ogckit.drivers.postgres.style import PgStyles
from ogckit.drivers.postgres.tile import PgTiles


class Db(PgCollections, PgFeatures, PgEdr, PgJobs, PgStac, PgStyles, PgTiles):
    """Every driver interface, backed by one asyncpg-style connection pool."""

    def __init__(self, pool: Any) -> None:
        self.pool = pool

    def __repr__(self) -> str:
        return f"Db(pool={self.pool!r})"