"""Environmental Data Retrieval queries answered by PostGIS."""

from __future__ import annotations

import enum
import functools
from typing import Any

import pint

from ogckit.drivers.base import (
    EdrQuerier,
    Json,
    _decode_json,
    _quote_ident,
    _quote_literal,
    srid_from_crs,
)
from ogckit.drivers.postgres.feature import _feature_collection, _sql_number


class QueryType(str, enum.Enum):
    """EDR query types, named as in the request path."""

    POSITION = "position"
    RADIUS = "radius"
    AREA = "area"
    CUBE = "cube"
    TRAJECTORY = "trajectory"
    CORRIDOR = "corridor"
    LOCATIONS = "locations"


@functools.lru_cache(maxsize=1)
def _units() -> pint.UnitRegistry:
    return pint.UnitRegistry()


def _meters(within: Any, within_units: Any) -> str:
    value = "0" if within is None else within
    units = "m" if within_units is None else within_units
    try:
        distance = _units().Quantity(float(value), str(units)).to("meter").magnitude
    except (ValueError, TypeError, AttributeError, LookupError) as exc:
        raise ValueError("Failed to parse & convert distance") from exc
    return _sql_number(distance)


def spatial_predicate(
    query_type: Any,
    coords: str,
    srid: int,
    storage_srid: int,
    within: Any = None,
    within_units: Any = None,
) -> str:
    """Return the SQL predicate selecting items for an EDR query."""
    query_type = QueryType(query_type)
    geometry_type = "".join(coords.split("(", 1)[0].upper().split())
    three_d = geometry_type.endswith(("Z", "M"))
    ewkt = f"ST_GeomFromEWKT('SRID={srid};{_quote_literal(coords)}')"

    if query_type in (QueryType.POSITION, QueryType.AREA, QueryType.TRAJECTORY):
        function = "ST_3DIntersects" if three_d else "ST_Intersects"
        return f"{function}(geom, ST_Transform({ewkt}, {storage_srid}))"

    if query_type is QueryType.RADIUS:
        distance = _meters(within, within_units)
        if three_d:
            return f"ST_3DDWithin(geom, ST_Transform({ewkt}, {storage_srid}), {distance})"
        return (
            f"ST_DWithin(ST_Transform(geom, 4326)::geography, "
            f"ST_Transform({ewkt}, 4326)::geography, {distance}, false)"
        )

    if query_type is QueryType.CUBE:
        bbox = [_sql_number(v) for v in coords.split(",")]
        if len(bbox) == 4:
            return (
                f"ST_Intersects(geom, ST_Transform(ST_MakeEnvelope({', '.join(bbox)}, {srid}), "
                f"{storage_srid}))"
            )
        if len(bbox) == 6:
            return f"""ST_3DIntersects(
                geom,
                ST_Transform(
                    ST_SetSRID(
                        ST_3DMakeBox(ST_MakePoint({bbox[0]}, {bbox[1]}, {bbox[2]}), ST_MakePoint({bbox[3]}, {bbox[4]}, {bbox[5]})),
                        {srid}
                    ),
                    {storage_srid}
                )
            )"""
        raise ValueError("cube coordinates must hold 4 or 6 numbers")

    raise ValueError(f"query type `{query_type.value}` is not supported")


def _properties(parameter_name: Any) -> str:
    if not parameter_name:
        return "properties"
    names = parameter_name.split(",") if isinstance(parameter_name, str) else parameter_name
    parts = []
    for name in names:
        key = _quote_literal(str(name))
        parts.append("('{\"" + key + "\":' || (properties -> '" + key + "')::text || '}')::jsonb")
    return "||".join(parts) + " as properties"


class PgEdr(EdrQuerier):
    """EDR queries over the item tables.

    Mixed into a driver that also reads collections and holds an asyncpg-style
    connection pool as ``pool``.
    """

    pool: Any

    async def query(self, collection_id: str, query_type: Any, query: Json) -> Json:
        query_type = QueryType(query_type)
        coords = query.get("coords")
        if not coords:
            raise ValueError("query parameter `coords` is required")
        srid = srid_from_crs(query.get("crs"))

        found = await self.read_collection(collection_id)
        if found is None:
            raise LookupError(f"collection `{collection_id}` does not exist")
        storage_srid = srid_from_crs(found.get("storageCrs"))

        predicate = spatial_predicate(
            query_type,
            coords,
            srid,
            storage_srid,
            query.get("within"),
            query.get("within-units"),
        )
        name = _quote_literal(collection_id)
        sql = f"""
            SELECT
                id,
                {_properties(query.get("parameter-name"))},
                ST_AsGeoJSON(ST_Transform(geom, $1))::jsonb as geometry,
                links,
                '{name}' as collection,
                assets
            FROM items.{_quote_ident(collection_id)}
            WHERE {predicate}
            """

        number_matched = await self.pool.fetchval(f"SELECT count(*) FROM ( {sql} ) t", srid)
        value = await self.pool.fetchval(
            f"SELECT array_to_json(array_agg(row_to_json(t))) FROM ( {sql} ) t", srid
        )
        return _feature_collection(_decode_json(value) or [], number_matched or 0)