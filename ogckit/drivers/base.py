"""Storage driver interfaces and helpers shared by the drivers.

Documents travel as plain JSON-compatible dictionaries, keyed as they appear
on the wire (``id``, ``links``, ``storageCrs``, ``jobID`` and so on).
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any

Json = dict[str, Any]

_CRS_URI = re.compile(r"https?://www\.opengis\.net/def/crs/([^/]+)/([^/]+)/([^/]+)/?")
_OGC_SRIDS = {"CRS84": 4326, "CRS84H": 4979}
_DEFAULT_SRID = _OGC_SRIDS["CRS84"]


def srid_from_crs(crs: Any) -> int:
    """Return the spatial reference id of a CRS given as URI, CURIE, URN or integer.

    ``None`` stands for the default CRS, OGC CRS84.
    """
    if crs is None:
        return _DEFAULT_SRID
    if isinstance(crs, bool):
        raise TypeError("a CRS cannot be a boolean")
    if isinstance(crs, int):
        return crs

    text = str(crs).strip()
    match = _CRS_URI.fullmatch(text)
    if match:
        authority, code = match.group(1), match.group(3)
    elif text.lower().startswith("urn:ogc:def:crs:"):
        parts = text.split(":")
        if len(parts) < 6:
            raise ValueError(f"Unknown CRS `{crs}`")
        authority, code = parts[4], parts[-1]
    elif ":" in text.strip("[]"):
        authority, _, code = text.strip("[]").rpartition(":")
    else:
        raise ValueError(f"Unknown CRS `{crs}`")

    authority = authority.upper()
    if authority == "EPSG" and code.isdigit():
        return int(code)
    if authority == "OGC" and code.upper() in _OGC_SRIDS:
        return _OGC_SRIDS[code.upper()]
    raise ValueError(f"Unknown CRS `{crs}`")


def _decode_json(value: Any) -> Any:
    """Decode a JSON value that the database handed back as text."""
    if isinstance(value, (bytes, bytearray)):
        value = value.decode()
    if isinstance(value, str):
        return json.loads(value)
    return value


def _quote_ident(name: str) -> str:
    """Quote an SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def _quote_literal(value: str) -> str:
    """Escape a string for use between single quotes in SQL."""
    return value.replace("'", "''")


class CollectionTransactions(ABC):
    """Create, read, update, delete and list collection metadata."""

    @abstractmethod
    async def create_collection(self, collection: Json) -> str:
        """Store a new collection and return its id."""

    @abstractmethod
    async def read_collection(self, id: str) -> Json | None:
        """Return a collection, or ``None`` when there is none with this id."""

    @abstractmethod
    async def update_collection(self, collection: Json) -> None:
        """Replace the stored metadata of a collection."""

    @abstractmethod
    async def delete_collection(self, id: str) -> None:
        """Remove a collection and its items."""

    @abstractmethod
    async def list_collections(self, query: Json) -> Json:
        """Return a ``Collections`` document."""


class FeatureTransactions(ABC):
    """Create, read, update, delete and list features."""

    @abstractmethod
    async def create_feature(self, feature: Json) -> str:
        """Store a new feature and return its id."""

    @abstractmethod
    async def read_feature(self, collection: str, id: str, crs: Any) -> Json | None:
        """Return a feature in the given CRS, or ``None``."""

    @abstractmethod
    async def update_feature(self, feature: Json) -> None:
        """Replace a stored feature."""

    @abstractmethod
    async def delete_feature(self, collection: str, id: str) -> None:
        """Remove a feature."""

    @abstractmethod
    async def list_items(self, collection: str, query: Json) -> Json:
        """Return a ``FeatureCollection`` matching the query."""


class StacSearch(ABC):
    """STAC item search."""

    @abstractmethod
    async def search(self, query: Json) -> Json:
        """Return a ``FeatureCollection`` matching the search parameters."""


class EdrQuerier(ABC):
    """Environmental Data Retrieval queries."""

    @abstractmethod
    async def query(self, collection_id: str, query_type: Any, query: Json) -> Json:
        """Return a ``FeatureCollection`` answering the query."""


class JobHandler(ABC):
    """Bookkeeping of process jobs."""

    @abstractmethod
    async def register(self, job: Json) -> str:
        """Record a job and return its id."""

    @abstractmethod
    async def status(self, id: str) -> Json | None:
        """Return the status of a job, or ``None``."""

    @abstractmethod
    async def dismiss(self, id: str) -> Json | None:
        """Dismiss a pending job and return its new status, or ``None``."""

    @abstractmethod
    async def results(self, id: str) -> Any | None:
        """Return the results of a job, or ``None``."""


class StyleTransactions(ABC):
    """Read access to styles."""

    @abstractmethod
    async def list_styles(self) -> Json:
        """Return a ``Styles`` document."""

    @abstractmethod
    async def read_style(self, id: str) -> Any | None:
        """Return a stylesheet, or ``None``."""


class TileTransactions(ABC):
    """Vector tile rendering."""

    @abstractmethod
    async def tile(self, collections: str, tms: Json, matrix: str, row: int, col: int) -> bytes:
        """Return the encoded tile for the comma separated collections."""