"""Blocking client for OGC API endpoints and SpatioTemporal Asset Catalogs."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any
from urllib.parse import urlencode, urljoin, urlsplit

import requests

UA_STRING = "OGCAPI-CLIENT"

_log = logging.getLogger(__name__)

Json = dict[str, Any]


class OgcClientError(Exception):
    """Base class of every error raised by :class:`Client`."""


class RequestError(OgcClientError):
    """Sending a request, its status or decoding its JSON body failed."""

    def __init__(self, cause: object) -> None:
        super().__init__(f"Encountered a request error: {cause}")
        self.cause = cause


class UnknownConformanceError(OgcClientError):
    """The service does not declare its conformance classes."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Encountered a conformance error: `{message}`")
        self.message = message


class UrlError(OgcClientError):
    """A URL could not be parsed."""

    def __init__(self, reason: str = "") -> None:
        super().__init__("Encountered url parse error")
        self.reason = reason


class DeserializationError(OgcClientError):
    """A fetched document does not have the expected shape."""

    def __init__(self, cause: object) -> None:
        super().__init__(f"Encountered a serialization error: {cause}")
        self.cause = cause


class ClientError(OgcClientError):
    """The service answered with something the client cannot use."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Encountered a client error: {message}")
        self.message = message


def _check_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme:
        raise UrlError("relative URL without a base")
    if parts.scheme in ("http", "https") and not parts.hostname:
        raise UrlError("empty host")
    return url


def _find_link(links: Iterable[Mapping[str, Any]], rel: str) -> Mapping[str, Any] | None:
    return next((link for link in links if link.get("rel") == rel), None)


def _links_of(entity: Any) -> list[Json]:
    """Return the ``links`` list of a document, checking its shape."""
    if not isinstance(entity, dict):
        raise DeserializationError("expected a JSON object")
    links = entity.setdefault("links", [])
    if not isinstance(links, list) or not all(
        isinstance(link, dict) and isinstance(link.get("href"), str) for link in links
    ):
        raise DeserializationError("`links` must be a list of objects with an `href`")
    return links


def _encode_query(params: Mapping[str, Any]) -> str:
    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        pairs.append((key, str(value)))
    return urlencode(pairs, safe=",")


def resolve_relative_links(links: list[Json], base: str) -> list[Json]:
    """Make every relative ``href`` in ``links`` absolute against ``base``, in place."""
    _check_url(base)
    for link in links:
        if not urlsplit(link["href"]).scheme:
            link["href"] = urljoin(base, link["href"])
    return links


class Client:
    """Client to access OGC APIs and/or SpatioTemporal Asset Catalogs (STAC)."""

    def __init__(self, endpoint: str) -> None:
        if not endpoint.endswith("/"):
            endpoint = f"{endpoint}/"
        self.endpoint = _check_url(endpoint)
        self._session = requests.Session()
        self._session.headers["User-Agent"] = UA_STRING
        self._root: Json | None = None

    def __repr__(self) -> str:
        return f"Client({self.endpoint!r})"

    def _fetch(self, url: str) -> Any:
        _log.debug("Fetching %s", url)
        try:
            response = self._session.get(url)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise RequestError(exc) from exc

    def root(self) -> Json:
        """Return the landing page or the root catalog (fetched once, then cached)."""
        if self._root is None:
            self._root = self._fetch(self.endpoint)
        return copy.deepcopy(self._root)

    def conformance(self) -> Json:
        """Return the conformance declaration of the service."""
        catalog = self.root()
        conforms_to = catalog.get("conformsTo")
        if conforms_to:
            return {"conformsTo": list(conforms_to)}
        link = _find_link(_links_of(catalog), "conformance")
        if link is not None:
            return self._fetch(urljoin(self.endpoint, link["href"]))
        raise UnknownConformanceError("Unable to retrieve conformance.")

    def catalogs(self) -> Iterator[Json]:
        """Iterate depth first over the catalogs reachable from the root."""
        return self._catalogs([{"href": self.endpoint, "rel": "self"}])

    def _catalogs(self, stack: list[Json]) -> Iterator[Json]:
        while stack:
            link = stack.pop()
            catalog = self._fetch(link["href"])
            links = _links_of(catalog)
            if catalog.get("type") != "Catalog":
                continue
            resolve_relative_links(links, link["href"])
            stack.extend(copy.deepcopy(l) for l in links if l.get("rel") == "child")
            yield catalog

    def collections(self) -> Iterator[Json]:
        """Iterate over all collections, following ``next`` links."""
        link = _find_link(_links_of(self.root()), "data")
        if link is None:
            raise ClientError("No link found with relation `data`!")
        url = urljoin(self.endpoint, link["href"])
        return self._paginate(self._fetch(url), "collections", url)

    def collection(self, id: str) -> Json:
        """Return the metadata of one collection."""
        return self._fetch(urljoin(self.endpoint, f"collections/{id}"))

    def items(self, id: str) -> Iterator[Json]:
        """Iterate over the features of a collection, following ``next`` links."""
        url = urljoin(self.endpoint, f"collections/{id}/items")
        return self._paginate(self._fetch(url), "features", url)

    def walk(self) -> Iterator[Json]:
        """Iterate over every catalog, collection and item reachable from the root."""
        return self._walk([{"href": self.endpoint, "rel": "self"}])

    def _walk(self, stack: list[Json]) -> Iterator[Json]:
        while stack:
            link = stack.pop()
            entity = self._fetch(link["href"])
            kind = entity.get("type") if isinstance(entity, dict) else None
            if kind not in ("Catalog", "Collection", "Feature"):
                raise ClientError("Unknown STAC entity!")
            links = resolve_relative_links(_links_of(entity), link["href"])
            stack.extend(
                copy.deepcopy(l) for l in links if l.get("rel") in ("child", "item")
            )
            yield entity

    def search(self, params: Mapping[str, Any] | str) -> Iterator[Json]:
        """Run a STAC item search and iterate over the matching items."""
        query = params if isinstance(params, str) else _encode_query(params)
        url = f"{self.endpoint}search?{query}"
        return self._paginate(self._fetch(url), "features", url)

    def _paginate(self, page: Any, key: str, url: str) -> Iterator[Json]:
        entries = list(page.get(key) or [])
        while True:
            yield from entries
            link = _find_link(_links_of(page), "next")
            if link is None:
                return
            url = urljoin(url, link["href"])
            page = self._fetch(url)
            entries = list(page.get(key) or [])
            if not entries:
                return