"""Shared application state handed to every request handler."""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ogckit.drivers.base import (
    CollectionTransactions,
    EdrQuerier,
    FeatureTransactions,
    JobHandler,
    StyleTransactions,
    TileTransactions,
)
from ogckit.services.config import Config
from ogckit.services.openapi import OpenAPI
from ogckit.services.processor import Processor

STAC_CONFORMANCE = (
    "https://api.stacspec.org/v1.0.0-rc.1/core",
    "https://api.stacspec.org/v1.0.0-rc.1/item-search",
    "https://api.stacspec.org/v1.0.0-rc.1/collections",
    "https://api.stacspec.org/v1.0.0-rc.1/ogcapi-features",
    "https://api.stacspec.org/v1.0.0-rc.1/browseable",
)


@dataclass
class Drivers:
    """The storage driver behind each part of the API."""

    collections: CollectionTransactions
    features: FeatureTransactions
    edr: EdrQuerier
    jobs: JobHandler
    styles: StyleTransactions
    tiles: TileTransactions


@dataclass
class AppState:
    """Landing page, conformance, OpenAPI document, drivers and processes."""

    root: dict[str, Any]
    conformance: dict[str, Any]
    openapi: OpenAPI
    drivers: Drivers
    db: Any
    processors: dict[str, Processor] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def new_with(cls, db: Any, openapi: OpenAPI) -> AppState:
        """Build the state around a database driver that serves every interface."""
        drivers = Drivers(
            collections=db, features=db, edr=db, jobs=db, styles=db, tiles=db
        )
        return cls(
            root={"id": "root", "description": "root", "links": []},
            conformance={"conformsTo": list(STAC_CONFORMANCE)},
            openapi=openapi,
            drivers=drivers,
            db=db,
        )

    @classmethod
    def from_config(cls, config: Config, db: Any) -> AppState:
        """Build the state, loading the OpenAPI document named by the configuration."""
        openapi = OpenAPI.from_path(config.openapi) if config.openapi else OpenAPI()
        return cls.new_with(db, openapi)

    def with_root(self, root: dict[str, Any]) -> AppState:
        """Return a state with another landing page."""
        return dataclasses.replace(self, root=root)

    def with_openapi(self, openapi: OpenAPI) -> AppState:
        """Return a state with another OpenAPI document."""
        return dataclasses.replace(self, openapi=openapi)

    def with_processors(self, processors: Iterable[Processor]) -> AppState:
        """Register processes by their id and return this state."""
        with self.lock:
            for processor in processors:
                self.processors[processor.id()] = processor
        return self

    def extend_conformance(self, classes: Iterable[str]) -> None:
        """Declare further conformance classes, skipping those already declared."""
        with self.lock:
            declared = self.conformance.setdefault("conformsTo", [])
            for conformance_class in classes:
                if conformance_class not in declared:
                    declared.append(conformance_class)