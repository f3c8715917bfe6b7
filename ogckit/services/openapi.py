"""The OpenAPI definition served by the application."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


def _default_document() -> dict[str, Any]:
    return {"openapi": "3.0.3", "info": {"title": "", "version": ""}, "paths": {}}


def _validate(document: Any) -> dict[str, Any]:
    if not isinstance(document, dict):
        raise ValueError("an OpenAPI document must be a mapping")
    if not isinstance(document.get("openapi"), str):
        raise ValueError("an OpenAPI document needs an `openapi` version string")
    info = document.get("info")
    if not isinstance(info, dict):
        raise ValueError("an OpenAPI document needs an `info` object")
    for key in ("title", "version"):
        if not isinstance(info.get(key), str):
            raise ValueError(f"`info.{key}` must be a string")
    if not isinstance(document.get("paths", {}), dict):
        raise ValueError("`paths` must be a mapping")
    return document


@dataclass
class OpenAPI:
    """An OpenAPI 3 document held as a dictionary."""

    document: dict[str, Any] = field(default_factory=_default_document)

    @classmethod
    def from_str(cls, text: str) -> OpenAPI:
        """Parse a YAML or JSON document."""
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid OpenAPI document: {exc}") from exc
        return cls(_validate(document))

    @classmethod
    def from_bytes(cls, data: bytes) -> OpenAPI:
        """Parse a UTF-8 encoded document."""
        return cls.from_str(data.decode("utf-8"))

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> OpenAPI:
        """Read and parse a document from a file."""
        return cls.from_str(Path(path).read_text(encoding="utf-8"))