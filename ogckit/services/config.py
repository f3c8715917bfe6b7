"""Application configuration from the command line and the environment."""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

DEFAULT_PORT = 8484
DEFAULT_HOST = "0.0.0.0"


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port `{text}`") from None
    if not 0 <= value <= 65535:
        raise argparse.ArgumentTypeError(f"port `{text}` is not in range 0 to 65535")
    return value


def _url(text: str) -> str:
    parts = urlsplit(text)
    if not parts.scheme or not (parts.netloc or parts.path):
        raise argparse.ArgumentTypeError("invalid database url")
    return text


@dataclass(kw_only=True)
class Config:
    """Settings of the service.

    Command line options take precedence over environment variables.
    """

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    database_url: str
    openapi: Path | None = None

    @classmethod
    def parse(
        cls,
        argv: Sequence[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        """Read the configuration; exits with a usage message when it is invalid."""
        env = os.environ if environ is None else environ
        parser = argparse.ArgumentParser(description="OGC API services")
        parser.add_argument(
            "--port",
            type=_port,
            default=env.get("APP_PORT", str(DEFAULT_PORT)),
            help="listening port of the server [env: APP_PORT]",
        )
        parser.add_argument(
            "--host",
            default=env.get("APP_HOST", DEFAULT_HOST),
            help="listening host address of the server [env: APP_HOST]",
        )
        database_url = env.get("DATABASE_URL")
        parser.add_argument(
            "--database-url",
            type=_url,
            default=database_url,
            required=database_url is None,
            help="Postgres database url [env: DATABASE_URL]",
        )
        parser.add_argument(
            "--openapi",
            type=Path,
            default=env.get("OPENAPI"),
            help="OpenAPI definition [env: OPENAPI]",
        )
        args = parser.parse_args(argv)
        return cls(
            port=args.port,
            host=args.host,
            database_url=args.database_url,
            openapi=args.openapi,
        )