"""Client, PostGIS storage drivers and service building blocks for OGC APIs and STAC."""

__version__ = "0.1.0"