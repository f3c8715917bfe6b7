[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ogckit"
version = "0.1.0"
description = "Client, PostGIS storage drivers and service building blocks for OGC APIs and SpatioTemporal Asset Catalogs"
requires-python = ">=3.10"
keywords = [
    "ogc",
    "ogcapi",
    "stac",
    "geospatial",
    "features",
    "edr",
    "tiles",
    "processes",
    "postgis",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Scientific/Engineering :: GIS",
    "Typing :: Typed",
]
dependencies = [
    "requests",
    "starlette",
    "pyyaml",
    "pint",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "responses",
    "httpx",
]

[tool.hatch.build.targets.wheel]
packages = ["ogckit"]

[tool.hatch.build.targets.sdist]
include = ["ogckit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
warn_unused_ignores = true
