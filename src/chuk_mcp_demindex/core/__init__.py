"""Core tile indexing: geometry, rasters, tiles, registries, and the elevation index."""

from .elevation_index import ElevationIndex, IngestResult
from .errors import (
    FormatMismatchError,
    LoadFailureError,
    OutOfBoundsError,
    RasterStateError,
    TileIndexError,
)
from .geo import GeoField, GeoPoint, GridAddress, GridField
from .raster import RasterGrid
from .registry import StitchResult, TileRegistry
from .tile import Tile, TileMetadata, TileReader

__all__ = [
    "ElevationIndex",
    "IngestResult",
    "TileRegistry",
    "StitchResult",
    "Tile",
    "TileMetadata",
    "TileReader",
    "RasterGrid",
    "GridAddress",
    "GeoPoint",
    "GeoField",
    "GridField",
    "TileIndexError",
    "FormatMismatchError",
    "LoadFailureError",
    "OutOfBoundsError",
    "RasterStateError",
]
