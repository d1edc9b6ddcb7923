"""
Raster I/O for elevation tiles.

All functions are synchronous — callers wrap them in asyncio.to_thread().
Provides the GeoTIFF tile reader (header-only and payload reads), the
non-recursive directory scan, parallel header reading, and GeoTIFF encoding
of RasterGrids for artifact storage.
"""

import fnmatch
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import numpy as np

from ..constants import (
    DEFAULT_MAX_WORKERS,
    LAT_RANGE,
    LON_RANGE,
    TAG_TILE_ID,
    TAG_TILE_NAME,
    TILE_FILE_PATTERNS,
    ErrorMessages,
    TileFormat,
)
from .errors import FormatMismatchError, LoadFailureError
from .geo import GeoField, GeoPoint
from .raster import RasterGrid
from .tile import Tile, TileMetadata, TileReader

logger = logging.getLogger(__name__)


def _field_from_bounds(bounds: Any) -> GeoField:
    """GeoField from a rasterio BoundingBox(left, bottom, right, top)."""
    return GeoField.from_corners(
        GeoPoint(bounds.bottom, bounds.left),
        GeoPoint(bounds.top, bounds.right),
    )


def _in_geographic_range(bounds: Any) -> bool:
    min_lat, max_lat = LAT_RANGE
    min_lon, max_lon = LON_RANGE
    return all(min_lat <= v <= max_lat for v in (bounds.bottom, bounds.top)) and all(
        min_lon <= v <= max_lon for v in (bounds.left, bounds.right)
    )


# ---------------------------------------------------------------------------
# GeoTIFF tile reader
# ---------------------------------------------------------------------------


class GeoTiffTileReader:
    """TileReader for single-band GeoTIFF tiles in geographic coordinates."""

    format = TileFormat.GEOTIFF

    def read_header(self, path: Path) -> TileMetadata:
        """
        Read tile metadata without touching the pixel data.

        Args:
            path: GeoTIFF file path

        Returns:
            Declared metadata (tile id/name from TILE_ID/TILE_NAME tags,
            falling back to the file stem)

        Raises:
            FormatMismatchError: the file is not a readable geographic raster
        """
        import rasterio
        from rasterio.errors import RasterioError

        path = Path(path)
        try:
            with rasterio.open(path) as src:
                if src.count < 1:
                    raise FormatMismatchError(ErrorMessages.FORMAT_MISMATCH.format(path, "no bands"))
                if src.crs is None or src.transform.is_identity:
                    raise FormatMismatchError(
                        ErrorMessages.FORMAT_MISMATCH.format(path, "not georeferenced")
                    )
                if not src.crs.is_geographic:
                    raise FormatMismatchError(
                        ErrorMessages.FORMAT_MISMATCH.format(path, f"projected CRS {src.crs}")
                    )
                bounds = src.bounds
                width, height = src.width, src.height
                tags = src.tags()
        except RasterioError as e:
            raise FormatMismatchError(ErrorMessages.FORMAT_MISMATCH.format(path, e)) from e

        if not _in_geographic_range(bounds):
            raise FormatMismatchError(
                ErrorMessages.FORMAT_MISMATCH.format(
                    path, f"bounds {tuple(bounds)} outside geographic range"
                )
            )

        return TileMetadata(
            name=tags.get(TAG_TILE_NAME, path.stem),
            tile_id=tags.get(TAG_TILE_ID, path.stem),
            mesh_size=(width, height),
            field=_field_from_bounds(bounds),
            format=self.format,
        )

    def read_values(self, path: Path, metadata: TileMetadata) -> RasterGrid:
        """
        Read band 1 as float32 with nodata mapped to NaN.

        Raises:
            LoadFailureError: missing file, size mismatch, or unreadable data
        """
        import rasterio
        from rasterio.errors import RasterioError

        path = Path(path)
        if not path.exists():
            raise LoadFailureError(ErrorMessages.FILE_MISSING.format(path))

        cols, rows = metadata.mesh_size
        try:
            with rasterio.open(path) as src:
                if (src.width, src.height) != (cols, rows):
                    raise LoadFailureError(
                        ErrorMessages.TILE_SIZE_MISMATCH.format(path, src.width, src.height, cols, rows)
                    )
                data = src.read(1).astype(np.float32)
                nodata = src.nodata
                field = _field_from_bounds(src.bounds)
        except RasterioError as e:
            raise LoadFailureError(ErrorMessages.LOAD_FAILED.format(path, e)) from e

        if nodata is not None and not np.isnan(nodata):
            data[data == nodata] = np.nan

        grid = RasterGrid(field, (cols, rows))
        grid.set_data(data)
        return grid


# ---------------------------------------------------------------------------
# Directory scan
# ---------------------------------------------------------------------------


def scan_directory(
    directory: str | Path,
    patterns: tuple[str, ...] = TILE_FILE_PATTERNS,
) -> list[Path]:
    """
    List candidate tile files directly inside a directory.

    Matching is case-insensitive and does not recurse. A missing directory
    yields an empty list.
    """
    root = Path(directory)
    if not root.is_dir():
        logger.warning(ErrorMessages.DIRECTORY_NOT_FOUND.format(root))
        return []

    found = [
        entry
        for entry in root.iterdir()
        if entry.is_file() and any(fnmatch.fnmatch(entry.name.lower(), p) for p in patterns)
    ]
    return sorted(found)


def read_headers(
    paths: list[Path],
    reader: TileReader,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> tuple[list[Tile], int]:
    """
    Read tile headers in parallel.

    Returns:
        Tuple of (tiles with available metadata in input order, skipped count)
    """

    def read_one(path: Path) -> Tile | None:
        try:
            metadata = reader.read_header(path)
        except FormatMismatchError as e:
            logger.warning(f"Skipping {path.name}: {e}")
            return None
        if not metadata.available:
            logger.warning(f"Skipping {path.name}: header declares an empty tile")
            return None
        return Tile(path, metadata, reader)

    if not paths:
        return [], 0
    if len(paths) == 1:
        results = [read_one(paths[0])]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(read_one, paths))

    tiles = [tile for tile in results if tile is not None]
    return tiles, len(paths) - len(tiles)


# ---------------------------------------------------------------------------
# Output conversion
# ---------------------------------------------------------------------------


def grid_to_geotiff(
    grid: RasterGrid,
    tile_id: str | None = None,
    name: str | None = None,
) -> bytes:
    """
    Convert a RasterGrid to EPSG:4326 GeoTIFF bytes.

    Args:
        grid: Grid with data set
        tile_id: Optional TILE_ID tag
        name: Optional TILE_NAME tag

    Returns:
        GeoTIFF bytes
    """
    from rasterio.io import MemoryFile
    from rasterio.transform import from_bounds

    data = grid.data
    west, south, east, north = grid.field.to_bbox()
    transform = from_bounds(west, south, east, north, grid.cols, grid.rows)
    nodata = float("nan") if grid.dtype.kind == "f" else None

    memfile = MemoryFile()
    with memfile.open(
        driver="GTiff",
        height=grid.rows,
        width=grid.cols,
        count=1,
        dtype=str(grid.dtype),
        crs="EPSG:4326",
        transform=transform,
        nodata=nodata,
    ) as dst:
        dst.write(data[np.newaxis, :])
        tags = {}
        if tile_id is not None:
            tags[TAG_TILE_ID] = tile_id
        if name is not None:
            tags[TAG_TILE_NAME] = name
        if tags:
            dst.update_tags(**tags)

    return memfile.read()
