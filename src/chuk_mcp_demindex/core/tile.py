"""
Tiles: declared header metadata plus a lazily loaded raster payload.

A Tile is created from its header alone during a directory scan. The
payload is read through the tile's TileReader on first use and kept for the
lifetime of the Tile. A failed read marks the tile permanently errored.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from ..constants import FIELD_MATCH_TOLERANCE_DEG, TileFormat
from .geo import GeoField, GeoPoint
from .raster import RasterGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileMetadata:
    """Tile properties declared by a file header."""

    name: str
    tile_id: str
    mesh_size: tuple[int, int]  # (cols, rows)
    field: GeoField
    format: str = TileFormat.UNKNOWN

    @property
    def available(self) -> bool:
        cols, rows = self.mesh_size
        return not self.field.area_is_zero and cols > 0 and rows > 0

    def __str__(self) -> str:
        cols, rows = self.mesh_size
        return f"{self.name},{self.tile_id},{cols}x{rows},{self.field},{self.format}"


class TileReader(Protocol):
    """Format-specific collaborator that reads headers and payloads."""

    def read_header(self, path: Path) -> TileMetadata:
        """Return the declared metadata; raise FormatMismatchError if unrecognized."""
        ...

    def read_values(self, path: Path, metadata: TileMetadata) -> RasterGrid:
        """Return the tile payload; raise LoadFailureError on any failure."""
        ...


class Tile:
    """One tile file: its metadata and, once loaded, its RasterGrid."""

    def __init__(self, path: str | Path, metadata: TileMetadata, reader: TileReader) -> None:
        self.path = Path(path)
        self.metadata = metadata
        self.reader = reader
        self._grid: RasterGrid | None = None
        self._error: str | None = None
        self._lock = threading.Lock()

    @property
    def grid(self) -> RasterGrid | None:
        return self._grid

    @property
    def is_loaded(self) -> bool:
        return self._grid is not None and self._grid.is_data_set

    @property
    def has_error(self) -> bool:
        return self._error is not None

    @property
    def error(self) -> str | None:
        return self._error

    def load(self) -> bool:
        """
        Read the payload if not yet loaded.

        Returns True when the tile holds data. Concurrent callers for the
        same tile are serialized; a failure is recorded once and never
        retried.
        """
        if self.is_loaded:
            return True
        with self._lock:
            if self.is_loaded:
                return True
            if self._error is not None:
                return False
            try:
                grid = self.reader.read_values(self.path, self.metadata)
            except Exception as e:
                self._error = str(e) or type(e).__name__
                logger.warning(f"Tile {self.metadata.tile_id} ({self.path.name}) failed to load: {e}")
                return False
            self._grid = grid
            logger.debug(f"Loaded tile {self.metadata.tile_id} from {self.path}")
            return True

    def is_consistent(self) -> bool:
        """True if the loaded grid matches the declared field and mesh size."""
        grid = self._grid
        if grid is None or not grid.is_data_set:
            return False
        return (
            grid.size == tuple(self.metadata.mesh_size)
            and grid.field.is_close(self.metadata.field, FIELD_MATCH_TOLERANCE_DEG)
        )

    def value_at(self, point: GeoPoint) -> float:
        """Elevation under a point, loading on demand; NaN if unavailable."""
        grid = self._grid if self.load() else None
        if grid is None:
            return float("nan")
        value = grid.value_at(point)
        return float("nan") if value is None else float(value)

    def footprint(self) -> dict[str, Any]:
        """Bounding box, identity, and source path for footprint export."""
        cols, rows = self.metadata.mesh_size
        return {
            "tile_id": self.metadata.tile_id,
            "name": self.metadata.name,
            "path": str(self.path),
            "bbox": self.metadata.field.to_bbox(),
            "mesh_size": [cols, rows],
            "format": self.metadata.format,
            "loaded": self.is_loaded,
            "error": self._error,
        }

    def __str__(self) -> str:
        return f"{self.path},{self.is_loaded},{self.is_consistent()},{self.metadata}"

    def __repr__(self) -> str:
        return f"Tile(path={str(self.path)!r}, tile_id={self.metadata.tile_id!r})"
