"""
Elevation index — top-level facade over all tile registries.

Owns one TileRegistry per tile geometry family, routes point and area
queries to the finest registry that can answer them, and orchestrates
directory ingestion. Synchronous throughout: callers on an event loop wrap
calls in asyncio.to_thread().

Usage precondition: ingestion (add_tiles / add_directory) and queries are
separate phases. Writers are serialized by an ingestion lock; queries only
perform keyed lookups on registry maps.
"""

import logging
import math
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..constants import (
    ALL_READ_MODES,
    DEFAULT_COVERAGE_THRESHOLD,
    DEFAULT_MAX_WORKERS,
    TILE_FILE_PATTERNS,
    ErrorMessages,
    ReadMode,
)
from .geo import GeoField, GeoPoint
from .registry import StitchResult, TileRegistry
from .tile import Tile, TileReader

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of scanning one directory."""

    directory: str
    files_found: int
    tiles_added: int
    skipped: int
    tiles_loaded: int
    registry_count: int


class ElevationIndex:
    """All tile registries, ordered finest mesh first."""

    def __init__(
        self,
        reader: TileReader | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.max_workers = max_workers
        self._reader = reader
        self._registries: list[TileRegistry] = []
        self._ingest_lock = threading.Lock()

    @property
    def reader(self) -> TileReader:
        if self._reader is None:
            from .raster_io import GeoTiffTileReader

            self._reader = GeoTiffTileReader()
        return self._reader

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def registries(self) -> list[TileRegistry]:
        """Registries in ascending cell-area order (finest first)."""
        return list(self._registries)

    @property
    def tile_count(self) -> int:
        return sum(registry.count for registry in self._registries)

    @property
    def ready(self) -> bool:
        return any(registry.ready for registry in self._registries)

    def registry(self, index: int) -> TileRegistry:
        if not 0 <= index < len(self._registries):
            raise ValueError(
                ErrorMessages.UNKNOWN_REGISTRY.format(index, max(0, len(self._registries) - 1))
            )
        return self._registries[index]

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_tiles(self, tiles: Iterable[Tile]) -> int:
        """
        Route every tile into the registry of its geometry family.

        Tiles are offered to existing registries first; fresh registries are
        created until every tile has a home. Returns the number of tiles
        routed (duplicates included, unavailable tiles excluded).
        """
        pending = [tile for tile in tiles if tile.metadata.available]
        routed = len(pending)
        with self._ingest_lock:
            registries = list(self._registries)
            for registry in registries:
                if not pending:
                    break
                pending = registry.add_many(pending)
            while pending:
                registry = TileRegistry(max_workers=self.max_workers)
                pending = registry.add_many(pending)
                registries.append(registry)
                cols, rows = registry.mesh_size or (0, 0)
                logger.info(
                    f"Created registry #{len(registries) - 1} for {cols} x {rows} mesh "
                    f"tiles ({registry.count} tiles)"
                )
            registries.sort(key=lambda r: r.cell_area)
            self._registries = registries
        return routed

    def add_directory(
        self,
        directory: str | Path,
        read_mode: str = ReadMode.HEADER_ONLY,
        patterns: tuple[str, ...] = TILE_FILE_PATTERNS,
    ) -> IngestResult:
        """Scan a directory (no recursion) and ingest every recognizable tile header."""
        from . import raster_io

        if read_mode not in ALL_READ_MODES:
            raise ValueError(
                ErrorMessages.INVALID_READ_MODE.format(read_mode, ", ".join(ALL_READ_MODES))
            )

        paths = raster_io.scan_directory(directory, patterns)
        tiles, skipped = raster_io.read_headers(paths, self.reader, self.max_workers)
        added = self.add_tiles(tiles)

        loaded = 0
        if read_mode == ReadMode.HEADER_AND_VALUES:
            held = [t for t in tiles if any(r.holds(t) for r in self._registries)]
            if held:
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    loaded = sum(executor.map(Tile.load, held))

        logger.info(
            f"Ingested {added} tiles from {directory} "
            f"({len(paths)} files, {skipped} skipped, {len(self._registries)} registries)"
        )
        return IngestResult(
            directory=str(directory),
            files_found=len(paths),
            tiles_added=added,
            skipped=skipped,
            tiles_loaded=loaded,
            registry_count=len(self._registries),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_available(self, point: GeoPoint) -> bool:
        return any(registry.contains(point) for registry in self._registries)

    def height(self, point: GeoPoint) -> float:
        """Elevation from the finest registry that has data at point; NaN otherwise."""
        for registry in self._registries:
            value = registry.height(point)
            if not math.isnan(value):
                return value
        return float("nan")

    def heights(self, points: Iterable[GeoPoint]) -> list[float]:
        """Elevations for many points, evaluated in parallel, in input order."""
        points = list(points)
        if not points:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self.height, points))

    def coverage(self, field: GeoField) -> list[float]:
        """Coverage rate of field in each registry, finest first."""
        return [registry.coverage(field) for registry in self._registries]

    def select_registry(
        self,
        field: GeoField,
        coverage_threshold: float = DEFAULT_COVERAGE_THRESHOLD,
    ) -> TileRegistry | None:
        """Finest registry whose coverage of field reaches the threshold."""
        for registry in self._registries:
            if registry.coverage(field) >= coverage_threshold:
                return registry
        return None

    def create_map(
        self,
        field: GeoField,
        coverage_threshold: float = DEFAULT_COVERAGE_THRESHOLD,
    ) -> StitchResult | None:
        """Stitched map from the finest qualifying registry, or None."""
        registry = self.select_registry(field, coverage_threshold)
        if registry is None:
            logger.info(f"No registry covers {field} at threshold {coverage_threshold:.2f}")
            return None
        return registry.create_map(field)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def footprints(self) -> list[dict[str, Any]]:
        result = []
        for index, registry in enumerate(self._registries):
            for footprint in registry.footprints():
                footprint["registry"] = index
                result.append(footprint)
        return result

    def describe(self) -> list[dict[str, Any]]:
        return [
            {"index": index, **registry.describe()}
            for index, registry in enumerate(self._registries)
        ]
