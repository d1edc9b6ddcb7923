"""
Tile registry — spatial index for one tile geometry family.

Every tile in a registry shares the same geographic size, mesh size, and
origin offset. Tiles are keyed by the integer grid address of their centre
on a lattice anchored at the origin offset, so neighbouring tiles have
neighbouring addresses even when no tile corner sits on a round number.

Concurrency: the address map is written only by add()/add_many() during
ingestion. Queries perform keyed lookups or copy the map before iterating,
and tile loads are serialized per tile, so loading and stitching may run on
a thread pool.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..constants import (
    ADDRESS_SNAP_EPSILON,
    DEFAULT_MAX_WORKERS,
    MAX_MAP_CELLS,
    OFFSET_MATCH_TOLERANCE_DEG,
    OFFSET_SNAP_TOLERANCE_DEG,
    TILE_SIZE_TOLERANCE_DEG,
    ErrorMessages,
)
from .geo import GeoField, GeoPoint, GridAddress, snapped_floor
from .raster import RasterGrid
from .tile import Tile, TileMetadata

logger = logging.getLogger(__name__)


@dataclass
class StitchResult:
    """Composite map plus how many tiles went into it."""

    grid: RasterGrid
    tiles_requested: int
    tiles_contributed: int
    tiles_failed: int

    @property
    def complete(self) -> bool:
        return self.tiles_requested > 0 and self.tiles_contributed == self.tiles_requested


def _span_area(lower_left: GridAddress, upper_right: GridAddress) -> int:
    return (upper_right.x - lower_left.x + 1) * (upper_right.y - lower_left.y + 1)


def _near_zero(value: float) -> bool:
    return abs(value) < OFFSET_SNAP_TOLERANCE_DEG


def compute_offset(field: GeoField, tile_size: GeoPoint) -> GeoPoint:
    """
    Sub-tile offset of a tile's upper-left corner from the lattice through (0, 0).

    Remainders within OFFSET_SNAP_TOLERANCE_DEG of zero or of a whole tile
    are snapped to zero.
    """
    corner = field.upper_left
    remainders = []
    for value, size in ((corner.lat, tile_size.lat), (corner.lon, tile_size.lon)):
        remainder = math.fmod(value, size)
        if remainder < 0.0:
            remainder += size
        if _near_zero(remainder) or _near_zero(remainder - size):
            remainder = 0.0
        remainders.append(remainder)
    return GeoPoint(remainders[0], remainders[1])


class TileRegistry:
    """Grid-address index of tiles sharing one geometry."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        self.max_workers = max_workers
        self._tiles: dict[GridAddress, Tile] = {}
        self.offset: GeoPoint | None = None
        self.tile_size: GeoPoint | None = None
        self.mesh_size: tuple[int, int] | None = None
        self.duplicates = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        return len(self._tiles)

    def __len__(self) -> int:
        return len(self._tiles)

    @property
    def ready(self) -> bool:
        return self.count > 0

    @property
    def cell_size(self) -> GeoPoint:
        """Size of one raster cell (lat, lon) in degrees."""
        if self.tile_size is None or self.mesh_size is None:
            return GeoPoint(0.0, 0.0)
        cols, rows = self.mesh_size
        return GeoPoint(self.tile_size.lat / rows, self.tile_size.lon / cols)

    @property
    def cell_area(self) -> float:
        """Cell area in square degrees; finer registries sort first."""
        cell = self.cell_size
        return cell.lat * cell.lon

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def _lattice(self) -> tuple[GeoPoint, GeoPoint]:
        if self.offset is None or self.tile_size is None:
            raise ValueError(ErrorMessages.REGISTRY_GEOMETRY_UNSET)
        return self.offset, self.tile_size

    def address(self, point: GeoPoint) -> GridAddress:
        """Lattice address of the tile containing point."""
        offset, tile_size = self._lattice()
        shifted = point - offset
        return GridAddress(
            snapped_floor(shifted.lon / tile_size.lon),
            snapped_floor(shifted.lat / tile_size.lat),
        )

    def field_of(self, address: GridAddress) -> GeoField:
        """Geographic extent of the lattice cell at an address."""
        offset, tile_size = self._lattice()
        lower_left = GeoPoint(
            address.y * tile_size.lat + offset.lat,
            address.x * tile_size.lon + offset.lon,
        )
        return GeoField(lower_left, lower_left + tile_size)

    def _on_lattice_line(self, value: float, offset: float, size: float) -> bool:
        steps = (value - offset) / size
        return abs(steps - round(steps)) < ADDRESS_SNAP_EPSILON

    def _span(self, field: GeoField) -> tuple[GridAddress, GridAddress]:
        """
        Inclusive range of lattice addresses touched by field.

        A north or east edge lying exactly on a lattice line closes the span
        there instead of reaching into the next row or column.
        """
        offset, tile_size = self._lattice()
        lower_left = self.address(field.lower_left)
        upper_right = self.address(field.upper_right)
        x, y = upper_right.x, upper_right.y
        if x > lower_left.x and self._on_lattice_line(field.east, offset.lon, tile_size.lon):
            x -= 1
        if y > lower_left.y and self._on_lattice_line(field.north, offset.lat, tile_size.lat):
            y -= 1
        return lower_left, GridAddress(x, y)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def accepts(self, metadata: TileMetadata) -> bool:
        """True if a tile with this metadata belongs to this geometry family."""
        if not metadata.available:
            return False
        if self.tile_size is None or self.mesh_size is None or self.offset is None:
            return True
        size = metadata.field.size
        return (
            size.is_close(self.tile_size, TILE_SIZE_TOLERANCE_DEG)
            and tuple(metadata.mesh_size) == tuple(self.mesh_size)
            and compute_offset(metadata.field, size).is_close(self.offset, OFFSET_MATCH_TOLERANCE_DEG)
        )

    def add(self, tile: Tile) -> bool:
        """
        Admit a tile if its geometry matches.

        The first tile fixes the registry geometry. A tile landing on an
        occupied address is discarded as a duplicate but still counts as
        accepted, so the caller does not route it elsewhere.
        """
        metadata = tile.metadata
        if not self.accepts(metadata):
            return False
        if self.offset is None:
            self.tile_size = metadata.field.size
            self.mesh_size = (int(metadata.mesh_size[0]), int(metadata.mesh_size[1]))
            self.offset = compute_offset(metadata.field, self.tile_size)
            logger.debug(
                f"Registry geometry fixed by {metadata.tile_id}: size={self.tile_size}, "
                f"mesh={self.mesh_size}, offset={self.offset}"
            )

        address = self.address(metadata.field.center)
        if address in self._tiles:
            self.duplicates += 1
            logger.debug(f"Duplicate tile {metadata.tile_id} at {address} discarded ({tile.path})")
        else:
            self._tiles[address] = tile
        return True

    def add_many(self, tiles: list[Tile]) -> list[Tile]:
        """Admit every matching tile; return the tiles that did not match."""
        return [tile for tile in tiles if not self.add(tile)]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def tile_at(self, address: GridAddress) -> Tile | None:
        return self._tiles.get(address)

    def holds(self, tile: Tile) -> bool:
        """True if this exact tile (not a duplicate of it) is indexed here."""
        if not self.ready:
            return False
        return self._tiles.get(self.address(tile.metadata.field.center)) is tile

    def tiles(self) -> list[tuple[GridAddress, Tile]]:
        """Snapshot of (address, tile) pairs ordered by distance from the origin."""
        return sorted(self._tiles.items(), key=lambda item: item[0].length)

    def contains(self, point: GeoPoint) -> bool:
        if not self.ready:
            return False
        return self.address(point) in self._tiles

    def coverage(self, field: GeoField) -> float:
        """Fraction of lattice addresses spanned by field that hold a tile."""
        if not self.ready:
            return 0.0
        lower_left, upper_right = self._span(field)
        occupied = len(self._tiles_in_span(lower_left, upper_right))
        return occupied / _span_area(lower_left, upper_right)

    def height(self, point: GeoPoint) -> float:
        """Elevation at a point; NaN if no tile covers it or the tile cannot load."""
        if not self.ready:
            return float("nan")
        tile = self._tiles.get(self.address(point))
        if tile is None:
            return float("nan")
        return tile.value_at(point)

    # ------------------------------------------------------------------
    # Loading and stitching
    # ------------------------------------------------------------------

    def _tiles_in_span(self, lower_left: GridAddress, upper_right: GridAddress) -> list[tuple[GridAddress, Tile]]:
        if _span_area(lower_left, upper_right) > len(self._tiles):
            # Sparse span: filter the held tiles instead of walking the lattice
            return [
                (address, tile)
                for address, tile in list(self._tiles.items())
                if lower_left.x <= address.x <= upper_right.x
                and lower_left.y <= address.y <= upper_right.y
            ]
        found = []
        for x in range(lower_left.x, upper_right.x + 1):
            for y in range(lower_left.y, upper_right.y + 1):
                address = GridAddress(x, y)
                tile = self._tiles.get(address)
                if tile is not None:
                    found.append((address, tile))
        return found

    def load(self, field: GeoField) -> tuple[int, int]:
        """
        Load every tile spanned by field in parallel.

        Tiles already in an error state are skipped. Returns
        (tiles_requested, tiles_loaded).
        """
        if not self.ready:
            return 0, 0
        found = self._tiles_in_span(*self._span(field))
        pending = [tile for _, tile in found if not tile.is_loaded and not tile.has_error]
        if pending:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                list(executor.map(Tile.load, pending))
        loaded = sum(1 for _, tile in found if tile.is_loaded)
        return len(found), loaded

    def create_map(self, field: GeoField) -> StitchResult:
        """
        Stitch every tile spanned by field into one contiguous raster.

        The output bounds the union of the spanned lattice cells and starts
        out all-NaN; addresses without a loaded tile stay NaN.
        """
        if not self.ready or self.mesh_size is None:
            raise ValueError(ErrorMessages.REGISTRY_EMPTY)

        lower_left, upper_right = self._span(field)
        span = upper_right - lower_left
        cols, rows = self.mesh_size
        width, height = (span.x + 1) * cols, (span.y + 1) * rows
        if width * height > MAX_MAP_CELLS:
            raise ValueError(ErrorMessages.MAP_TOO_LARGE.format(width, height, MAX_MAP_CELLS))

        requested, _ = self.load(field)

        bounds = GeoField(self.field_of(lower_left).lower_left, self.field_of(upper_right).upper_right)
        out = RasterGrid(bounds, (width, height))
        out.fill(np.nan)
        target = out.data

        contributors = [
            (address, tile)
            for address, tile in self._tiles_in_span(lower_left, upper_right)
            if tile.is_loaded
        ]

        def copy_tile(item: tuple[GridAddress, Tile]) -> bool:
            address, tile = item
            grid = tile.grid
            if grid is None:
                return False
            source = grid.data
            if source.shape != (rows, cols):
                logger.warning(
                    f"Tile {tile.metadata.tile_id} holds {source.shape[1]} x {source.shape[0]} "
                    f"cells, expected {cols} x {rows}; left out of map"
                )
                return False
            relative = address - lower_left
            col0 = relative.x * cols
            # Address y grows northward while raster rows grow southward
            row0 = (upper_right.y - address.y) * rows
            target[row0 : row0 + rows, col0 : col0 + cols] = source
            return True

        if contributors:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                copied = sum(executor.map(copy_tile, contributors))
        else:
            copied = 0

        failed = sum(
            1 for _, tile in self._tiles_in_span(lower_left, upper_right) if tile.has_error
        )
        logger.info(
            f"Stitched {copied}/{requested} tiles into {out.cols} x {out.rows} map "
            f"({failed} failed)"
        )
        return StitchResult(
            grid=out,
            tiles_requested=requested,
            tiles_contributed=copied,
            tiles_failed=failed,
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def footprints(self) -> list[dict[str, Any]]:
        """Per-tile bounding box, id, and source path, with lattice address."""
        result = []
        for address, tile in self.tiles():
            footprint = tile.footprint()
            footprint["address"] = [address.x, address.y]
            result.append(footprint)
        return result

    def describe(self) -> dict[str, Any]:
        cell = self.cell_size
        loaded = sum(1 for tile in self._tiles.values() if tile.is_loaded)
        errored = sum(1 for tile in self._tiles.values() if tile.has_error)
        return {
            "tile_count": self.count,
            "tile_size_deg": [self.tile_size.lat, self.tile_size.lon] if self.tile_size else [0.0, 0.0],
            "mesh_size": list(self.mesh_size) if self.mesh_size else [0, 0],
            "cell_size_deg": [cell.lat, cell.lon],
            "origin_offset_deg": [self.offset.lat, self.offset.lon] if self.offset else [0.0, 0.0],
            "loaded_tiles": loaded,
            "failed_tiles": errored,
            "duplicates": self.duplicates,
        }

    def __str__(self) -> str:
        return "\n".join(str(tile) for _, tile in self.tiles())
