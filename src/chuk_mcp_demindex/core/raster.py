"""
Dense 2-D raster addressed by grid coordinate.

A RasterGrid pairs a GeoField with a numpy array of shape (rows, cols).
Cell GridAddress(x, y) is stored at data[y, x]: x grows eastward from the
western edge, y grows southward from the northern edge.

Element types are not fixed. Operations that need arithmetic or ordering
check the dtype's capability instead of relying on a class hierarchy.
"""

import logging
import math
from collections.abc import Iterator
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..constants import DEFAULT_DTYPE, ErrorMessages
from .errors import OutOfBoundsError, RasterStateError
from .geo import GeoField, GeoPoint, GridAddress, GridField, meters_per_degree, snapped_floor

logger = logging.getLogger(__name__)

_ARITHMETIC_KINDS = "iufc"
_ORDERED_KINDS = "biufmMUS"


class RasterGrid:
    """Raster of arbitrary numpy element type over a geographic rectangle."""

    def __init__(
        self,
        field: GeoField,
        size: tuple[int, int] | None = None,
        dtype: Any = DEFAULT_DTYPE,
    ) -> None:
        self.field = field
        self.dtype = np.dtype(dtype)
        self._size: tuple[int, int] = (0, 0)
        self._data: NDArray[Any] | None = None
        if size is not None:
            cols, rows = size
            if cols <= 0 or rows <= 0:
                raise ValueError(f"Raster size must be positive, got {cols} x {rows}")
            self._size = (int(cols), int(rows))
            self._data = np.zeros((self._size[1], self._size[0]), dtype=self.dtype)

    @classmethod
    def from_cell_size(
        cls,
        field: GeoField,
        cell_size_m: tuple[float, float],
        dtype: Any = DEFAULT_DTYPE,
    ) -> "RasterGrid":
        """
        Build a grid whose cells measure cell_size_m = (east_m, north_m).

        The lower-left corner is kept; the upper-right corner moves outward so
        the field holds a whole number of cells.
        """
        east_m, north_m = cell_size_m
        if east_m <= 0 or north_m <= 0:
            raise ValueError(f"Cell size must be positive, got {cell_size_m}")

        m_lat, _ = meters_per_degree(field.south)
        height_m = field.size.lat * m_lat
        rows = max(1, math.ceil(height_m / north_m - 1e-9))
        north = field.south + rows * north_m / m_lat

        _, m_lon = meters_per_degree((field.south + north) / 2.0)
        width_m = field.size.lon * m_lon
        cols = max(1, math.ceil(width_m / east_m - 1e-9))
        east = field.west + cols * east_m / m_lon

        snapped = GeoField(field.lower_left, GeoPoint(north, east))
        return cls(snapped, (cols, rows), dtype)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def size(self) -> tuple[int, int]:
        """(cols, rows); (0, 0) while unset."""
        return self._size

    @property
    def cols(self) -> int:
        return self._size[0]

    @property
    def rows(self) -> int:
        return self._size[1]

    @property
    def is_size_set(self) -> bool:
        return self.cols > 0 and self.rows > 0

    @property
    def is_data_set(self) -> bool:
        return self._data is not None

    @property
    def data(self) -> NDArray[Any]:
        if self._data is None:
            raise RasterStateError(ErrorMessages.DATA_NOT_SET)
        return self._data

    @property
    def length(self) -> int:
        return self.cols * self.rows

    @property
    def nodata(self) -> Any:
        """Not-available sentinel for this element type (NaN for floats)."""
        return math.nan if self.dtype.kind in "fc" else None

    @property
    def supports_arithmetic(self) -> bool:
        return self.dtype.kind in _ARITHMETIC_KINDS

    @property
    def supports_ordering(self) -> bool:
        return self.dtype.kind in _ORDERED_KINDS

    @property
    def cell_size_deg(self) -> GeoPoint:
        """Cell height (lat) and width (lon) in degrees."""
        self._require_size()
        size = self.field.size
        return GeoPoint(size.lat / self.rows, size.lon / self.cols)

    @property
    def mesh_size_m(self) -> tuple[float, float]:
        """Approximate cell (east_m, north_m) at the field's mid-latitude."""
        cell = self.cell_size_deg
        m_lat, m_lon = meters_per_degree(self.field.center.lat)
        return cell.lon * m_lon, cell.lat * m_lat

    # ------------------------------------------------------------------
    # Coordinate transforms
    # ------------------------------------------------------------------

    def geo_to_grid(self, point: GeoPoint) -> GridAddress:
        """Cell containing a point; valid for points outside the field."""
        self._require_size()
        if self.field.area_is_zero:
            raise RasterStateError(f"Cannot address a zero-area field {self.field}")
        y = snapped_floor(self.rows / (self.field.south - self.field.north) * (point.lat - self.field.north))
        x = snapped_floor(self.cols / (self.field.east - self.field.west) * (point.lon - self.field.west))
        return GridAddress(x, y)

    def grid_to_geo(self, address: GridAddress) -> GeoPoint:
        """Centre of a cell; the origin point when the size is unset."""
        if not self.is_size_set:
            return GeoPoint(0.0, 0.0)
        lat = (self.field.south - self.field.north) / self.rows * (address.y + 0.5) + self.field.north
        lon = (self.field.east - self.field.west) / self.cols * (address.x + 0.5) + self.field.west
        return GeoPoint(lat, lon)

    def cell_field(self, address: GridAddress) -> GeoField:
        """Geographic extent of one cell; degenerate when the size is unset."""
        if not self.is_size_set:
            return GeoField.empty()
        center = self.grid_to_geo(address)
        cell = self.cell_size_deg
        half = GeoPoint(cell.lat / 2.0, cell.lon / 2.0)
        return GeoField(center - half, center + half)

    def in_bounds(self, address: GridAddress) -> bool:
        self._require_size()
        return 0 <= address.x < self.cols and 0 <= address.y < self.rows

    def distance_m(self, a: GridAddress, b: GridAddress) -> float:
        """Approximate ground distance between two cells."""
        diff = a - b
        east_m, north_m = self.mesh_size_m
        return math.hypot(diff.x * east_m, diff.y * north_m)

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def get(self, address: GridAddress) -> Any:
        self._check_bounds(address)
        return self.data[address.y, address.x].item()

    def set(self, address: GridAddress, value: Any) -> None:
        self._check_bounds(address)
        self.data[address.y, address.x] = value

    def __getitem__(self, address: GridAddress) -> Any:
        return self.get(address)

    def __setitem__(self, address: GridAddress, value: Any) -> None:
        self.set(address, value)

    def value_at(self, point: GeoPoint) -> Any:
        """Value of the cell under a point; nodata outside the field."""
        if not self.field.contains(point):
            return self.nodata
        address = self.geo_to_grid(point)
        # The east and south edges are inclusive and belong to the last cell
        x = self.cols - 1 if address.x == self.cols else address.x
        y = self.rows - 1 if address.y == self.rows else address.y
        return self.get(GridAddress(x, y))

    def add_value(self, target: GeoPoint | GridAddress, value: Any) -> None:
        """Add to one cell; points outside the field are ignored."""
        if not self.supports_arithmetic:
            raise TypeError(ErrorMessages.NOT_NUMERIC.format(self.dtype))
        if isinstance(target, GeoPoint):
            if not self.field.contains(target):
                return
            address = self.geo_to_grid(target)
            if not self.in_bounds(address):
                return
        else:
            address = target
            self._check_bounds(address)
        self.data[address.y, address.x] += value

    def iter_cells(self) -> Iterator[tuple[GridAddress, GeoPoint, Any]]:
        """Yield (address, cell centre, value) row by row from the north-west."""
        data = self.data
        for y in range(self.rows):
            for x in range(self.cols):
                address = GridAddress(x, y)
                yield address, self.grid_to_geo(address), data[y, x].item()

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def fill(self, value: Any) -> None:
        """Set every cell to value (NaN marks no-data for float grids)."""
        self._require_size()
        if self._data is None:
            self._data = np.empty((self.rows, self.cols), dtype=self.dtype)
        self._data.fill(value)

    def set_data(self, array: Any) -> None:
        """Copy a (rows, cols) array into the grid, adopting its size if unset."""
        values = np.asarray(array, dtype=self.dtype)
        if values.ndim != 2 or values.size == 0:
            raise ValueError(f"Raster data must be a non-empty 2D array, got shape {values.shape}")
        rows, cols = values.shape
        if not self.is_size_set:
            self._size = (cols, rows)
        elif (cols, rows) != self._size:
            raise ValueError(ErrorMessages.SIZE_MISMATCH.format(values.shape, self.cols, self.rows))
        self._data = values.copy()

    def copy(self) -> "RasterGrid":
        clone = RasterGrid(self.field, dtype=self.dtype)
        if self.is_size_set:
            clone._size = self._size
        if self._data is not None:
            clone._data = self._data.copy()
        return clone

    def crop(self, field: GeoField) -> "RasterGrid | None":
        """
        Sub-grid covering the part of field that overlaps this grid.

        The crop's corners are midpoints between adjacent cell centres, so
        its cells line up exactly with the parent's. Returns None when the
        overlap has zero area.
        """
        overlap = field.intersect(self.field)
        if overlap.area_is_zero:
            return None

        corner_ul = self.geo_to_grid(overlap.upper_left)
        corner_lr = self.geo_to_grid(overlap.lower_right)
        cells = GridField.from_addresses(corner_ul, corner_lr).intersect(
            GridField.whole(self.cols, self.rows)
        )
        if cells.is_empty:
            return None

        block = self.data[cells.upper : cells.lower + 1, cells.left : cells.right + 1]
        one = GridAddress(1, 1)
        upper_left = self.grid_to_geo(cells.upper_left).median(
            self.grid_to_geo(cells.upper_left - one)
        )
        lower_right = self.grid_to_geo(cells.lower_right).median(
            self.grid_to_geo(cells.lower_right + one)
        )

        cropped = RasterGrid(
            GeoField.from_corners(upper_left, lower_right),
            (cells.width, cells.height),
            self.dtype,
        )
        cropped.set_data(block)
        return cropped

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def value_range(self) -> tuple[float, float] | None:
        """(min, max) ignoring NaN; None when no cell holds data."""
        if not self.supports_ordering:
            raise TypeError(ErrorMessages.NOT_ORDERED.format(self.dtype))
        data = self.data
        if self.dtype.kind in "fc":
            valid = data[~np.isnan(data)]
        else:
            valid = data.ravel()
        if valid.size == 0:
            return None
        return float(np.min(valid)), float(np.max(valid))

    def nodata_count(self) -> int:
        if self.dtype.kind not in "fc":
            return 0
        return int(np.sum(np.isnan(self.data)))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_size(self) -> None:
        if not self.is_size_set:
            raise RasterStateError(ErrorMessages.SIZE_NOT_SET)

    def _check_bounds(self, address: GridAddress) -> None:
        if not self.in_bounds(address):
            raise OutOfBoundsError(
                ErrorMessages.OUT_OF_BOUNDS.format(address.x, address.y, self.cols, self.rows)
            )

    def __repr__(self) -> str:
        return f"RasterGrid(field={self.field}, size={self.cols}x{self.rows}, dtype={self.dtype})"
