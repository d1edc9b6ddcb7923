"""
Geographic and grid value types.

GridAddress and GridField live in integer cell space (x grows eastward,
y grows southward). GeoPoint and GeoField live in decimal degrees.
All types are immutable and side-effect free.
"""

import math
from dataclasses import dataclass

from ..constants import ADDRESS_SNAP_EPSILON, METERS_PER_DEGREE_LAT


def snapped_floor(value: float, epsilon: float = ADDRESS_SNAP_EPSILON) -> int:
    """Floor toward negative infinity, treating values within epsilon of an integer as that integer."""
    nearest = round(value)
    if abs(value - nearest) < epsilon:
        return int(nearest)
    return math.floor(value)


def meters_per_degree(lat: float) -> tuple[float, float]:
    """Local (north, east) metres per degree at a latitude."""
    return METERS_PER_DEGREE_LAT, METERS_PER_DEGREE_LAT * math.cos(math.radians(lat))


@dataclass(frozen=True)
class GridAddress:
    """Integer (x, y) coordinate of a cell or of a tile within a registry."""

    x: int
    y: int

    def __add__(self, other: "GridAddress") -> "GridAddress":
        return GridAddress(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "GridAddress") -> "GridAddress":
        return GridAddress(self.x - other.x, self.y - other.y)

    def __lt__(self, other: "GridAddress") -> bool:
        # Priority ordering: nearer the origin sorts first
        return self.length < other.length

    @property
    def length(self) -> float:
        """Euclidean length from the origin."""
        return math.hypot(self.x, self.y)

    def distance_to(self, other: "GridAddress") -> float:
        return (self - other).length

    def __str__(self) -> str:
        return f"{self.x},{self.y}"


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def __add__(self, other: "GeoPoint") -> "GeoPoint":
        return GeoPoint(self.lat + other.lat, self.lon + other.lon)

    def __sub__(self, other: "GeoPoint") -> "GeoPoint":
        return GeoPoint(self.lat - other.lat, self.lon - other.lon)

    def median(self, other: "GeoPoint") -> "GeoPoint":
        """Midpoint between two points."""
        return GeoPoint((self.lat + other.lat) / 2.0, (self.lon + other.lon) / 2.0)

    def is_close(self, other: "GeoPoint", tol: float) -> bool:
        return math.isclose(self.lat, other.lat, rel_tol=0.0, abs_tol=tol) and math.isclose(
            self.lon, other.lon, rel_tol=0.0, abs_tol=tol
        )

    def __str__(self) -> str:
        return f"{self.lat:.8f},{self.lon:.8f}"


@dataclass(frozen=True)
class GeoField:
    """
    Geographic rectangle bounded by its lower-left and upper-right corners.

    Invariant: upper_right is north-east of (or equal to) lower_left.
    A field whose corners share a latitude or a longitude has zero area.
    """

    lower_left: GeoPoint
    upper_right: GeoPoint

    def __post_init__(self) -> None:
        if self.upper_right.lat < self.lower_left.lat or self.upper_right.lon < self.lower_left.lon:
            raise ValueError(
                f"Upper-right corner ({self.upper_right}) must not lie south or west "
                f"of lower-left corner ({self.lower_left})"
            )

    @classmethod
    def from_corners(cls, a: GeoPoint, b: GeoPoint) -> "GeoField":
        """Build a field from any two opposite corners."""
        return cls(
            GeoPoint(min(a.lat, b.lat), min(a.lon, b.lon)),
            GeoPoint(max(a.lat, b.lat), max(a.lon, b.lon)),
        )

    @classmethod
    def from_bbox(cls, bbox: list[float]) -> "GeoField":
        """Build a field from [west, south, east, north]."""
        west, south, east, north = bbox
        return cls(GeoPoint(south, west), GeoPoint(north, east))

    @classmethod
    def empty(cls) -> "GeoField":
        return cls(GeoPoint(0.0, 0.0), GeoPoint(0.0, 0.0))

    def to_bbox(self) -> list[float]:
        return [self.west, self.south, self.east, self.north]

    # ------------------------------------------------------------------
    # Corners and extents
    # ------------------------------------------------------------------

    @property
    def north(self) -> float:
        return self.upper_right.lat

    @property
    def south(self) -> float:
        return self.lower_left.lat

    @property
    def east(self) -> float:
        return self.upper_right.lon

    @property
    def west(self) -> float:
        return self.lower_left.lon

    @property
    def upper_left(self) -> GeoPoint:
        return GeoPoint(self.north, self.west)

    @property
    def lower_right(self) -> GeoPoint:
        return GeoPoint(self.south, self.east)

    @property
    def size(self) -> GeoPoint:
        """Height (lat) and width (lon) in degrees."""
        return self.upper_right - self.lower_left

    @property
    def center(self) -> GeoPoint:
        return self.upper_right.median(self.lower_left)

    @property
    def area_is_zero(self) -> bool:
        return self.north == self.south or self.east == self.west

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def contains(self, point: GeoPoint) -> bool:
        """Inclusive containment test."""
        return self.south <= point.lat <= self.north and self.west <= point.lon <= self.east

    def intersect(self, other: "GeoField") -> "GeoField":
        """Overlap of two fields; zero-area at this field's lower-left when disjoint."""
        south = max(self.south, other.south)
        north = min(self.north, other.north)
        west = max(self.west, other.west)
        east = min(self.east, other.east)
        if south > north or west > east:
            return GeoField(self.lower_left, self.lower_left)
        return GeoField(GeoPoint(south, west), GeoPoint(north, east))

    def translate(self, delta: GeoPoint) -> "GeoField":
        return GeoField(self.lower_left + delta, self.upper_right + delta)

    def corners(self) -> list[GeoPoint]:
        """Closed ring (lower-left first, counter-clockwise) for polygon export."""
        return [
            self.lower_left,
            self.lower_right,
            self.upper_right,
            self.upper_left,
            self.lower_left,
        ]

    def is_close(self, other: "GeoField", tol: float) -> bool:
        return self.lower_left.is_close(other.lower_left, tol) and self.upper_right.is_close(
            other.upper_right, tol
        )

    def __str__(self) -> str:
        return f"{self.lower_left},{self.upper_right}"


@dataclass(frozen=True)
class GridField:
    """Inclusive rectangle of cells; `upper` is the northern (smaller) y."""

    left: int
    upper: int
    right: int
    lower: int

    @classmethod
    def from_addresses(cls, a: GridAddress, b: GridAddress) -> "GridField":
        return cls(min(a.x, b.x), min(a.y, b.y), max(a.x, b.x), max(a.y, b.y))

    @classmethod
    def whole(cls, cols: int, rows: int) -> "GridField":
        """Every cell of a cols x rows grid."""
        return cls(0, 0, cols - 1, rows - 1)

    @property
    def width(self) -> int:
        return max(0, self.right - self.left + 1)

    @property
    def height(self) -> int:
        return max(0, self.lower - self.upper + 1)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def upper_left(self) -> GridAddress:
        return GridAddress(self.left, self.upper)

    @property
    def lower_right(self) -> GridAddress:
        return GridAddress(self.right, self.lower)

    def contains(self, address: GridAddress) -> bool:
        return self.left <= address.x <= self.right and self.upper <= address.y <= self.lower

    def intersect(self, other: "GridField") -> "GridField":
        return GridField(
            max(self.left, other.left),
            max(self.upper, other.upper),
            min(self.right, other.right),
            min(self.lower, other.lower),
        )

    def translate(self, shift: GridAddress) -> "GridField":
        return GridField(
            self.left + shift.x,
            self.upper + shift.y,
            self.right + shift.x,
            self.lower + shift.y,
        )

    def __str__(self) -> str:
        return f"{self.upper_left},{self.lower_right}"
