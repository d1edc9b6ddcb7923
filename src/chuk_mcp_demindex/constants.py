"""
Constants for chuk-mcp-demindex server.

All magic strings, tolerances, defaults, and configuration keys live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-demindex"
    VERSION = "0.1.0"
    DESCRIPTION = "Elevation Tile Registry, Point Query & Map Stitching MCP Server"


class StorageProvider:
    MEMORY = "memory"
    S3 = "s3"
    FILESYSTEM = "filesystem"


class SessionProvider:
    MEMORY = "memory"
    REDIS = "redis"


class EnvVar:
    ARTIFACTS_PROVIDER = "CHUK_ARTIFACTS_PROVIDER"
    BUCKET_NAME = "BUCKET_NAME"
    REDIS_URL = "REDIS_URL"
    ARTIFACTS_PATH = "CHUK_ARTIFACTS_PATH"
    AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
    AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
    MCP_STDIO = "MCP_STDIO"
    TILE_DIRS = "DEMINDEX_TILE_DIRS"
    MAX_WORKERS = "DEMINDEX_MAX_WORKERS"
    COVERAGE_THRESHOLD = "DEMINDEX_COVERAGE_THRESHOLD"


class TileFormat:
    UNKNOWN = "unknown"
    GEOTIFF = "geotiff"


class ReadMode:
    HEADER_ONLY = "header_only"
    HEADER_AND_VALUES = "header_and_values"


ALL_READ_MODES = [ReadMode.HEADER_ONLY, ReadMode.HEADER_AND_VALUES]

# Tile files picked up by a directory scan (no recursion)
TILE_FILE_PATTERNS = ("*.tif", "*.tiff")

# GeoTIFF tags carrying the declared tile identity
TAG_TILE_ID = "TILE_ID"
TAG_TILE_NAME = "TILE_NAME"

# Registry geometry tolerances (decimal degrees)
OFFSET_SNAP_TOLERANCE_DEG = 3e-6  # ~30 cm
TILE_SIZE_TOLERANCE_DEG = 1e-8
OFFSET_MATCH_TOLERANCE_DEG = 1e-6
ADDRESS_SNAP_EPSILON = 1e-9
FIELD_MATCH_TOLERANCE_DEG = 1e-9

# Accepted tile extents (decimal degrees); longitudes up to 360 allow 0-360 grids
LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 360.0)

# Query defaults
DEFAULT_COVERAGE_THRESHOLD = 0.3
DEFAULT_MAX_WORKERS = 8
DEFAULT_DTYPE = "float32"
MAX_MAP_CELLS = 100_000_000  # 400 MB of float32

# Local metric approximation
METERS_PER_DEGREE_LAT = 111320.0

# Tool catalogue
QUERY_TOOLS = [
    "dem_ingest_directory",
    "dem_height",
    "dem_heights",
    "dem_check_coverage",
    "dem_create_map",
]
DISCOVERY_TOOLS = ["dem_status", "dem_capabilities", "dem_list_registries", "dem_list_tiles"]
SUPPORTED_FORMATS = [TileFormat.GEOTIFF]
OUTPUT_FORMATS = ["geotiff"]


class ErrorMessages:
    INVALID_BBOX = "Invalid bounding box: must be [west, south, east, north]"
    INVALID_BBOX_VALUES = "Invalid bounding box values: west ({}) must be <= east ({})"
    INVALID_BBOX_LAT = "Invalid bounding box values: south ({}) must be <= north ({})"
    INVALID_POINT = "Invalid point {}: must be [lon, lat]"
    INVALID_THRESHOLD = "coverage_threshold must be between 0 and 1, got {}"
    INVALID_READ_MODE = "Invalid read mode '{}'. Available: {}"
    DIRECTORY_NOT_FOUND = "Tile directory '{}' does not exist"
    NO_TILES = "No tiles have been ingested. Call dem_ingest_directory first."
    NO_COVERAGE = "No registry covers {} at coverage threshold {:.2f}"
    UNKNOWN_REGISTRY = "Unknown registry index {}. Available: 0..{}"
    REGISTRY_GEOMETRY_UNSET = "Registry geometry is not set; add a tile first"
    REGISTRY_EMPTY = "Cannot create a map from an empty registry"
    MAP_TOO_LARGE = "Requested map of {} x {} cells exceeds the limit of {} cells; use a smaller bbox"
    OUT_OF_BOUNDS = "Address ({}, {}) is outside the grid ({} x {})"
    SIZE_NOT_SET = "Raster size is not set; the grid must be initialized first"
    DATA_NOT_SET = "Raster data is not set; the grid must be filled first"
    SIZE_MISMATCH = "Array shape {} does not match grid size {} x {}"
    NOT_NUMERIC = "Element type {} does not support arithmetic"
    NOT_ORDERED = "Element type {} does not support ordering"
    FILE_MISSING = "Tile file '{}' does not exist"
    FORMAT_MISMATCH = "'{}' is not a recognizable elevation tile: {}"
    TILE_SIZE_MISMATCH = "Tile '{}' holds {} x {} cells but its header declares {} x {}"
    LOAD_FAILED = "Failed to load tile '{}': {}"
    NO_ARTIFACT_STORE = (
        "No artifact store available. Configure CHUK_ARTIFACTS_PROVIDER "
        "environment variable (memory, filesystem, or s3)."
    )


class SuccessMessages:
    INGEST = "Ingested {} tiles from {} ({} skipped, {} registries)"
    POINT_HEIGHT = "Elevation at point: {:.1f}m"
    POINT_NO_DATA = "No elevation data at point"
    POINTS_HEIGHT = "Retrieved elevation for {} points ({} without data)"
    COVERAGE = "Coverage checked against {} registries"
    CREATE_MAP = "Stitched {} of {} tiles into a {} x {} map"
    REGISTRIES = "{} registries holding {} tiles"
    TILES = "{} tiles listed"
    STATUS = "DEM index server v{} ({} registries, {} tiles)"
