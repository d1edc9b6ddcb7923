"""Response models for chuk-mcp-demindex."""

from .responses import (
    CapabilitiesResponse,
    CoverageResponse,
    CreateMapResponse,
    ErrorResponse,
    IngestResponse,
    MultiPointResponse,
    PointHeightResponse,
    PointInfo,
    RegistriesResponse,
    RegistryCoverage,
    RegistryInfo,
    StatusResponse,
    TileInfo,
    TilesResponse,
    format_response,
)

__all__ = [
    "ErrorResponse",
    "RegistryInfo",
    "RegistriesResponse",
    "TileInfo",
    "TilesResponse",
    "StatusResponse",
    "CapabilitiesResponse",
    "IngestResponse",
    "PointHeightResponse",
    "PointInfo",
    "MultiPointResponse",
    "RegistryCoverage",
    "CoverageResponse",
    "CreateMapResponse",
    "format_response",
]
