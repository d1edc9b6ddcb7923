"""
Response models for chuk-mcp-demindex tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from pydantic import BaseModel, ConfigDict, Field


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


def _bbox_str(bbox: list[float]) -> str:
    return ", ".join(f"{b:.4f}" for b in bbox)


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")

    def to_text(self) -> str:
        return f"Error: {self.error}"


# ---------------------------------------------------------------------------
# Discovery responses
# ---------------------------------------------------------------------------


class RegistryInfo(BaseModel):
    """Summary of one tile registry (one tile geometry family)."""

    model_config = ConfigDict(extra="forbid")

    index: int = Field(..., description="Registry index, finest mesh first", ge=0)
    tile_count: int = Field(..., description="Number of tiles held", ge=0)
    tile_size_deg: list[float] = Field(..., description="Tile size [lat, lon] in degrees")
    mesh_size: list[int] = Field(..., description="Cells per tile [cols, rows]")
    cell_size_deg: list[float] = Field(..., description="Cell size [lat, lon] in degrees")
    origin_offset_deg: list[float] = Field(
        ..., description="Lattice offset [lat, lon] of tile corners from (0, 0)"
    )
    loaded_tiles: int = Field(..., description="Tiles whose payload is in memory", ge=0)
    failed_tiles: int = Field(..., description="Tiles that failed to load", ge=0)
    duplicates: int = Field(..., description="Duplicate tiles discarded at ingestion", ge=0)

    def to_text(self) -> str:
        cols, rows = self.mesh_size
        return (
            f"#{self.index}: {self.tile_count} tiles, "
            f"{self.tile_size_deg[0]:g} x {self.tile_size_deg[1]:g} deg, "
            f"{cols} x {rows} mesh ({self.loaded_tiles} loaded, {self.failed_tiles} failed)"
        )


class RegistriesResponse(BaseModel):
    """Response model for listing tile registries."""

    model_config = ConfigDict(extra="forbid")

    registries: list[RegistryInfo] = Field(..., description="Registries, finest mesh first")
    tile_count: int = Field(..., description="Total tiles across all registries", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, ""]
        for r in self.registries:
            lines.append(f"  {r.to_text()}")
        return "\n".join(lines)


class TileInfo(BaseModel):
    """Footprint of one ingested tile."""

    model_config = ConfigDict(extra="forbid")

    registry: int = Field(..., description="Index of the owning registry", ge=0)
    address: list[int] = Field(..., description="Lattice address [x, y] inside the registry")
    tile_id: str = Field(..., description="Declared tile identifier")
    name: str = Field(..., description="Declared tile name")
    path: str = Field(..., description="Source file path")
    bbox: list[float] = Field(..., description="Tile extent [west, south, east, north]")
    mesh_size: list[int] = Field(..., description="Cells per tile [cols, rows]")
    format: str = Field(..., description="Tile file format")
    loaded: bool = Field(..., description="Whether the payload is in memory")
    error: str | None = Field(None, description="Load failure, if any")

    def to_text(self) -> str:
        state = "loaded" if self.loaded else "header only"
        if self.error:
            state = f"FAILED: {self.error}"
        return f"{self.tile_id} [{_bbox_str(self.bbox)}] registry #{self.registry} ({state})"


class TilesResponse(BaseModel):
    """Response model for listing tile footprints."""

    model_config = ConfigDict(extra="forbid")

    tiles: list[TileInfo] = Field(..., description="Tile footprints")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, ""]
        for t in self.tiles:
            lines.append(f"  {t.to_text()}")
        return "\n".join(lines)


class StatusResponse(BaseModel):
    """Response model for server status queries."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(default="chuk-mcp-demindex", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    registry_count: int = Field(..., description="Number of tile registries", ge=0)
    tile_count: int = Field(..., description="Number of ingested tiles", ge=0)
    loaded_tiles: int = Field(..., description="Tiles whose payload is in memory", ge=0)
    max_workers: int = Field(..., description="Thread pool size for loading and stitching", ge=1)
    storage_provider: str = Field(..., description="Active storage provider")
    artifact_store_available: bool = Field(
        default=False, description="Whether artifact store is available"
    )
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Registries: {self.registry_count}",
            f"Tiles: {self.tile_count} ({self.loaded_tiles} loaded)",
            f"Workers: {self.max_workers}",
            f"Storage: {self.storage_provider}",
            f"Artifact store: {'available' if self.artifact_store_available else 'not available'}",
        ]
        return "\n".join(lines)


class CapabilitiesResponse(BaseModel):
    """Response model for server capabilities listing."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    tile_formats: list[str] = Field(..., description="Readable tile formats")
    read_modes: list[str] = Field(..., description="Directory ingestion read modes")
    discovery_tools: list[str] = Field(..., description="Discovery tool names")
    query_tools: list[str] = Field(..., description="Query tool names")
    output_formats: list[str] = Field(..., description="Supported map output formats")
    default_coverage_threshold: float = Field(
        ..., description="Coverage threshold used when none is given", ge=0, le=1
    )
    tool_count: int = Field(..., description="Number of available tools", ge=0)
    llm_guidance: str = Field(..., description="LLM-friendly usage guidance for the server")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Tools: {self.tool_count}",
            f"Tile formats: {', '.join(self.tile_formats)}",
            f"Read modes: {', '.join(self.read_modes)}",
            f"Query tools: {', '.join(self.query_tools)}",
            f"Output formats: {', '.join(self.output_formats)}",
            f"Default coverage threshold: {self.default_coverage_threshold:.2f}",
            f"Guidance: {self.llm_guidance}",
        ]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Query responses
# ---------------------------------------------------------------------------


class IngestResponse(BaseModel):
    """Response model for directory ingestion."""

    model_config = ConfigDict(extra="forbid")

    directory: str = Field(..., description="Scanned directory")
    read_mode: str = Field(..., description="Ingestion read mode")
    files_found: int = Field(..., description="Candidate tile files found", ge=0)
    tiles_added: int = Field(..., description="Tiles routed into registries", ge=0)
    skipped: int = Field(..., description="Files skipped as unrecognizable", ge=0)
    tiles_loaded: int = Field(..., description="Tiles loaded eagerly", ge=0)
    registry_count: int = Field(..., description="Registries after ingestion", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.message,
            f"Files found: {self.files_found}",
            f"Read mode: {self.read_mode}",
        ]
        if self.tiles_loaded:
            lines.append(f"Loaded eagerly: {self.tiles_loaded}")
        return "\n".join(lines)


class PointHeightResponse(BaseModel):
    """Response model for single-point elevation query."""

    model_config = ConfigDict(extra="forbid")

    lon: float = Field(..., description="Longitude of the query point")
    lat: float = Field(..., description="Latitude of the query point")
    elevation_m: float | None = Field(..., description="Elevation in metres, null if no data")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        if self.elevation_m is None:
            return f"No elevation data at ({self.lon:.6f}, {self.lat:.6f})"
        return f"Elevation at ({self.lon:.6f}, {self.lat:.6f}): {self.elevation_m:.1f}m"


class PointInfo(BaseModel):
    """Elevation for a single point in a multi-point query."""

    model_config = ConfigDict(extra="forbid")

    lon: float = Field(..., description="Longitude")
    lat: float = Field(..., description="Latitude")
    elevation_m: float | None = Field(..., description="Elevation in metres, null if no data")


class MultiPointResponse(BaseModel):
    """Response model for multi-point elevation query."""

    model_config = ConfigDict(extra="forbid")

    point_count: int = Field(..., description="Number of points queried", ge=0)
    points: list[PointInfo] = Field(..., description="Elevations in input order")
    missing_count: int = Field(..., description="Points without data", ge=0)
    elevation_range: list[float] | None = Field(
        None, description="[min, max] elevation over points with data"
    )
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message]
        if self.elevation_range:
            lines.append(
                f"Range: {self.elevation_range[0]:.1f}m to {self.elevation_range[1]:.1f}m"
            )
        for p in self.points:
            value = "no data" if p.elevation_m is None else f"{p.elevation_m:.1f}m"
            lines.append(f"  ({p.lon:.6f}, {p.lat:.6f}): {value}")
        return "\n".join(lines)


class RegistryCoverage(BaseModel):
    """Coverage of an area by one registry."""

    model_config = ConfigDict(extra="forbid")

    registry: int = Field(..., description="Registry index", ge=0)
    coverage: float = Field(..., description="Fraction of spanned tiles present", ge=0, le=1)
    cell_size_deg: list[float] = Field(..., description="Cell size [lat, lon] in degrees")


class CoverageResponse(BaseModel):
    """Response model for checking tile coverage over an area."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Requested bounding box [west, south, east, north]")
    coverage_threshold: float = Field(..., description="Threshold used for selection", ge=0, le=1)
    registries: list[RegistryCoverage] = Field(..., description="Coverage per registry")
    selected_registry: int | None = Field(
        None, description="Finest registry reaching the threshold, if any"
    )
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [f"Coverage check: [{_bbox_str(self.bbox)}]"]
        for r in self.registries:
            lines.append(f"  #{r.registry}: {r.coverage * 100:.1f}%")
        if self.selected_registry is None:
            lines.append(f"No registry reaches {self.coverage_threshold:.2f}")
        else:
            lines.append(f"Selected registry: #{self.selected_registry}")
        return "\n".join(lines)


class CreateMapResponse(BaseModel):
    """Response model for a stitched elevation map."""

    model_config = ConfigDict(extra="forbid")

    bbox: list[float] = Field(..., description="Requested bounding box [west, south, east, north]")
    map_bbox: list[float] = Field(
        ..., description="Extent of the stitched map [west, south, east, north]"
    )
    registry: int = Field(..., description="Registry the map was built from", ge=0)
    coverage: float = Field(..., description="Coverage of the request by that registry", ge=0, le=1)
    shape: list[int] = Field(..., description="Map shape [height, width]")
    cell_size_deg: list[float] = Field(..., description="Cell size [lat, lon] in degrees")
    tiles_requested: int = Field(..., description="Tiles spanned by the request", ge=0)
    tiles_contributed: int = Field(..., description="Tiles copied into the map", ge=0)
    tiles_failed: int = Field(..., description="Tiles that failed to load", ge=0)
    nodata_pixels: int = Field(..., description="Cells left without data", ge=0)
    elevation_range: list[float] | None = Field(
        None, description="[min, max] elevation in metres"
    )
    artifact_ref: str = Field(..., description="Artifact store reference for the GeoTIFF")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.message,
            f"Requested: [{_bbox_str(self.bbox)}]",
            f"Map extent: [{_bbox_str(self.map_bbox)}]",
            f"Registry: #{self.registry} ({self.coverage * 100:.1f}% coverage)",
            f"Shape: {self.shape[0]}x{self.shape[1]}",
            f"Tiles: {self.tiles_contributed}/{self.tiles_requested} ({self.tiles_failed} failed)",
            f"No-data pixels: {self.nodata_pixels}",
        ]
        if self.elevation_range:
            lines.append(
                f"Elevation range: {self.elevation_range[0]:.1f}m to {self.elevation_range[1]:.1f}m"
            )
        lines.append(f"Artifact: {self.artifact_ref}")
        return "\n".join(lines)
