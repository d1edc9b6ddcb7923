"""
Query tools — directory ingestion, point elevation, coverage, map stitching.

Tile reads and stitching are blocking and run in worker threads via
asyncio.to_thread(); stitched maps are stored in the artifact store.
"""

import asyncio
import logging
import math

from ...constants import (
    DEFAULT_COVERAGE_THRESHOLD,
    ErrorMessages,
    ReadMode,
    SuccessMessages,
)
from ...core.artifacts import store_raster
from ...core.geo import GeoField, GeoPoint
from ...core.raster_io import grid_to_geotiff
from ...models.responses import (
    CoverageResponse,
    CreateMapResponse,
    ErrorResponse,
    IngestResponse,
    MultiPointResponse,
    PointHeightResponse,
    PointInfo,
    RegistryCoverage,
    format_response,
)

logger = logging.getLogger(__name__)


def parse_bbox(bbox: list[float]) -> GeoField:
    """Validate [west, south, east, north] and convert it to a GeoField."""
    if len(bbox) != 4 or not all(math.isfinite(v) for v in bbox):
        raise ValueError(ErrorMessages.INVALID_BBOX)
    west, south, east, north = bbox
    if west > east:
        raise ValueError(ErrorMessages.INVALID_BBOX_VALUES.format(west, east))
    if south > north:
        raise ValueError(ErrorMessages.INVALID_BBOX_LAT.format(south, north))
    return GeoField.from_bbox(bbox)


def parse_point(point: list[float]) -> GeoPoint:
    """Validate [lon, lat] and convert it to a GeoPoint."""
    if len(point) != 2 or not all(math.isfinite(v) for v in point):
        raise ValueError(ErrorMessages.INVALID_POINT.format(point))
    lon, lat = point
    return GeoPoint(lat, lon)


def check_threshold(value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(ErrorMessages.INVALID_THRESHOLD.format(value))
    return value


def _or_none(value: float) -> float | None:
    return None if math.isnan(value) else value


def register_query_tools(mcp, index, default_threshold: float = DEFAULT_COVERAGE_THRESHOLD):
    """Register query tools with the MCP server."""

    @mcp.tool()
    async def dem_ingest_directory(
        directory: str,
        load_values: bool = False,
        output_mode: str = "json",
    ) -> str:
        """Index every GeoTIFF elevation tile in a directory (no recursion).

        Tiles are grouped into registries by tile size, mesh size, and grid
        offset. Files that are not readable elevation tiles are skipped.

        Args:
            directory: Directory holding .tif/.tiff tiles
            load_values: Also read every tile's elevation data now (default: on first use)
            output_mode: "json" or "text"

        Returns:
            Counts of files found, tiles added, and tiles skipped
        """
        try:
            read_mode = ReadMode.HEADER_AND_VALUES if load_values else ReadMode.HEADER_ONLY
            result = await asyncio.to_thread(index.add_directory, directory, read_mode)

            response = IngestResponse(
                directory=result.directory,
                read_mode=read_mode,
                files_found=result.files_found,
                tiles_added=result.tiles_added,
                skipped=result.skipped,
                tiles_loaded=result.tiles_loaded,
                registry_count=result.registry_count,
                message=SuccessMessages.INGEST.format(
                    result.tiles_added, result.directory, result.skipped, result.registry_count
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_ingest_directory failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_height(lon: float, lat: float, output_mode: str = "json") -> str:
        """Get elevation at a single geographic point from the finest tile that has data.

        Args:
            lon: Longitude in decimal degrees
            lat: Latitude in decimal degrees
            output_mode: "json" or "text"

        Returns:
            Elevation in metres, or null where no tile has data
        """
        try:
            if not index.ready:
                raise ValueError(ErrorMessages.NO_TILES)
            point = parse_point([lon, lat])
            value = _or_none(await asyncio.to_thread(index.height, point))

            message = (
                SuccessMessages.POINT_NO_DATA
                if value is None
                else SuccessMessages.POINT_HEIGHT.format(value)
            )
            response = PointHeightResponse(lon=lon, lat=lat, elevation_m=value, message=message)
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_height failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_heights(points: list[list[float]], output_mode: str = "json") -> str:
        """Get elevations at many points in one request, evaluated in parallel.

        Args:
            points: List of [lon, lat] coordinate pairs
            output_mode: "json" or "text"

        Returns:
            One elevation per input point, in input order, with range statistics
        """
        try:
            if not index.ready:
                raise ValueError(ErrorMessages.NO_TILES)
            parsed = [parse_point(p) for p in points]
            values = [_or_none(v) for v in await asyncio.to_thread(index.heights, parsed)]

            found = [v for v in values if v is not None]
            point_infos = [
                PointInfo(lon=p.lon, lat=p.lat, elevation_m=v) for p, v in zip(parsed, values)
            ]
            response = MultiPointResponse(
                point_count=len(parsed),
                points=point_infos,
                missing_count=len(values) - len(found),
                elevation_range=[min(found), max(found)] if found else None,
                message=SuccessMessages.POINTS_HEIGHT.format(
                    len(parsed), len(values) - len(found)
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_heights failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_check_coverage(
        bbox: list[float],
        coverage_threshold: float | None = None,
        output_mode: str = "json",
    ) -> str:
        """Check how completely each registry covers a bounding box.

        Args:
            bbox: Bounding box [west, south, east, north] in decimal degrees
            coverage_threshold: Minimum fraction of tiles present (default: server setting)
            output_mode: "json" or "text"

        Returns:
            Coverage per registry and the registry dem_create_map would use
        """
        try:
            field = parse_bbox(bbox)
            threshold = check_threshold(
                default_threshold if coverage_threshold is None else coverage_threshold
            )
            rates = await asyncio.to_thread(index.coverage, field)
            describe = index.describe()

            selected = next((i for i, rate in enumerate(rates) if rate >= threshold), None)
            response = CoverageResponse(
                bbox=bbox,
                coverage_threshold=threshold,
                registries=[
                    RegistryCoverage(
                        registry=i, coverage=rate, cell_size_deg=describe[i]["cell_size_deg"]
                    )
                    for i, rate in enumerate(rates)
                ],
                selected_registry=selected,
                message=SuccessMessages.COVERAGE.format(len(rates)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_check_coverage failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_create_map(
        bbox: list[float],
        coverage_threshold: float | None = None,
        output_mode: str = "json",
    ) -> str:
        """Stitch the tiles covering a bounding box into one elevation map.

        Uses the finest registry whose coverage reaches the threshold. The map
        spans whole tiles; cells without a tile are NaN. Stored as a GeoTIFF
        artifact.

        Args:
            bbox: Bounding box [west, south, east, north] in decimal degrees
            coverage_threshold: Minimum fraction of tiles present (default: server setting)
            output_mode: "json" or "text"

        Returns:
            Artifact reference with shape, tile counts, and elevation range
        """
        try:
            if not index.ready:
                raise ValueError(ErrorMessages.NO_TILES)
            field = parse_bbox(bbox)
            threshold = check_threshold(
                default_threshold if coverage_threshold is None else coverage_threshold
            )

            rates = await asyncio.to_thread(index.coverage, field)
            selected = next((i for i, rate in enumerate(rates) if rate >= threshold), None)
            if selected is None:
                raise ValueError(ErrorMessages.NO_COVERAGE.format(bbox, threshold))

            result = await asyncio.to_thread(index.registry(selected).create_map, field)
            grid = result.grid
            value_range = grid.value_range()
            data = await asyncio.to_thread(grid_to_geotiff, grid)

            artifact_ref = await store_raster(
                data,
                metadata={
                    "type": "stitched_map",
                    "bbox": bbox,
                    "map_bbox": grid.field.to_bbox(),
                    "registry": selected,
                    "shape": [grid.rows, grid.cols],
                    "tiles_contributed": result.tiles_contributed,
                },
            )

            cell = grid.cell_size_deg
            response = CreateMapResponse(
                bbox=bbox,
                map_bbox=grid.field.to_bbox(),
                registry=selected,
                coverage=rates[selected],
                shape=[grid.rows, grid.cols],
                cell_size_deg=[cell.lat, cell.lon],
                tiles_requested=result.tiles_requested,
                tiles_contributed=result.tiles_contributed,
                tiles_failed=result.tiles_failed,
                nodata_pixels=grid.nodata_count(),
                elevation_range=list(value_range) if value_range else None,
                artifact_ref=artifact_ref,
                message=SuccessMessages.CREATE_MAP.format(
                    result.tiles_contributed, result.tiles_requested, grid.cols, grid.rows
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_create_map failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
