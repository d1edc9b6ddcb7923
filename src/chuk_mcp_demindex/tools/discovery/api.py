"""
Discovery tools — server status, capabilities, registry and tile listing.

These tools touch no tile payloads and report what the elevation index
currently holds.
"""

import logging
import os

from ...constants import (
    ALL_READ_MODES,
    DEFAULT_COVERAGE_THRESHOLD,
    DISCOVERY_TOOLS,
    OUTPUT_FORMATS,
    QUERY_TOOLS,
    SUPPORTED_FORMATS,
    EnvVar,
    ServerConfig,
    StorageProvider,
    SuccessMessages,
)
from ...core.artifacts import get_store
from ...models.responses import (
    CapabilitiesResponse,
    ErrorResponse,
    RegistriesResponse,
    RegistryInfo,
    StatusResponse,
    TileInfo,
    TilesResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_discovery_tools(mcp, index):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def dem_status(output_mode: str = "json") -> str:
        """Get server status including version, ingested tiles, and storage configuration.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

            try:
                get_store()
                store_available = True
            except Exception as e:
                logger.debug(f"Artifact store unavailable: {e}")
                store_available = False

            registries = index.describe()
            loaded = sum(r["loaded_tiles"] for r in registries)

            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                registry_count=len(registries),
                tile_count=index.tile_count,
                loaded_tiles=loaded,
                max_workers=index.max_workers,
                storage_provider=provider,
                artifact_store_available=store_available,
                message=SuccessMessages.STATUS.format(
                    ServerConfig.VERSION, len(registries), index.tile_count
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities including tile formats, read modes, and tools.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                tile_formats=SUPPORTED_FORMATS,
                read_modes=ALL_READ_MODES,
                discovery_tools=DISCOVERY_TOOLS,
                query_tools=QUERY_TOOLS,
                output_formats=OUTPUT_FORMATS,
                default_coverage_threshold=DEFAULT_COVERAGE_THRESHOLD,
                tool_count=len(DISCOVERY_TOOLS) + len(QUERY_TOOLS),
                llm_guidance=(
                    "Use dem_ingest_directory to index a folder of GeoTIFF elevation tiles. "
                    "Use dem_list_registries to see tile families grouped by resolution. "
                    "Use dem_height or dem_heights for point elevations (finest data wins). "
                    "Use dem_check_coverage before dem_create_map to see which registry "
                    "would serve an area. dem_create_map stitches tiles into one GeoTIFF; "
                    "cells without a tile are NaN."
                ),
                message=f"{ServerConfig.NAME} v{ServerConfig.VERSION} capabilities",
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_list_registries(output_mode: str = "json") -> str:
        """List tile registries, one per tile geometry, finest resolution first.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Registry summaries with tile size, mesh size, and load state
        """
        try:
            registries = [RegistryInfo(**r) for r in index.describe()]
            response = RegistriesResponse(
                registries=registries,
                tile_count=index.tile_count,
                message=SuccessMessages.REGISTRIES.format(len(registries), index.tile_count),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_list_registries failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def dem_list_tiles(registry: int | None = None, output_mode: str = "json") -> str:
        """List tile footprints (bbox, id, source path) for one or all registries.

        Args:
            registry: Registry index from dem_list_registries (default: all)
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Tile footprints with lattice addresses and load state
        """
        try:
            if registry is None:
                footprints = index.footprints()
            else:
                footprints = [
                    {**footprint, "registry": registry}
                    for footprint in index.registry(registry).footprints()
                ]

            tiles = [TileInfo(**f) for f in footprints]
            response = TilesResponse(
                tiles=tiles,
                message=SuccessMessages.TILES.format(len(tiles)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"dem_list_tiles failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
