#!/usr/bin/env python3
"""
Async DEM Index MCP Server using chuk-mcp-server

Elevation tile registry, point query, and map stitching. Indexes
directories of GeoTIFF elevation tiles, answers point elevation queries,
and stores stitched maps in chuk-artifacts for downstream analysis.

Storage is managed through chuk-mcp-server's built-in artifact store context.
"""

import logging
import os

from chuk_mcp_server import ChukMCPServer

from .constants import DEFAULT_COVERAGE_THRESHOLD, DEFAULT_MAX_WORKERS, EnvVar, ServerConfig
from .core.elevation_index import ElevationIndex
from .tools.discovery import register_discovery_tools
from .tools.query import register_query_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


max_workers = max(1, _env_number(EnvVar.MAX_WORKERS, DEFAULT_MAX_WORKERS, int))
coverage_threshold = _env_number(EnvVar.COVERAGE_THRESHOLD, DEFAULT_COVERAGE_THRESHOLD, float)
if not 0.0 <= coverage_threshold <= 1.0:
    logger.warning(
        f"{EnvVar.COVERAGE_THRESHOLD}={coverage_threshold} is outside [0, 1]; "
        f"using {DEFAULT_COVERAGE_THRESHOLD}"
    )
    coverage_threshold = DEFAULT_COVERAGE_THRESHOLD

# Create the MCP server instance
mcp = ChukMCPServer(ServerConfig.NAME)

# Create elevation index instance
index = ElevationIndex(max_workers=max_workers)

# Register all tool modules
register_discovery_tools(mcp, index)
register_query_tools(mcp, index, coverage_threshold)

# Run the server
if __name__ == "__main__":
    logger.info("Starting DEM Index MCP Server...")
    logger.info("Storage: Using chuk-mcp-server artifact store context")
    mcp.run(stdio=True)
