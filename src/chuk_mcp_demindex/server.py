#!/usr/bin/env python3
"""
DEM Index MCP Server - Entry Point

This module provides the async MCP server for elevation tile indexing,
point elevation queries, and map stitching.
Supports both stdio (for Claude Desktop) and HTTP (for API access) transports.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import EnvVar, SessionProvider, StorageProvider

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)


def _store_settings() -> dict[str, Any] | None:
    """
    ArtifactStore keyword arguments for the configured provider.

    Returns None when the provider is s3 and a required variable is missing.
    A filesystem provider without a path degrades to memory.
    """
    provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)
    sessions = SessionProvider.REDIS if os.environ.get(EnvVar.REDIS_URL) else SessionProvider.MEMORY
    settings: dict[str, Any] = {"storage_provider": provider, "session_provider": sessions}

    if provider == StorageProvider.S3:
        required = (EnvVar.BUCKET_NAME, EnvVar.AWS_ACCESS_KEY_ID, EnvVar.AWS_SECRET_ACCESS_KEY)
        missing = [name for name in required if not os.environ.get(name)]
        if missing:
            logger.warning(f"S3 artifact storage needs {', '.join(missing)}; maps cannot be stored")
            return None
        settings["bucket"] = os.environ[EnvVar.BUCKET_NAME]
    elif provider == StorageProvider.FILESYSTEM:
        root = os.environ.get(EnvVar.ARTIFACTS_PATH)
        if root:
            Path(root).mkdir(parents=True, exist_ok=True)
            settings["bucket"] = root
        else:
            logger.warning(f"{EnvVar.ARTIFACTS_PATH} is not set; keeping stitched maps in memory")
            settings["storage_provider"] = StorageProvider.MEMORY
    return settings


def _init_artifact_store() -> bool:
    """
    Install the global artifact store that dem_create_map writes to.

    Returns:
        True if a store was installed
    """
    settings = _store_settings()
    if settings is None:
        return False
    try:
        from chuk_artifacts import ArtifactStore
        from chuk_mcp_server import set_global_artifact_store

        set_global_artifact_store(ArtifactStore(**settings))
    except Exception as e:
        logger.error(f"Failed to initialize artifact store: {e}")
        return False

    location = settings.get("bucket", "in-process")
    logger.info(
        f"Artifact store ready: {settings['storage_provider']} ({location}), "
        f"sessions in {settings['session_provider']}"
    )
    return True


def _ingest_tile_dirs() -> int:
    """
    Ingest every directory listed in DEMINDEX_TILE_DIRS.

    Returns:
        Number of tiles added
    """
    raw = os.environ.get(EnvVar.TILE_DIRS, "")
    directories = [d for d in raw.split(os.pathsep) if d.strip()]
    added = 0
    for directory in directories:
        result = index.add_directory(directory.strip())
        added += result.tiles_added
    if directories:
        logger.info(
            f"Preloaded {added} tiles from {len(directories)} directories "
            f"({len(index.registries)} registries)"
        )
    return added


# Import mcp instance and all registered tools from async server
from .async_server import index, mcp  # noqa: F401, E402


def _use_stdio(mode: str | None) -> bool:
    """Explicit mode wins; otherwise stdio when MCP_STDIO is set or stdin is piped."""
    if mode is not None:
        return mode == "stdio"
    return bool(os.environ.get(EnvVar.MCP_STDIO)) or not sys.stdin.isatty()


def main() -> None:
    """Main entry point for the MCP server."""
    import argparse

    parser = argparse.ArgumentParser(description="DEM Index MCP Server")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http"],
        default=None,
        help="Transport mode (auto-detected when omitted)",
    )
    parser.add_argument("--host", default="localhost", help="Host for HTTP mode")
    parser.add_argument("--port", type=int, default=8003, help="Port for HTTP mode")
    args = parser.parse_args()

    # Store and tile index are set up at startup, not at import time
    _init_artifact_store()
    _ingest_tile_dirs()

    if _use_stdio(args.mode):
        print(f"DEM Index MCP Server on stdio ({index.tile_count} tiles)", file=sys.stderr)
        mcp.run(stdio=True)
    else:
        print(
            f"DEM Index MCP Server on http://{args.host}:{args.port} ({index.tile_count} tiles)",
            file=sys.stderr,
        )
        mcp.run(host=args.host, port=args.port, stdio=False)


if __name__ == "__main__":
    main()
