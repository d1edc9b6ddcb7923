"""
Shared helper for running chuk-mcp-demindex MCP tools directly from Python.

Provides a ToolRunner class that registers all MCP tools around one
ElevationIndex and sets up an in-memory artifact store, without requiring a
full MCP transport layer. Demo scripts use this to call tools as plain async
functions.

Usage:
    from tool_runner import ToolRunner

    async def main():
        runner = ToolRunner()
        result = await runner.run("dem_ingest_directory", directory="tiles/")
        print(result)
"""

from __future__ import annotations

import json
import os
from typing import Any

from chuk_mcp_demindex.core.elevation_index import ElevationIndex
from chuk_mcp_demindex.tools.discovery import register_discovery_tools
from chuk_mcp_demindex.tools.query import register_query_tools


class _MiniMCP:
    """Minimal MCP server that captures tools registered via @mcp.tool."""

    def __init__(self) -> None:
        self._tools: dict[str, Any] = {}

    def tool(self) -> Any:
        """Decorator factory matching @mcp.tool() usage."""

        def decorator(fn: Any) -> Any:
            self._tools[fn.__name__] = fn
            return fn

        return decorator

    def get_tool(self, name: str) -> Any:
        return self._tools[name]


def _init_artifact_store() -> None:
    """Initialize an in-memory artifact store for demo use."""
    os.environ.setdefault("CHUK_ARTIFACTS_PROVIDER", "memory")
    from chuk_artifacts import ArtifactStore
    from chuk_mcp_server import set_global_artifact_store

    store = ArtifactStore(storage_provider="memory", session_provider="memory")
    set_global_artifact_store(store)


class ToolRunner:
    """
    Run chuk-mcp-demindex MCP tools directly from Python.

    Every discovery and query tool is callable via run(tool_name, **kwargs).
    Returns parsed JSON by default; run_text() gives human-readable output.
    """

    def __init__(self, max_workers: int = 4) -> None:
        _init_artifact_store()
        self._mcp = _MiniMCP()
        self.index = ElevationIndex(max_workers=max_workers)
        register_discovery_tools(self._mcp, self.index)
        register_query_tools(self._mcp, self.index)

    @property
    def tool_names(self) -> list[str]:
        return list(self._mcp._tools.keys())

    async def run(self, tool_name: str, **kwargs: Any) -> dict[str, Any]:
        """Call a tool by name and return parsed JSON."""
        raw = await self._mcp.get_tool(tool_name)(**kwargs)
        return json.loads(raw)

    async def run_text(self, tool_name: str, **kwargs: Any) -> str:
        """Call a tool by name with output_mode='text' and return plaintext."""
        return await self._mcp.get_tool(tool_name)(output_mode="text", **kwargs)
