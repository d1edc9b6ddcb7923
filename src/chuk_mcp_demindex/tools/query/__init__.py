"""Query tools: ingestion, point elevation, coverage, map stitching."""

from .api import register_query_tools

__all__ = ["register_query_tools"]
