"""Discovery tools: status, capabilities, registry and tile listing."""

from .api import register_discovery_tools

__all__ = ["register_discovery_tools"]
