"""
chuk-mcp-demindex: Elevation Tile Registry, Point Query & Map Stitching MCP Server

Indexes directories of rectangular elevation tiles into registries keyed by
tile geometry, answers point elevation queries from the finest available
data, and stitches tiles into contiguous maps stored in chuk-artifacts.
"""
