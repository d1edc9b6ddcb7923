#!/usr/bin/env python3
"""
Synthetic Tiles Demo -- chuk-mcp-demindex

Writes a small folder of GeoTIFF elevation tiles at two resolutions (a
3 x 2 block of coarse 1-degree tiles plus one fine tile), ingests it, and
walks through the query tools: registry listing, point heights (finest data
wins), coverage checks, and map stitching with a gap left as NaN.

No network access required.

Usage:
    python examples/synthetic_tiles_demo.py
"""

import asyncio
import tempfile
from pathlib import Path

import numpy as np

from chuk_mcp_demindex.core.geo import GeoField, GeoPoint
from chuk_mcp_demindex.core.raster import RasterGrid
from chuk_mcp_demindex.core.raster_io import grid_to_geotiff
from tool_runner import ToolRunner


def write_tile(directory: Path, west: float, south: float, mesh: int, name: str) -> None:
    """One 1-degree tile holding a smooth synthetic surface."""
    field = GeoField(GeoPoint(south, west), GeoPoint(south + 1.0, west + 1.0))
    grid = RasterGrid(field, (mesh, mesh))
    lats = np.linspace(south + 1.0, south, mesh)[:, None]
    lons = np.linspace(west, west + 1.0, mesh)[None, :]
    grid.set_data(500.0 + 300.0 * np.sin(lats * 3.0) * np.cos(lons * 2.0))
    (directory / f"{name}.tif").write_bytes(grid_to_geotiff(grid, tile_id=name, name=name))


async def main() -> None:
    runner = ToolRunner()

    with tempfile.TemporaryDirectory() as tmp:
        tiles = Path(tmp)
        for west in (138, 139, 140):
            for south in (35, 36):
                if (west, south) == (140, 36):
                    continue  # leave a hole in the coarse block
                write_tile(tiles, west, south, 60, f"coarse_{west}_{south}")
        write_tile(tiles, 139, 35, 240, "fine_139_35")

        print("=" * 60)
        print("chuk-mcp-demindex -- Synthetic Tiles")
        print("=" * 60)

        print("\n" + await runner.run_text("dem_ingest_directory", directory=str(tiles)))
        print("\n" + await runner.run_text("dem_list_registries"))

        points = [[139.5, 35.5], [138.5, 36.5], [140.5, 36.5]]
        print("\n" + await runner.run_text("dem_heights", points=points))

        bbox = [138.0, 35.0, 141.0, 37.0]
        print("\n" + await runner.run_text("dem_check_coverage", bbox=bbox))

        result = await runner.run("dem_create_map", bbox=bbox)
        print("\nStitched map:")
        print(f"  Shape: {result['shape']}")
        print(f"  Tiles: {result['tiles_contributed']}/{result['tiles_requested']}")
        print(f"  No-data pixels: {result['nodata_pixels']}")
        print(f"  Artifact: {result['artifact_ref']}")

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
