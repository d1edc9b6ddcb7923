"""Shared test fixtures for chuk-mcp-demindex."""

import threading
from collections import Counter
from pathlib import Path

import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock

from chuk_mcp_demindex.core.errors import FormatMismatchError, LoadFailureError
from chuk_mcp_demindex.core.geo import GeoField, GeoPoint
from chuk_mcp_demindex.core.raster import RasterGrid
from chuk_mcp_demindex.core.tile import Tile, TileMetadata


class FakeReader:
    """In-memory TileReader: headers and payloads registered per path."""

    def __init__(self):
        self.headers: dict[Path, TileMetadata] = {}
        self.payloads: dict[Path, np.ndarray] = {}
        self.failing: set[Path] = set()
        self.raising: dict[Path, Exception] = {}
        self.reads: Counter = Counter()
        self._lock = threading.Lock()

    def register(
        self,
        name,
        west,
        south,
        size=1.0,
        mesh=(4, 4),
        value=0.0,
        tile_id=None,
        payload=None,
    ) -> Path:
        path = Path(f"/fake/{name}.tif")
        field = GeoField(GeoPoint(south, west), GeoPoint(south + size, west + size))
        self.headers[path] = TileMetadata(
            name=name,
            tile_id=tile_id or name,
            mesh_size=mesh,
            field=field,
            format="fake",
        )
        cols, rows = mesh
        if payload is None:
            payload = np.full((rows, cols), value, dtype=np.float32)
        self.payloads[path] = payload
        return path

    def tile(self, name, west, south, **kwargs) -> Tile:
        path = self.register(name, west, south, **kwargs)
        return Tile(path, self.headers[path], self)

    def read_header(self, path):
        try:
            return self.headers[Path(path)]
        except KeyError:
            raise FormatMismatchError(f"{path} is not a fake tile") from None

    def read_values(self, path, metadata):
        path = Path(path)
        with self._lock:
            self.reads[path] += 1
        if path in self.failing:
            raise LoadFailureError(f"{path} is unreadable")
        if path in self.raising:
            raise self.raising[path]
        grid = RasterGrid(metadata.field, metadata.mesh_size)
        grid.set_data(self.payloads[path])
        return grid


@pytest.fixture
def fake_reader():
    return FakeReader()


@pytest.fixture
def block_2x2(fake_reader):
    """Four 1-degree tiles covering lon 130-132, lat 34-36; values 100..400."""
    tiles = []
    for i, (west, south) in enumerate([(130, 34), (131, 34), (130, 35), (131, 35)]):
        tiles.append(fake_reader.tile(f"t{west}_{south}", west, south, value=100.0 * (i + 1)))
    return tiles


@pytest.fixture
def tile_dir(tmp_path):
    """Directory of four 10x10 GeoTIFF tiles (lon 130-132, lat 34-36) plus junk files."""
    from chuk_mcp_demindex.core.raster_io import grid_to_geotiff

    for i, (west, south) in enumerate([(130, 34), (131, 34), (130, 35), (131, 35)]):
        grid = RasterGrid(GeoField(GeoPoint(south, west), GeoPoint(south + 1, west + 1)), (10, 10))
        grid.fill(100.0 * (i + 1))
        (tmp_path / f"tile_{west}_{south}.tif").write_bytes(
            grid_to_geotiff(grid, tile_id=f"T{west}{south}", name=f"Tile {west} {south}")
        )
    (tmp_path / "readme.txt").write_text("not a tile")
    (tmp_path / "broken.tif").write_bytes(b"definitely not a geotiff")
    return tmp_path


@pytest.fixture
def mock_artifact_store():
    """Mock artifact store."""
    store = AsyncMock()
    store.store = AsyncMock(return_value=None)
    store.retrieve = AsyncMock(return_value=b"fake-geotiff-bytes")
    return store


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp


@pytest.fixture
def capture_tools():
    """Register a tool module and return a dict mapping name -> coroutine function."""

    def _capture(register, *args):
        tools = {}
        mcp = MagicMock()

        def capture_tool(**kwargs):
            def decorator(fn):
                tools[fn.__name__] = fn
                return fn

            return decorator

        mcp.tool = capture_tool
        register(mcp, *args)
        return tools

    return _capture
