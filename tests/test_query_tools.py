"""Tests for chuk_mcp_demindex.tools.query.api."""

import json
from unittest.mock import patch

import pytest

from chuk_mcp_demindex.constants import QUERY_TOOLS
from chuk_mcp_demindex.core.elevation_index import ElevationIndex
from chuk_mcp_demindex.core.geo import GeoField, GeoPoint
from chuk_mcp_demindex.tools.query.api import (
    check_threshold,
    parse_bbox,
    parse_point,
    register_query_tools,
)

STORE_PATH = "chuk_mcp_demindex.core.artifacts.get_store"


@pytest.fixture
def index(fake_reader, block_2x2):
    idx = ElevationIndex(reader=fake_reader, max_workers=2)
    idx.add_tiles(block_2x2 + [fake_reader.tile("fine", 130, 34, mesh=(8, 8), value=5.0)])
    return idx


@pytest.fixture
def tools(capture_tools, index):
    return capture_tools(register_query_tools, index)


@pytest.fixture
def empty_tools(capture_tools):
    return capture_tools(register_query_tools, ElevationIndex(max_workers=2))


def test_registers_all_query_tools(tools):
    assert sorted(tools) == sorted(QUERY_TOOLS)


class TestValidation:
    def test_parse_bbox(self):
        assert parse_bbox([130, 34, 132, 36]) == GeoField(GeoPoint(34, 130), GeoPoint(36, 132))

    @pytest.mark.parametrize(
        "bbox",
        [[1, 2, 3], [1, 2, 3, float("nan")], [5, 0, 1, 1], [0, 5, 1, 1]],
    )
    def test_parse_bbox_invalid(self, bbox):
        with pytest.raises(ValueError):
            parse_bbox(bbox)

    def test_parse_point(self):
        assert parse_point([130.5, 34.5]) == GeoPoint(34.5, 130.5)

    @pytest.mark.parametrize("point", [[1.0], [1.0, 2.0, 3.0], [float("inf"), 0.0]])
    def test_parse_point_invalid(self, point):
        with pytest.raises(ValueError):
            parse_point(point)

    def test_check_threshold(self):
        assert check_threshold(0.0) == 0.0
        assert check_threshold(1.0) == 1.0
        with pytest.raises(ValueError):
            check_threshold(1.01)


class TestIngestDirectory:
    async def test_ingest(self, empty_tools, tile_dir):
        data = json.loads(await empty_tools["dem_ingest_directory"](str(tile_dir)))
        assert data["files_found"] == 5
        assert data["tiles_added"] == 4
        assert data["skipped"] == 1
        assert data["registry_count"] == 1
        assert data["read_mode"] == "header_only"
        assert data["tiles_loaded"] == 0

    async def test_ingest_with_values(self, empty_tools, tile_dir):
        data = json.loads(
            await empty_tools["dem_ingest_directory"](str(tile_dir), load_values=True)
        )
        assert data["read_mode"] == "header_and_values"
        assert data["tiles_loaded"] == 4

    async def test_then_query(self, empty_tools, tile_dir):
        await empty_tools["dem_ingest_directory"](str(tile_dir))
        data = json.loads(await empty_tools["dem_height"](lon=131.5, lat=35.5))
        assert data["elevation_m"] == pytest.approx(400.0)

    async def test_missing_directory(self, empty_tools, tmp_path):
        data = json.loads(await empty_tools["dem_ingest_directory"](str(tmp_path / "nope")))
        assert data["files_found"] == 0
        assert data["tiles_added"] == 0

    async def test_text(self, empty_tools, tile_dir):
        text = await empty_tools["dem_ingest_directory"](str(tile_dir), output_mode="text")
        assert text.startswith("Ingested 4 tiles")


class TestHeight:
    async def test_finest_data(self, tools):
        data = json.loads(await tools["dem_height"](lon=130.5, lat=34.5))
        assert data["elevation_m"] == 5.0
        assert data["message"] == "Elevation at point: 5.0m"

    async def test_coarse_fallback(self, tools):
        data = json.loads(await tools["dem_height"](lon=131.5, lat=35.5))
        assert data["elevation_m"] == 400.0

    async def test_no_data_is_null(self, tools):
        data = json.loads(await tools["dem_height"](lon=0.0, lat=0.0))
        assert data["elevation_m"] is None
        assert data["message"] == "No elevation data at point"

    async def test_empty_index(self, empty_tools):
        data = json.loads(await empty_tools["dem_height"](lon=0.0, lat=0.0))
        assert "dem_ingest_directory" in data["error"]

    async def test_text(self, tools):
        text = await tools["dem_height"](lon=131.5, lat=34.5, output_mode="text")
        assert "200.0m" in text


class TestHeights:
    async def test_order_and_missing(self, tools):
        points = [[131.5, 35.5], [0.0, 0.0], [130.5, 34.5]]
        data = json.loads(await tools["dem_heights"](points))
        assert data["point_count"] == 3
        assert [p["elevation_m"] for p in data["points"]] == [400.0, None, 5.0]
        assert data["missing_count"] == 1
        assert data["elevation_range"] == [5.0, 400.0]

    async def test_all_missing(self, tools):
        data = json.loads(await tools["dem_heights"]([[0.0, 0.0]]))
        assert data["elevation_range"] is None
        assert data["missing_count"] == 1

    async def test_invalid_point(self, tools):
        data = json.loads(await tools["dem_heights"]([[130.5]]))
        assert "must be [lon, lat]" in data["error"]


class TestCheckCoverage:
    async def test_default_threshold_selects_coarse(self, tools):
        data = json.loads(await tools["dem_check_coverage"]([130, 34, 132, 36]))
        rates = [r["coverage"] for r in data["registries"]]
        assert rates == [pytest.approx(0.25), 1.0]
        assert data["coverage_threshold"] == 0.3
        assert data["selected_registry"] == 1

    async def test_low_threshold_selects_fine(self, tools):
        data = json.loads(await tools["dem_check_coverage"]([130, 34, 132, 36], 0.2))
        assert data["selected_registry"] == 0

    async def test_nothing_qualifies(self, tools):
        data = json.loads(await tools["dem_check_coverage"]([10, 10, 11, 11]))
        assert data["selected_registry"] is None

    async def test_server_default_threshold(self, capture_tools, index):
        tools = capture_tools(register_query_tools, index, 0.1)
        data = json.loads(await tools["dem_check_coverage"]([130, 34, 132, 36]))
        assert data["coverage_threshold"] == 0.1
        assert data["selected_registry"] == 0

    async def test_invalid_threshold(self, tools):
        data = json.loads(await tools["dem_check_coverage"]([130, 34, 132, 36], 1.5))
        assert "coverage_threshold" in data["error"]

    async def test_invalid_bbox(self, tools):
        data = json.loads(await tools["dem_check_coverage"]([132, 34, 130, 36]))
        assert "west" in data["error"]

    async def test_text(self, tools):
        text = await tools["dem_check_coverage"]([130, 34, 132, 36], output_mode="text")
        assert "Selected registry: #1" in text


class TestCreateMap:
    async def test_stores_geotiff(self, tools, mock_artifact_store):
        with patch(STORE_PATH, return_value=mock_artifact_store):
            data = json.loads(await tools["dem_create_map"]([130, 34, 132, 36]))

        assert data["registry"] == 1
        assert data["coverage"] == 1.0
        assert data["shape"] == [8, 8]
        assert data["map_bbox"] == [130.0, 34.0, 132.0, 36.0]
        assert data["tiles_requested"] == 4
        assert data["tiles_contributed"] == 4
        assert data["tiles_failed"] == 0
        assert data["nodata_pixels"] == 0
        assert data["elevation_range"] == [100.0, 400.0]
        assert data["artifact_ref"].startswith("demindex/")
        assert data["artifact_ref"].endswith(".tif")

        mock_artifact_store.store.assert_awaited_once()
        args, kwargs = mock_artifact_store.store.call_args
        assert args[1][:2] in (b"II", b"MM")
        assert kwargs["mime_type"] == "image/tiff"
        assert kwargs["metadata"]["type"] == "stitched_map"

    async def test_failed_tile_reported(self, tools, fake_reader, block_2x2, mock_artifact_store):
        fake_reader.failing.add(block_2x2[3].path)
        with patch(STORE_PATH, return_value=mock_artifact_store):
            data = json.loads(await tools["dem_create_map"]([130, 34, 132, 36]))
        assert data["tiles_failed"] == 1
        assert data["tiles_contributed"] == 3
        assert data["nodata_pixels"] == 16
        assert data["elevation_range"] == [100.0, 300.0]

    async def test_fine_registry_with_threshold(self, tools, mock_artifact_store):
        with patch(STORE_PATH, return_value=mock_artifact_store):
            data = json.loads(await tools["dem_create_map"]([130.1, 34.1, 130.9, 34.9], 1.0))
        assert data["registry"] == 0
        assert data["cell_size_deg"] == [0.125, 0.125]

    async def test_no_coverage(self, tools, mock_artifact_store):
        with patch(STORE_PATH, return_value=mock_artifact_store):
            data = json.loads(await tools["dem_create_map"]([10, 10, 11, 11]))
        assert "No registry covers" in data["error"]
        mock_artifact_store.store.assert_not_awaited()

    async def test_map_too_large(self, tools, mock_artifact_store, monkeypatch):
        monkeypatch.setattr("chuk_mcp_demindex.core.registry.MAX_MAP_CELLS", 10)
        with patch(STORE_PATH, return_value=mock_artifact_store):
            data = json.loads(await tools["dem_create_map"]([130, 34, 132, 36]))
        assert "exceeds the limit" in data["error"]
        mock_artifact_store.store.assert_not_awaited()

    async def test_no_store(self, tools):
        with patch(STORE_PATH, side_effect=RuntimeError("No artifact store available.")):
            data = json.loads(await tools["dem_create_map"]([130, 34, 132, 36]))
        assert "No artifact store" in data["error"]

    async def test_empty_index(self, empty_tools):
        data = json.loads(await empty_tools["dem_create_map"]([130, 34, 132, 36]))
        assert "error" in data

    async def test_text(self, tools, mock_artifact_store):
        with patch(STORE_PATH, return_value=mock_artifact_store):
            text = await tools["dem_create_map"]([130, 34, 132, 36], output_mode="text")
        assert "Tiles: 4/4 (0 failed)" in text
