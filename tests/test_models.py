"""
Tests for chuk-mcp-demindex response models.

Covers valid creation, extra="forbid", to_text() output, and
format_response() in json/text modes.
"""

import json

import pytest
from pydantic import ValidationError

from chuk_mcp_demindex.models.responses import (
    CapabilitiesResponse,
    CoverageResponse,
    CreateMapResponse,
    ErrorResponse,
    IngestResponse,
    MultiPointResponse,
    PointHeightResponse,
    PointInfo,
    RegistriesResponse,
    RegistryCoverage,
    RegistryInfo,
    StatusResponse,
    TileInfo,
    TilesResponse,
    format_response,
)


def _registry_info(**overrides) -> RegistryInfo:
    defaults = dict(
        index=0,
        tile_count=4,
        tile_size_deg=[1.0, 1.0],
        mesh_size=[10, 10],
        cell_size_deg=[0.1, 0.1],
        origin_offset_deg=[0.0, 0.0],
        loaded_tiles=1,
        failed_tiles=0,
        duplicates=0,
    )
    defaults.update(overrides)
    return RegistryInfo(**defaults)


def _tile_info(**overrides) -> TileInfo:
    defaults = dict(
        registry=0,
        address=[130, 34],
        tile_id="T13034",
        name="Tile 130 34",
        path="/data/tile_130_34.tif",
        bbox=[130.0, 34.0, 131.0, 35.0],
        mesh_size=[10, 10],
        format="geotiff",
        loaded=False,
    )
    defaults.update(overrides)
    return TileInfo(**defaults)


def _create_map(**overrides) -> CreateMapResponse:
    defaults = dict(
        bbox=[130.0, 34.0, 132.0, 36.0],
        map_bbox=[130.0, 34.0, 132.0, 36.0],
        registry=0,
        coverage=1.0,
        shape=[20, 20],
        cell_size_deg=[0.1, 0.1],
        tiles_requested=4,
        tiles_contributed=3,
        tiles_failed=1,
        nodata_pixels=100,
        elevation_range=[100.0, 400.0],
        artifact_ref="demindex/abc123.tif",
        message="Stitched 3 of 4 tiles into a 20 x 20 map",
    )
    defaults.update(overrides)
    return CreateMapResponse(**defaults)


class TestFormatResponse:
    def test_json_mode(self):
        out = format_response(ErrorResponse(error="boom"))
        assert json.loads(out) == {"error": "boom"}

    def test_text_mode(self):
        assert format_response(ErrorResponse(error="boom"), "text") == "Error: boom"


class TestExtraForbid:
    @pytest.mark.parametrize(
        "factory",
        [
            lambda: ErrorResponse(error="x", unexpected=1),
            lambda: _registry_info(unexpected=1),
            lambda: _tile_info(unexpected=1),
            lambda: _create_map(unexpected=1),
            lambda: PointInfo(lon=0.0, lat=0.0, elevation_m=None, unexpected=1),
        ],
    )
    def test_rejects_unknown_fields(self, factory):
        with pytest.raises(ValidationError):
            factory()


class TestDiscoveryModels:
    def test_registry_info_text(self):
        text = _registry_info().to_text()
        assert "#0" in text
        assert "10 x 10 mesh" in text

    def test_registry_info_rejects_negative(self):
        with pytest.raises(ValidationError):
            _registry_info(tile_count=-1)

    def test_registries_response(self):
        response = RegistriesResponse(
            registries=[_registry_info(), _registry_info(index=1, mesh_size=[5, 5])],
            tile_count=8,
            message="2 registries holding 8 tiles",
        )
        lines = response.to_text().splitlines()
        assert lines[0] == "2 registries holding 8 tiles"
        assert any("#1" in line for line in lines)

    def test_tile_info_text(self):
        assert "header only" in _tile_info().to_text()
        assert "loaded" in _tile_info(loaded=True).to_text()
        assert "FAILED: corrupt" in _tile_info(error="corrupt").to_text()

    def test_tiles_response(self):
        response = TilesResponse(tiles=[_tile_info()], message="1 tiles listed")
        assert "T13034" in response.to_text()

    def test_status_defaults(self):
        response = StatusResponse(
            registry_count=0,
            tile_count=0,
            loaded_tiles=0,
            max_workers=8,
            storage_provider="memory",
            message="ok",
        )
        assert response.server == "chuk-mcp-demindex"
        assert "not available" in response.to_text()

    def test_capabilities(self):
        response = CapabilitiesResponse(
            server="chuk-mcp-demindex",
            version="0.1.0",
            tile_formats=["geotiff"],
            read_modes=["header_only", "header_and_values"],
            discovery_tools=["dem_status"],
            query_tools=["dem_height"],
            output_formats=["geotiff"],
            default_coverage_threshold=0.3,
            tool_count=2,
            llm_guidance="Ingest first.",
            message="caps",
        )
        text = response.to_text()
        assert "Tools: 2" in text
        assert "0.30" in text

    def test_capabilities_threshold_bounds(self):
        with pytest.raises(ValidationError):
            CapabilitiesResponse(
                server="s",
                version="v",
                tile_formats=[],
                read_modes=[],
                discovery_tools=[],
                query_tools=[],
                output_formats=[],
                default_coverage_threshold=1.5,
                tool_count=0,
                llm_guidance="",
                message="",
            )


class TestQueryModels:
    def test_ingest_text(self):
        response = IngestResponse(
            directory="/data",
            read_mode="header_and_values",
            files_found=5,
            tiles_added=4,
            skipped=1,
            tiles_loaded=4,
            registry_count=1,
            message="Ingested 4 tiles from /data (1 skipped, 1 registries)",
        )
        text = response.to_text()
        assert "Files found: 5" in text
        assert "Loaded eagerly: 4" in text

    def test_point_height_text(self):
        response = PointHeightResponse(lon=130.5, lat=34.5, elevation_m=123.45, message="m")
        assert "123.5m" in response.to_text()

    def test_point_height_no_data(self):
        response = PointHeightResponse(lon=0.0, lat=0.0, elevation_m=None, message="m")
        assert json.loads(response.model_dump_json())["elevation_m"] is None
        assert "No elevation data" in response.to_text()

    def test_multi_point_text(self):
        response = MultiPointResponse(
            point_count=2,
            points=[
                PointInfo(lon=130.5, lat=34.5, elevation_m=100.0),
                PointInfo(lon=0.0, lat=0.0, elevation_m=None),
            ],
            missing_count=1,
            elevation_range=[100.0, 100.0],
            message="Retrieved elevation for 2 points (1 without data)",
        )
        text = response.to_text()
        assert "no data" in text
        assert "Range: 100.0m to 100.0m" in text

    def test_coverage_text(self):
        response = CoverageResponse(
            bbox=[130.0, 34.0, 132.0, 36.0],
            coverage_threshold=0.3,
            registries=[
                RegistryCoverage(registry=0, coverage=0.25, cell_size_deg=[0.05, 0.05]),
                RegistryCoverage(registry=1, coverage=1.0, cell_size_deg=[0.1, 0.1]),
            ],
            selected_registry=1,
            message="Coverage checked against 2 registries",
        )
        text = response.to_text()
        assert "#0: 25.0%" in text
        assert "Selected registry: #1" in text

    def test_coverage_bounds(self):
        with pytest.raises(ValidationError):
            RegistryCoverage(registry=0, coverage=1.2, cell_size_deg=[0.1, 0.1])

    def test_create_map_text(self):
        text = _create_map().to_text()
        assert "Tiles: 3/4 (1 failed)" in text
        assert "Artifact: demindex/abc123.tif" in text
        assert "100.0m to 400.0m" in text

    def test_create_map_without_range(self):
        text = _create_map(elevation_range=None).to_text()
        assert "Elevation range" not in text
