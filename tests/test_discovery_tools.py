"""Tests for chuk_mcp_demindex.tools.discovery.api."""

import json
from unittest.mock import patch

import pytest

from chuk_mcp_demindex.constants import DISCOVERY_TOOLS, QUERY_TOOLS, ServerConfig
from chuk_mcp_demindex.core.elevation_index import ElevationIndex
from chuk_mcp_demindex.tools.discovery.api import register_discovery_tools


@pytest.fixture
def index(fake_reader, block_2x2):
    idx = ElevationIndex(reader=fake_reader, max_workers=2)
    idx.add_tiles(block_2x2 + [fake_reader.tile("fine", 130, 34, mesh=(8, 8), value=5.0)])
    return idx


@pytest.fixture
def tools(capture_tools, index):
    return capture_tools(register_discovery_tools, index)


def test_registers_all_discovery_tools(tools):
    assert sorted(tools) == sorted(DISCOVERY_TOOLS)


class TestStatus:
    async def test_json(self, tools, mock_artifact_store):
        with patch(
            "chuk_mcp_demindex.tools.discovery.api.get_store", return_value=mock_artifact_store
        ):
            data = json.loads(await tools["dem_status"]())
        assert data["server"] == ServerConfig.NAME
        assert data["registry_count"] == 2
        assert data["tile_count"] == 5
        assert data["loaded_tiles"] == 0
        assert data["max_workers"] == 2
        assert data["artifact_store_available"] is True

    async def test_store_unavailable(self, tools):
        with patch(
            "chuk_mcp_demindex.tools.discovery.api.get_store",
            side_effect=RuntimeError("no store"),
        ):
            data = json.loads(await tools["dem_status"]())
        assert data["artifact_store_available"] is False

    async def test_text(self, tools):
        with patch("chuk_mcp_demindex.tools.discovery.api.get_store", side_effect=RuntimeError):
            text = await tools["dem_status"](output_mode="text")
        assert "Registries: 2" in text
        assert "Tiles: 5 (0 loaded)" in text


class TestCapabilities:
    async def test_json(self, tools):
        data = json.loads(await tools["dem_capabilities"]())
        assert data["query_tools"] == QUERY_TOOLS
        assert data["discovery_tools"] == DISCOVERY_TOOLS
        assert data["tool_count"] == len(QUERY_TOOLS) + len(DISCOVERY_TOOLS)
        assert data["tile_formats"] == ["geotiff"]
        assert "dem_ingest_directory" in data["llm_guidance"]

    async def test_text(self, tools):
        text = await tools["dem_capabilities"](output_mode="text")
        assert ServerConfig.NAME in text


class TestListRegistries:
    async def test_finest_first(self, tools):
        data = json.loads(await tools["dem_list_registries"]())
        registries = data["registries"]
        assert [r["index"] for r in registries] == [0, 1]
        assert registries[0]["mesh_size"] == [8, 8]
        assert registries[1]["tile_count"] == 4
        assert data["tile_count"] == 5

    async def test_empty_index(self, capture_tools):
        tools = capture_tools(register_discovery_tools, ElevationIndex())
        data = json.loads(await tools["dem_list_registries"]())
        assert data["registries"] == []

    async def test_text(self, tools):
        text = await tools["dem_list_registries"](output_mode="text")
        assert text.startswith("2 registries holding 5 tiles")


class TestListTiles:
    async def test_all(self, tools):
        data = json.loads(await tools["dem_list_tiles"]())
        assert len(data["tiles"]) == 5
        assert {t["registry"] for t in data["tiles"]} == {0, 1}

    async def test_one_registry(self, tools):
        data = json.loads(await tools["dem_list_tiles"](registry=1))
        tiles = data["tiles"]
        assert len(tiles) == 4
        assert all(t["registry"] == 1 for t in tiles)
        assert {tuple(t["address"]) for t in tiles} == {(130, 34), (131, 34), (130, 35), (131, 35)}

    async def test_unknown_registry(self, tools):
        data = json.loads(await tools["dem_list_tiles"](registry=9))
        assert "Unknown registry index 9" in data["error"]

    async def test_text(self, tools):
        text = await tools["dem_list_tiles"](registry=0, output_mode="text")
        assert "fine" in text
        assert "header only" in text
