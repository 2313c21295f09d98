"""Tests for ArcGIS overlay snapshot resolution."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from exemptlot.core.types import OverlaySnapshot, Verdict
from exemptlot.pipeline.combine import assess_all
from exemptlot.retrieval.overlays import (
    BUSHFIRE_PRONE_BAL,
    OUTSIDE_BUSHFIRE_BAL,
    fallback_snapshot,
    lookup_overlay_snapshot,
)

LAYERS = {
    "zoning_layer_url": "https://maps.example/zoning/query",
    "bushfire_layer_url": "https://maps.example/bushfire/query",
    "floodway_layer_url": "https://maps.example/floodway/query",
    "flood_storage_layer_url": "https://maps.example/storage/query",
    "flood_fringe_layer_url": "https://maps.example/fringe/query",
}


def _response(features: list[dict]) -> MagicMock:
    resp = MagicMock()
    resp.json.return_value = {"features": [{"attributes": a} for a in features]}
    resp.raise_for_status = MagicMock()
    return resp


def _client(by_url: dict[str, list[dict]]) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get.side_effect = lambda url, params=None: _response(by_url.get(url, []))
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _settings(mock_settings, **overrides):
    for key, value in {**LAYERS, **overrides}.items():
        setattr(mock_settings, key, value)
    mock_settings.overlay_timeout_s = 5.0
    mock_settings.overlay_cache_ttl_s = 3600


@pytest.fixture
def located_site(site):
    site.latitude, site.longitude = -36.0812, 146.9158
    return site


class TestFallbackSnapshot:
    def test_from_site_record(self, site):
        site.flood_control_lot = True
        snap = fallback_snapshot(site)
        assert snap == OverlaySnapshot(
            zone="R1 General Residential", bal="BAL-LOW", flood_category="NONE", flood_control_lot=True,
        )

    def test_blank_fields_defaulted(self, site):
        site.zone, site.bal, site.flood_category = "", "", ""
        snap = fallback_snapshot(site)
        assert (snap.zone, snap.bal, snap.flood_category) == ("UNKNOWN", "BAL-12.5", "UNKNOWN")


class TestLookupOverlaySnapshot:
    @pytest.mark.asyncio
    async def test_resolves_all_layers(self, located_site):
        mock_client = _client({
            LAYERS["zoning_layer_url"]: [{"LABEL": " ", "ZONE": "R2 Low Density Residential"}],
            LAYERS["bushfire_layer_url"]: [{"CATEGORY": "Vegetation Category 1"}],
            LAYERS["flood_fringe_layer_url"]: [{"NAME": "Flood planning area"}],
        })

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            snap = await lookup_overlay_snapshot(located_site)

        assert snap == OverlaySnapshot(
            zone="R2", bal=BUSHFIRE_PRONE_BAL, flood_category="FLOOD_CONTROL", flood_control_lot=True,
        )
        params = mock_client.get.call_args_list[0].kwargs["params"]
        assert params["geometry"] == "146.9158,-36.0812"

    @pytest.mark.asyncio
    async def test_floodway_takes_precedence(self, located_site):
        mock_client = _client({
            LAYERS["floodway_layer_url"]: [{}],
            LAYERS["flood_fringe_layer_url"]: [{}],
        })
        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            snap = await lookup_overlay_snapshot(located_site)

        assert snap.flood_category == "FLOODWAY"
        assert snap.bal == OUTSIDE_BUSHFIRE_BAL
        assert snap.zone == "R1 General Residential"

    @pytest.mark.asyncio
    async def test_cached_per_site(self, located_site):
        mock_client = _client({})
        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            first = await lookup_overlay_snapshot(located_site)
            calls = mock_client.get.call_count
            second = await lookup_overlay_snapshot(located_site)

        assert first == second
        assert mock_client.get.call_count == calls

    @pytest.mark.asyncio
    async def test_unconfigured_returns_none(self, located_site):
        with patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings, zoning_layer_url="")
            assert await lookup_overlay_snapshot(located_site) is None

    @pytest.mark.asyncio
    async def test_no_coordinates_returns_none(self, site):
        with patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            assert await lookup_overlay_snapshot(site) is None

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self, located_site):
        mock_client = AsyncMock()
        mock_client.get.side_effect = httpx.ConnectError("refused")
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            assert await lookup_overlay_snapshot(located_site) is None

    @pytest.mark.asyncio
    async def test_arcgis_error_payload_returns_none(self, located_site):
        resp = MagicMock()
        resp.json.return_value = {"error": {"code": 400, "message": "Invalid geometry"}}
        resp.raise_for_status = MagicMock()
        mock_client = AsyncMock()
        mock_client.get.return_value = resp
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            assert await lookup_overlay_snapshot(located_site) is None


ZONING_ONLY = {
    "bushfire_layer_url": "",
    "floodway_layer_url": "",
    "flood_storage_layer_url": "",
    "flood_fringe_layer_url": "",
}


class TestPartiallyConfiguredLayers:
    @pytest.mark.asyncio
    async def test_unconfigured_layers_keep_site_record(self, located_site, small_shed):
        located_site.bal, located_site.flood_category = "BAL-FZ", "FLOODWAY"
        mock_client = _client({LAYERS["zoning_layer_url"]: [{"ZONE": "R2"}]})

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings, **ZONING_ONLY)
            snap = await lookup_overlay_snapshot(located_site)

        assert (snap.zone, snap.bal, snap.flood_category) == ("R2", "BAL-FZ", "FLOODWAY")
        assert mock_client.get.call_count == 1
        assert assess_all(small_shed, snap).verdict is Verdict.NOT_EXEMPT

    @pytest.mark.asyncio
    async def test_blank_site_record_is_unknown(self, located_site):
        located_site.bal, located_site.flood_category = "", ""
        mock_client = _client({})

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings, **ZONING_ONLY)
            snap = await lookup_overlay_snapshot(located_site)

        assert (snap.bal, snap.flood_category) == ("UNKNOWN", "UNKNOWN")

    @pytest.mark.asyncio
    async def test_missing_floodway_layer_defers_to_site_record(self, located_site):
        located_site.flood_category = "STORAGE"
        mock_client = _client({LAYERS["flood_fringe_layer_url"]: [{}]})

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings, floodway_layer_url="")
            snap = await lookup_overlay_snapshot(located_site)

        assert snap.flood_category == "STORAGE"
        assert snap.bal == OUTSIDE_BUSHFIRE_BAL

    @pytest.mark.asyncio
    async def test_configured_layers_without_hits_read_clear(self, located_site):
        located_site.bal, located_site.flood_category = "BAL-FZ", "FLOODWAY"
        mock_client = _client({})

        with patch("exemptlot.retrieval.overlays.httpx.AsyncClient", return_value=mock_client), \
             patch("exemptlot.retrieval.overlays.settings") as mock_settings:
            _settings(mock_settings)
            snap = await lookup_overlay_snapshot(located_site)

        assert (snap.bal, snap.flood_category, snap.flood_control_lot) == (OUTSIDE_BUSHFIRE_BAL, "NONE", False)
