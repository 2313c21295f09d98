"""Overlay snapshot resolution via ArcGIS REST layers.

Point-in-polygon queries at the lot's coordinates against the council's
zoning, bushfire-prone land and flood planning layers:

  - zoning:        LABEL / ZONE attribute, e.g. "R1 General Residential"
  - bushfire:      any intersecting feature → BAL-29, otherwise BAL-LOW
  - flood:         floodway → FLOODWAY, flood storage → STORAGE,
                   flood fringe → FLOOD_CONTROL, otherwise NONE

A layer with no URL is not evidence of a clear site. Its field comes from
the site record instead (UNKNOWN when the record is blank); for flood this
applies from the first unconfigured layer in severity order downwards.

The resolver never raises for service problems: it returns None and the
caller substitutes fallback_snapshot(site). Results are cached in memory.
"""

import logging
import time

import httpx

from exemptlot.config import settings
from exemptlot.core.types import UNKNOWN, OverlaySnapshot, SiteRecord
from exemptlot.core.zones import zone_code
from exemptlot.observability.tracing import start_span, trace

logger = logging.getLogger(__name__)

BUSHFIRE_PRONE_BAL = "BAL-29"
OUTSIDE_BUSHFIRE_BAL = "BAL-LOW"
FALLBACK_BAL = "BAL-12.5"

# In-memory snapshot cache keyed by site id
_overlay_cache: dict[str, tuple[OverlaySnapshot, float]] = {}


def clear_cache() -> None:
    _overlay_cache.clear()


def fallback_snapshot(site: SiteRecord) -> OverlaySnapshot:
    """Snapshot derived from the static site record."""
    return OverlaySnapshot(
        zone=site.zone or UNKNOWN,
        bal=site.bal or FALLBACK_BAL,
        flood_category=site.flood_category or UNKNOWN,
        flood_control_lot=bool(site.flood_control_lot),
        foreshore_proximity=bool(site.foreshore_proximity),
    )


def _layers_configured() -> bool:
    return bool(settings.zoning_layer_url)


async def _point_query(client: httpx.AsyncClient, url: str, lat: float, lng: float) -> list[dict] | None:
    """Attributes of every feature containing the point, or None if the layer has no URL."""
    if not url:
        return None
    with start_span(name="overlay_point_query", span_type="TOOL") as span:
        span.set_inputs({"url": url, "lat": lat, "lng": lng})
        resp = await client.get(url, params={
            "geometry": f"{lng},{lat}",
            "geometryType": "esriGeometryPoint",
            "inSR": "4326",
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": "*",
            "f": "json",
            "returnGeometry": "false",
        })
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise httpx.HTTPError(f"ArcGIS error: {data['error'].get('message', data['error'])}")
        features = data.get("features", [])
        span.set_outputs({"feature_count": len(features)})
        return [f.get("attributes", {}) for f in features]


def _zone_from_attributes(features: list[dict], default: str) -> str:
    """First non-blank zone field wins; some layers return ' ' for empty values."""
    for attrs in features:
        for key in ("LABEL", "ZONE", "SYM_CODE", "ZONE_CODE"):
            val = str(attrs.get(key) or "").strip()
            if val:
                return zone_code(val)
    return default


@trace(name="lookup_overlay_snapshot", span_type="RETRIEVER")
async def lookup_overlay_snapshot(site: SiteRecord) -> OverlaySnapshot | None:
    """Resolve a live overlay snapshot for a site.

    Returns None when the overlay layers are not configured, the site has no
    coordinates, or any layer query fails.
    """
    if not _layers_configured():
        logger.debug("Overlay layers not configured — resolver unavailable")
        return None
    if site.latitude is None or site.longitude is None:
        logger.info("Site %s has no coordinates — resolver unavailable", site.id, extra={"site_id": site.id})
        return None

    if site.id in _overlay_cache:
        cached, cached_time = _overlay_cache[site.id]
        if time.monotonic() - cached_time < settings.overlay_cache_ttl_s:
            logger.info("Overlay cache hit for: %s", site.id)
            return cached

    lat, lng = site.latitude, site.longitude
    try:
        async with httpx.AsyncClient(timeout=settings.overlay_timeout_s) as client:
            zoning = await _point_query(client, settings.zoning_layer_url, lat, lng)
            bushfire = await _point_query(client, settings.bushfire_layer_url, lat, lng)
            floodway = await _point_query(client, settings.floodway_layer_url, lat, lng)
            storage = await _point_query(client, settings.flood_storage_layer_url, lat, lng)
            fringe = await _point_query(client, settings.flood_fringe_layer_url, lat, lng)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Overlay lookup failed for %s: %s", site.id, e, extra={"site_id": site.id})
        return None

    flood_category, flood_control_lot = "NONE", False
    for category, features in (("FLOODWAY", floodway), ("STORAGE", storage), ("FLOOD_CONTROL", fringe)):
        if features is None:
            # Unconfigured layer; the site record covers it and everything milder
            flood_category = site.flood_category or UNKNOWN
            flood_control_lot = bool(site.flood_control_lot)
            break
        if features:
            flood_category, flood_control_lot = category, True
            break

    if bushfire is None:
        bal = site.bal or UNKNOWN
    else:
        bal = BUSHFIRE_PRONE_BAL if bushfire else OUTSIDE_BUSHFIRE_BAL

    snapshot = OverlaySnapshot(
        zone=_zone_from_attributes(zoning or [], default=site.zone or UNKNOWN),
        bal=bal,
        flood_category=flood_category,
        flood_control_lot=flood_control_lot,
        foreshore_proximity=bool(site.foreshore_proximity),
    )
    _overlay_cache[site.id] = (snapshot, time.monotonic())
    logger.info("Resolved overlays for %s: %s", site.id, snapshot.summary(), extra={"site_id": site.id})
    return snapshot
