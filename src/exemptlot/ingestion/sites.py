"""Site dataset loading and validation.

Dataset files hold ``{"properties": [...]}`` records produced offline by the
dataset scripts. Validation is all-or-nothing: a malformed record raises
DatasetError naming its index and no records are returned.

Datasets:
  curated → properties.json       (20-ish hand-picked lots, ships with the package)
  full    → properties-full.json  (full council inventory, built offline)
"""

import json
import logging
from pathlib import Path

from exemptlot.config import settings
from exemptlot.core.types import UNKNOWN, PrecheckFlags, SiteRecord, SiteServices

logger = logging.getLogger(__name__)

BUNDLED_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

DATASET_FILES = {
    "curated": "properties.json",
    "full": "properties-full.json",
}

REQUIRED_FIELDS = ("id", "label", "zone", "lot_size_m2", "frontage_m", "corner_lot", "setbacks_m")


class DatasetError(ValueError):
    """The site dataset is missing or does not have the expected shape."""


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_number(value) -> float | None:
    return float(value) if _is_number(value) else None


def _optional_str(value) -> str | None:
    return value if isinstance(value, str) else None


def _validate(p: dict, i: int) -> None:
    if not isinstance(p, dict):
        raise DatasetError(f"properties[{i}] must be an object")
    for key in REQUIRED_FIELDS:
        if key not in p:
            raise DatasetError(f'Missing "{key}" in properties[{i}]')
    for key in ("id", "label", "zone"):
        if not isinstance(p[key], str):
            raise DatasetError(f"properties[{i}].{key} must be string")
    for key in ("lot_size_m2", "frontage_m"):
        if not _is_number(p[key]):
            raise DatasetError(f"properties[{i}].{key} must be number")
    if not isinstance(p["corner_lot"], bool):
        raise DatasetError(f"properties[{i}].corner_lot must be boolean")
    if not isinstance(p["setbacks_m"], dict):
        raise DatasetError(f"properties[{i}].setbacks_m must be object")


def _to_site(p: dict) -> SiteRecord:
    prechecks = p.get("prechecks")
    services = p.get("services") if isinstance(p.get("services"), dict) else {}
    return SiteRecord(
        id=p["id"],
        label=p["label"],
        zone=p["zone"],
        zone_label=_optional_str(p.get("zone_label")),
        lot_size_m2=float(p["lot_size_m2"]),
        frontage_m=float(p["frontage_m"]),
        corner_lot=p["corner_lot"],
        setbacks_m=dict(p["setbacks_m"]),
        latitude=_optional_number(p.get("latitude")),
        longitude=_optional_number(p.get("longitude")),
        bal=p["bal"] if isinstance(p.get("bal"), str) else UNKNOWN,
        flood_category=p["floodCategory"] if isinstance(p.get("floodCategory"), str) else UNKNOWN,
        flood_control_lot=bool(p.get("floodControlLot")),
        prechecks=PrecheckFlags.from_mapping(prechecks if isinstance(prechecks, dict) else {}),
        services=SiteServices(
            near_easement=bool(services.get("near_easement", False)),
            above_sewer_main=bool(services.get("above_sewer_main", False)),
            distance_to_dwelling_m=_optional_number(services.get("distance_to_dwelling_m")),
        ),
        overlay_source=_optional_str(p.get("overlay_source")),
        notes=_optional_str(p.get("notes")),
        foreshore_proximity=bool(p.get("foreshore_proximity")),
    )


def load_sites_from_json(data) -> list[SiteRecord]:
    """Validate and normalise a parsed dataset document."""
    if not isinstance(data, dict) or not isinstance(data.get("properties"), list):
        raise DatasetError("Invalid format: expected { properties: [...] }")
    records = data["properties"]
    for i, p in enumerate(records):
        _validate(p, i)
    return [_to_site(p) for p in records]


def site_to_json(site: SiteRecord) -> dict:
    """Serialise a site back into the dataset record format."""
    return {
        "id": site.id,
        "label": site.label,
        "zone": site.zone,
        "zone_label": site.zone_label,
        "lot_size_m2": site.lot_size_m2,
        "frontage_m": site.frontage_m,
        "corner_lot": site.corner_lot,
        "setbacks_m": site.setbacks_m,
        "latitude": site.latitude,
        "longitude": site.longitude,
        "bal": site.bal,
        "floodCategory": site.flood_category,
        "floodControlLot": site.flood_control_lot,
        "prechecks": site.prechecks.to_dict(),
        "services": {
            "near_easement": site.services.near_easement,
            "above_sewer_main": site.services.above_sewer_main,
            "distance_to_dwelling_m": site.services.distance_to_dwelling_m,
        },
        "overlay_source": site.overlay_source,
        "notes": site.notes,
        "foreshore_proximity": site.foreshore_proximity,
    }


def _dataset_path(dataset: str, data_dir: Path) -> Path:
    filename = DATASET_FILES[dataset]
    candidate = data_dir / filename
    if candidate.exists() or dataset == "full":
        return candidate
    # Curated samples ship with the package
    return BUNDLED_DATA_DIR / filename


def load_dataset(dataset: str | None = None, data_dir: Path | None = None) -> list[SiteRecord]:
    """Load and validate a named dataset from disk."""
    dataset = dataset or settings.default_dataset
    if dataset not in DATASET_FILES:
        raise DatasetError(f"Unknown dataset '{dataset}'. Expected one of: {', '.join(DATASET_FILES)}")

    path = _dataset_path(dataset, Path(data_dir or settings.data_dir))
    try:
        raw = json.loads(path.read_text(encoding="utf-8-sig"))
    except FileNotFoundError as e:
        if dataset == "full":
            raise DatasetError(f"Full inventory unavailable. {e}") from e
        raise DatasetError(f"Dataset file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DatasetError(f"Dataset {path.name} is not valid JSON: {e}") from e

    sites = load_sites_from_json(raw)
    logger.info("Loaded %d sites from %s dataset (%s)", len(sites), dataset, path)
    return sites
