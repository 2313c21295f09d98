"""Council property-boundary CSV → site dataset records.

Rows without a usable lot area are skipped. Converted lots get the default
zone, frontage and setbacks below and are merged after the existing records,
then every record is renumbered ALB-001 … ALB-999, ALBA-001 … so ids stay
three-digit.
"""

import csv
import io
import logging
from collections.abc import Iterator

from exemptlot.ingestion.sites import load_sites_from_json

logger = logging.getLogger(__name__)

DEFAULT_ZONE = "R1 General Residential"
DEFAULT_FRONTAGE_M = 15.0
DEFAULT_SETBACKS_M = {"front": 6.0, "left": 1.0, "right": 1.0, "rear": 4.0}
DEFAULT_BAL = "BAL-12.5"
DEFAULT_FLOOD_CATEGORY = "NONE"
ID_BLOCK = 999


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text with a header row. A leading BOM and blank lines are ignored."""
    text = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text), skipinitialspace=True)
    if reader.fieldnames:
        reader.fieldnames = [h.strip() for h in reader.fieldnames]
    rows = []
    for row in reader:
        cleaned = {k: (v or "").strip() for k, v in row.items() if k is not None}
        if any(cleaned.values()):
            rows.append(cleaned)
    return rows


def area_to_m2(value: str | None, units: str | None) -> float:
    """Lot area in m². Hectare units ('ha', 'h²') are converted; 0.0 if unparseable."""
    try:
        n = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    if n != n or n in (float("inf"), float("-inf")):
        return 0.0
    u = str(units or "").lower()
    if "h" in u and "m" not in u:
        return n * 10_000
    return n


def _block_suffix(block: int) -> str:
    """0 → '', 1 → 'A', 26 → 'Z', 27 → 'AA'."""
    suffix = ""
    while block > 0:
        block -= 1
        suffix = chr(ord("A") + block % 26) + suffix
        block //= 26
    return suffix


def sequential_ids(prefix: str = "ALB") -> Iterator[str]:
    """ALB-001 … ALB-999, ALBA-001 … ALBA-999, ALBB-001, …"""
    index = 0
    while True:
        block, within = divmod(index, ID_BLOCK)
        yield f"{prefix}{_block_suffix(block)}-{within + 1:03d}"
        index += 1


def normalize_label(row: dict[str, str]) -> str:
    short = (row.get("short_address") or "").strip()
    if short:
        return short
    parts = [
        row.get("address_number"), row.get("street_name"), row.get("street_suffix"),
        row.get("suburb"), "NSW", row.get("post_code"),
    ]
    return " ".join(str(p).strip() for p in parts if p and str(p).strip()) or "Untitled property"


def row_to_record(row: dict[str, str]) -> dict | None:
    lot_m2 = area_to_m2(row.get("area_total"), row.get("area_units"))
    if not lot_m2 > 0:
        return None
    record = {
        "id": "",
        "label": normalize_label(row),
        "zone": DEFAULT_ZONE,
        "lot_size_m2": lot_m2,
        "frontage_m": DEFAULT_FRONTAGE_M,
        "corner_lot": False,
        "setbacks_m": dict(DEFAULT_SETBACKS_M),
        "bal": DEFAULT_BAL,
        "floodCategory": DEFAULT_FLOOD_CATEGORY,
        "floodControlLot": False,
    }
    title = (row.get("title") or "").strip()
    if title:
        record["notes"] = title
    return record


def _non_negative(value) -> float:
    try:
        return max(0.0, float(value or 0))
    except (TypeError, ValueError):
        return 0.0


def _fill_defaults(p: dict) -> dict:
    setbacks = p.get("setbacks_m") if isinstance(p.get("setbacks_m"), dict) else {}
    filled = {
        **p,
        "lot_size_m2": p["lot_size_m2"] if _non_negative(p.get("lot_size_m2")) > 0 else 1,
        "frontage_m": p["frontage_m"] if _non_negative(p.get("frontage_m")) > 0 else 1,
        "setbacks_m": {k: _non_negative(setbacks.get(k)) for k in ("front", "left", "right", "rear")},
        "bal": p.get("bal") or DEFAULT_BAL,
        "floodCategory": p.get("floodCategory") or DEFAULT_FLOOD_CATEGORY,
        "floodControlLot": bool(p.get("floodControlLot", False)),
    }
    if p.get("corner_lot"):
        filled["setbacks_m"]["secondary_front"] = _non_negative(setbacks.get("secondary_front"))
    return filled


def merge_properties(base: list[dict], rows: list[dict[str, str]], prefix: str = "ALB") -> tuple[list[dict], int]:
    """Append converted CSV rows to the base records and renumber everything.

    Returns (records, converted_count). The result is validated as a dataset
    before it is returned.
    """
    converted = [r for r in (row_to_record(row) for row in rows) if r is not None]
    by_id: dict[str, dict] = {}
    for p in base:
        if isinstance(p, dict) and p.get("id"):
            by_id[p["id"]] = p
    records = list(by_id.values()) + converted

    ids = sequential_ids(prefix)
    records = [{**_fill_defaults(p), "id": next(ids)} for p in records]
    load_sites_from_json({"properties": records})
    logger.info("Converted %d of %d CSV rows; %d records total", len(converted), len(rows), len(records))
    return records, len(converted)
