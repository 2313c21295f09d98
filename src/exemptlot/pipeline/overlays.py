"""Overlay gating for exempt outbuildings.

Pure functions — no I/O. Takes an OverlaySnapshot and returns an
OverlayFinding with one reason per failed gate, in gate order:

  1. Zone       — outbuildings are exempt only in residential, rural and
                  environmental living/management zones
  2. Bushfire   — BAL-40 and BAL-FZ exclude exempt development
  3. Flood      — floodway and flood storage land exclude it
  4. Foreshore  — land within the foreshore area excludes it

UNKNOWN zone/BAL/flood values are handled by UnknownPolicy: PASS lets them
through with a note on the finding, BLOCK fails the gate.
"""

from exemptlot.core.types import (
    BAL_RATINGS,
    FLOOD_CATEGORIES,
    UNKNOWN,
    OverlayFinding,
    OverlaySnapshot,
    UnknownPolicy,
)
from exemptlot.core.zones import ZONE_CODE_TO_LABEL, zone_code, zone_friendly_name

PERMITTED_ZONES = frozenset({
    "R1", "R2", "R3", "R4", "R5",
    "RU1", "RU2", "RU3", "RU4", "RU5", "RU6",
    "E3", "E4",
})

EXCLUDED_BAL = frozenset({"BAL-40", "BAL-FZ"})

EXCLUDED_FLOOD = {
    "FLOODWAY": "Site is within a floodway",
    "STORAGE": "Site is within a flood storage area",
}


def normalize_bal(value: str | None) -> str:
    """'bal-29' → 'BAL-29'; anything outside the rating scale → 'UNKNOWN'."""
    bal = str(value or "").strip().upper()
    return bal if bal in BAL_RATINGS else UNKNOWN


def normalize_flood_category(value: str | None) -> str:
    """'floodway' → 'FLOODWAY'; anything outside the category list → 'UNKNOWN'."""
    category = str(value or "").strip().upper().replace(" ", "_")
    return category if category in FLOOD_CATEGORIES else UNKNOWN


def _unknown(field: str, policy: UnknownPolicy, reasons: list[str], notes: list[str]) -> None:
    if policy is UnknownPolicy.BLOCK:
        reasons.append(f"{field} is UNKNOWN; cannot confirm exemption")
    else:
        notes.append(f"{field} is UNKNOWN; not treated as blocking")


def evaluate_overlays(
    snapshot: OverlaySnapshot,
    unknown_policy: UnknownPolicy = UnknownPolicy.PASS,
) -> OverlayFinding:
    """Run the zone, bushfire, flood and foreshore gates against a snapshot."""
    policy = UnknownPolicy(unknown_policy)
    reasons: list[str] = []
    notes: list[str] = []

    # ── Gate 1: Zone ──
    code = zone_code(snapshot.zone)
    if code == UNKNOWN or code not in ZONE_CODE_TO_LABEL:
        _unknown("Zone", policy, reasons, notes)
    elif code not in PERMITTED_ZONES:
        reasons.append(
            f"Zone {code} ({zone_friendly_name(code)}) does not permit exempt outbuildings"
        )

    # ── Gate 2: Bushfire attack level ──
    bal = normalize_bal(snapshot.bal)
    if bal == UNKNOWN:
        _unknown("Bushfire attack level", policy, reasons, notes)
    elif bal in EXCLUDED_BAL:
        reasons.append(f"Bushfire attack level {bal} excludes exempt development")

    # ── Gate 3: Flood ──
    flood = normalize_flood_category(snapshot.flood_category)
    if flood == UNKNOWN:
        _unknown("Flood category", policy, reasons, notes)
    elif flood in EXCLUDED_FLOOD:
        reasons.append(EXCLUDED_FLOOD[flood])
    elif flood == "FLOOD_CONTROL":
        notes.append("Flood control lot: flood-compatible materials and floor levels apply")
    if snapshot.flood_control_lot and flood in ("NONE", UNKNOWN):
        notes.append("Lot is flagged as a flood control lot without a mapped flood category")

    # ── Gate 4: Foreshore ──
    if snapshot.foreshore_proximity:
        reasons.append("Site is within the foreshore area")

    distinct = list(dict.fromkeys(reasons))
    return OverlayFinding(ok=not distinct, reasons=distinct, snapshot=snapshot, notes=notes)
