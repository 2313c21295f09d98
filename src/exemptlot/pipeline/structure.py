"""Deterministic structural rule evaluator for exempt outbuildings.

Pure functions — no I/O. Takes a Proposal, returns a RuleResult with one
RuleCheck per threshold (area, height, boundary setback).

All three rules are always evaluated so the caller sees every rule's status,
not just the first failure.
"""

import math

from exemptlot.core.types import Proposal, RuleCheck, RuleResult, Verdict

MAX_AREA_M2 = 20.0
MAX_HEIGHT_M = 3.0
MIN_SETBACK_M = 0.5

SUBDIVISION_7 = "Subdivision 7 — Development ancillary to dwelling houses (Outbuildings)"
CLAUSE_AREA = "SEPP Exempt Development 2008 cl. 2.18(1)(a)"
CLAUSE_HEIGHT = "SEPP Exempt Development 2008 cl. 2.18(1)(c)"
CLAUSE_SETBACK = "SEPP Exempt Development 2008 cl. 2.18(1)(f)"


def round_to_tenth(value: float) -> float:
    """Round half-up on the value scaled by ten: floor(v * 10 + 0.5) / 10.

    Works on the float product as computed, so 1.5 * 17.7
    (26.549999999999997, x10 = 265.5) rounds to 26.6.
    """
    return math.floor(value * 10 + 0.5) / 10


def _tenths(value: float) -> str:
    """Message text for a measured value, always one decimal place: 24 → '24.0'."""
    return f"{round_to_tenth(value):.1f}"


def assess(proposal: Proposal) -> RuleResult:
    """Evaluate the area, height and setback rules for a proposal."""
    checks: list[RuleCheck] = []

    # ── Rule 1: Footprint area ──
    area = proposal.area_m2
    area_ok = area <= MAX_AREA_M2
    checks.append(RuleCheck(
        id="structure-area",
        ok=area_ok,
        message=(
            "Area (≤ 20 m²) satisfied" if area_ok
            else f"Area {_tenths(area)} m² exceeds 20 m²"
        ),
        clause=CLAUSE_AREA,
        citation=SUBDIVISION_7,
    ))

    # ── Rule 2: Height ──
    height_ok = proposal.height_m <= MAX_HEIGHT_M
    checks.append(RuleCheck(
        id="structure-height",
        ok=height_ok,
        message=(
            "Height (≤ 3.0 m) satisfied" if height_ok
            else f"Height {_tenths(proposal.height_m)} m exceeds 3.0 m"
        ),
        clause=CLAUSE_HEIGHT,
        citation=SUBDIVISION_7,
    ))

    # ── Rule 3: Nearest boundary setback ──
    setback_ok = proposal.nearest_boundary_m >= MIN_SETBACK_M
    checks.append(RuleCheck(
        id="structure-setback",
        ok=setback_ok,
        message=(
            "Nearest boundary distance (≥ 0.5 m) satisfied" if setback_ok
            else f"Nearest boundary distance {_tenths(proposal.nearest_boundary_m)} m is under 0.5 m"
        ),
        clause=CLAUSE_SETBACK,
        citation=SUBDIVISION_7,
    ))

    failures = [c.message for c in checks if not c.ok]
    if failures:
        return RuleResult(verdict=Verdict.NOT_EXEMPT, reasons=failures, checks=checks)
    return RuleResult(
        verdict=Verdict.LIKELY_EXEMPT,
        reasons=[c.message for c in checks],
        checks=checks,
    )
