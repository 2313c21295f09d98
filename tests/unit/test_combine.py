"""Tests for the combined structure + overlay assessment."""

from exemptlot.core.types import OverlaySnapshot, Proposal, UnknownPolicy, Verdict
from exemptlot.pipeline.combine import GENERAL_RESTRICTIONS, OVERLAY_CITATION, assess_all

CLEAR = OverlaySnapshot(zone="R1", bal="BAL-LOW", flood_category="NONE")


def _shed(**kwargs) -> Proposal:
    values = dict(kind="shed", length_m=3.0, width_m=2.4, height_m=2.4, nearest_boundary_m=0.9)
    values.update(kwargs)
    return Proposal(**values)


class TestAssessAll:
    def test_clear_site_small_shed(self):
        result = assess_all(_shed(), CLEAR)
        assert result.verdict is Verdict.LIKELY_EXEMPT
        assert len(result.checks) == 4
        scope = result.checks[-1]
        assert scope.id == "overlay-scope"
        assert scope.ok
        assert scope.message == "Overlay checks satisfied"
        assert scope.clause == GENERAL_RESTRICTIONS == "SEPP Exempt Development 2008 Part 2—General restrictions"
        assert scope.citation == OVERLAY_CITATION

    def test_one_check_per_overlay_reason(self):
        overlay = OverlaySnapshot(zone="B4", bal="BAL-40", flood_category="NONE")
        result = assess_all(_shed(), overlay)
        assert result.verdict is Verdict.NOT_EXEMPT
        overlay_checks = result.checks[3:]
        assert [c.id for c in overlay_checks] == ["overlay-1", "overlay-2"]
        assert not any(c.ok for c in overlay_checks)
        assert result.reasons[3:] == [c.message for c in overlay_checks]

    def test_structure_failure_with_clear_overlay(self):
        result = assess_all(_shed(height_m=3.5), CLEAR)
        assert result.verdict is Verdict.NOT_EXEMPT
        assert result.reasons == ["Height 3.5 m exceeds 3.0 m"]
        assert result.checks[-1].id == "overlay-scope"

    def test_both_fail_reasons_structure_first(self):
        result = assess_all(_shed(length_m=6.0, width_m=4.0), OverlaySnapshot(zone="R1", bal="BAL-FZ", flood_category="NONE"))
        assert result.reasons == [
            "Area 24.0 m² exceeds 20 m²",
            "Bushfire attack level BAL-FZ excludes exempt development",
        ]

    def test_unknown_policy_passed_through(self):
        unknown = OverlaySnapshot()
        assert assess_all(_shed(), unknown).verdict is Verdict.LIKELY_EXEMPT
        assert assess_all(_shed(), unknown, UnknownPolicy.BLOCK).verdict is Verdict.NOT_EXEMPT

    def test_components_exposed(self):
        result = assess_all(_shed(), CLEAR)
        assert result.structure.verdict is Verdict.LIKELY_EXEMPT
        assert result.overlays.ok
