"""Merge structural and overlay assessments into one verdict and check list."""

from exemptlot.core.types import (
    CombinedResult,
    OverlaySnapshot,
    Proposal,
    RuleCheck,
    UnknownPolicy,
    Verdict,
)
from exemptlot.observability.tracing import trace
from exemptlot.pipeline.overlays import evaluate_overlays
from exemptlot.pipeline.structure import assess

GENERAL_RESTRICTIONS = "SEPP Exempt Development 2008 Part 2—General restrictions"
OVERLAY_CITATION = "Zone/BAL/Flood constraints"


@trace(name="assess_all", span_type="CHAIN")
def assess_all(
    proposal: Proposal,
    overlay: OverlaySnapshot,
    unknown_policy: UnknownPolicy = UnknownPolicy.PASS,
) -> CombinedResult:
    """Run both evaluators and combine them.

    Both always run, so the check list reflects every rule even when the
    structure already fails. The overlay contributes one passing
    'overlay-scope' check, or one failing check per distinct reason.
    """
    structure = assess(proposal)
    finding = evaluate_overlays(overlay, unknown_policy)

    ok = structure.verdict is Verdict.LIKELY_EXEMPT and finding.ok
    reasons = list(structure.reasons) if finding.ok else [*structure.reasons, *finding.reasons]

    if finding.ok:
        overlay_checks = [RuleCheck(
            id="overlay-scope",
            ok=True,
            message="Overlay checks satisfied",
            clause=GENERAL_RESTRICTIONS,
            citation=OVERLAY_CITATION,
        )]
    else:
        overlay_checks = [
            RuleCheck(
                id=f"overlay-{i}",
                ok=False,
                message=reason,
                clause=GENERAL_RESTRICTIONS,
                citation=OVERLAY_CITATION,
            )
            for i, reason in enumerate(finding.reasons, 1)
        ]

    return CombinedResult(
        verdict=Verdict.LIKELY_EXEMPT if ok else Verdict.NOT_EXEMPT,
        reasons=reasons,
        checks=[*structure.checks, *overlay_checks],
        structure=structure,
        overlays=finding,
    )
