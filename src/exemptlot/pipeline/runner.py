"""Assessment runs — prechecks, overlay resolution, evaluation and history.

One AssessmentSession per operator (or API client session). A run moves

    idle → blocked                     (a precheck applies; evaluators never run)
    idle → running → done | error      (overlay resolved or defaulted, then assessed)

Each run takes the next run id. The overlay lookup is the only await; when
it returns, the run is applied only if no newer run was requested (or
invalidate() called) in the meantime. Superseded runs are dropped silently:
no state change, no history entry.
"""

import json
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from exemptlot.core.types import (
    AssessmentOutcome,
    CombinedResult,
    LogEntry,
    OverlayOrigin,
    OverlaySnapshot,
    PrecheckFlags,
    Proposal,
    RuleCheck,
    RunStatus,
    SiteRecord,
    UnknownPolicy,
    Verdict,
)
from exemptlot.observability.tracing import trace
from exemptlot.pipeline.combine import assess_all
from exemptlot.pipeline.prechecks import apply_prechecks
from exemptlot.retrieval.overlays import fallback_snapshot, lookup_overlay_snapshot
from exemptlot.storage.history import HistoryRepository

logger = logging.getLogger(__name__)

OverlayResolver = Callable[[SiteRecord], Awaitable[OverlaySnapshot | None]]
Engine = Callable[[Proposal, OverlaySnapshot, UnknownPolicy], CombinedResult]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clauses(checks: list[RuleCheck]) -> str:
    return "; ".join(c.clause or "N/A" for c in checks)


class AssessmentSession:
    """Runs assessments and keeps the outcome of the latest accepted run."""

    def __init__(
        self,
        history: HistoryRepository,
        resolver: OverlayResolver = lookup_overlay_snapshot,
        engine: Engine | None = None,
        unknown_policy: UnknownPolicy | str = UnknownPolicy.PASS,
    ):
        self._history = history
        self._resolver = resolver
        self._engine = engine
        self._unknown_policy = UnknownPolicy(unknown_policy)
        self._latest_run_id = 0
        self.outcome = AssessmentOutcome(run_id=0, status=RunStatus.IDLE)
        self.last_completed: AssessmentOutcome | None = None

    @property
    def latest_run_id(self) -> int:
        return self._latest_run_id

    def invalidate(self) -> None:
        """Inputs changed: drop any in-flight run and go back to idle."""
        self._latest_run_id += 1
        self.outcome = AssessmentOutcome(run_id=self._latest_run_id, status=RunStatus.IDLE)

    def is_current(self, run_id: int) -> bool:
        return run_id == self._latest_run_id

    def _accept(self, outcome: AssessmentOutcome) -> None:
        self.outcome = outcome
        if outcome.status in (RunStatus.DONE, RunStatus.BLOCKED):
            self.last_completed = outcome

    async def _resolve_overlay(self, site: SiteRecord) -> tuple[OverlaySnapshot, OverlayOrigin]:
        try:
            snapshot = await self._resolver(site)
        except Exception as e:
            logger.warning(
                "Overlay resolver failed for %s: %s — using site record", site.id, e,
                extra={"site_id": site.id, "step": "resolve_overlay"},
            )
            snapshot = None
        if snapshot is None:
            return fallback_snapshot(site), OverlayOrigin.FALLBACK
        return snapshot, OverlayOrigin.RESOLVED

    @trace(name="assessment_run", span_type="CHAIN")
    async def run(
        self,
        site: SiteRecord,
        proposal: Proposal,
        prechecks: PrecheckFlags | None = None,
    ) -> AssessmentOutcome | None:
        """Run one assessment. Returns None if a newer run superseded it."""
        self._latest_run_id += 1
        run_id = self._latest_run_id
        start = time.monotonic()
        inputs = json.dumps(proposal.to_dict())

        # ── Precheck gate ──
        gate = apply_prechecks(prechecks if prechecks is not None else site.prechecks)
        if gate.blocking:
            outcome = AssessmentOutcome(
                run_id=run_id,
                status=RunStatus.BLOCKED,
                verdict=Verdict.NOT_EXEMPT,
                checks=gate.checks,
            )
            self._accept(outcome)
            logger.info(
                "Run %d blocked by %d precheck(s) for %s", run_id, len(gate.checks), site.id,
                extra={"site_id": site.id, "run_id": run_id, "verdict": Verdict.NOT_EXEMPT.value},
            )
            await self._history.append(LogEntry(
                timestamp=_now(),
                site_id=site.id,
                site_label=site.label,
                verdict=Verdict.NOT_EXEMPT.value,
                reason="Pre-check failed",
                prechecks="; ".join(c.message for c in gate.checks),
                clauses=_clauses(gate.checks),
                overlay="N/A",
                inputs=inputs,
            ))
            return outcome

        self.outcome = AssessmentOutcome(run_id=run_id, status=RunStatus.RUNNING)

        # ── Overlay snapshot (the only suspension point) ──
        snapshot, origin = await self._resolve_overlay(site)
        if not self.is_current(run_id):
            logger.info(
                "Discarding superseded run %d (latest is %d)", run_id, self._latest_run_id,
                extra={"site_id": site.id, "run_id": run_id},
            )
            return None

        # ── Evaluate ──
        engine = self._engine or assess_all
        try:
            combined = engine(proposal, snapshot, self._unknown_policy)
        except Exception as e:
            logger.exception("Assessment engine failed for %s", site.id, extra={"site_id": site.id, "run_id": run_id})
            outcome = AssessmentOutcome(
                run_id=run_id,
                status=RunStatus.ERROR,
                overlay=snapshot,
                overlay_origin=origin,
                message=str(e) or e.__class__.__name__,
            )
            self._accept(outcome)
            return outcome

        outcome = AssessmentOutcome(
            run_id=run_id,
            status=RunStatus.DONE,
            verdict=combined.verdict,
            checks=combined.checks,
            overlay=snapshot,
            overlay_origin=origin,
            combined=combined,
        )
        self._accept(outcome)
        logger.info(
            "Run %d for %s: %s (%s overlay)", run_id, site.id, combined.verdict.value, origin.value,
            extra={
                "site_id": site.id,
                "run_id": run_id,
                "verdict": combined.verdict.value,
                "duration_ms": round((time.monotonic() - start) * 1000, 1),
            },
        )
        await self._history.append(LogEntry(
            timestamp=_now(),
            site_id=site.id,
            site_label=site.label,
            verdict=combined.verdict.value,
            reason=(
                "All checks passed" if combined.verdict is Verdict.LIKELY_EXEMPT
                else "Overlay/structure checks failed"
            ),
            prechecks="",
            clauses=_clauses(combined.checks),
            overlay=snapshot.summary(),
            inputs=inputs,
        ))
        return outcome
