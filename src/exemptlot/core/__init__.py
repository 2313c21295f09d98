"""Core domain types shared across all exemptlot modules."""

from exemptlot.core.types import (
    AssessmentOutcome,
    CombinedResult,
    LogEntry,
    OverlayFinding,
    OverlayOrigin,
    OverlaySnapshot,
    PrecheckFlags,
    PrecheckOutcome,
    Proposal,
    RuleCheck,
    RuleResult,
    RunStatus,
    SiteRecord,
    SiteServices,
    StructureKind,
    UnknownPolicy,
    Verdict,
)

__all__ = [
    "AssessmentOutcome",
    "CombinedResult",
    "LogEntry",
    "OverlayFinding",
    "OverlayOrigin",
    "OverlaySnapshot",
    "PrecheckFlags",
    "PrecheckOutcome",
    "Proposal",
    "RuleCheck",
    "RuleResult",
    "RunStatus",
    "SiteRecord",
    "SiteServices",
    "StructureKind",
    "UnknownPolicy",
    "Verdict",
]
