"""Domain types for the ExemptLot exempt-development checker.

All shared dataclasses and enums live here to prevent circular imports and
establish a single source of truth for the domain model. Every other module
imports from here.
"""

import math
from dataclasses import dataclass, field, fields
from enum import Enum


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

class StructureKind(str, Enum):
    SHED = "shed"
    PATIO = "patio"
    PERGOLA = "pergola"
    CARPORT = "carport"


class Verdict(str, Enum):
    LIKELY_EXEMPT = "LIKELY EXEMPT"
    NOT_EXEMPT = "NOT EXEMPT"


class UnknownPolicy(str, Enum):
    """How the overlay gate treats an UNKNOWN zone, BAL or flood category."""

    PASS = "pass"    # fail-open, noted on the finding
    BLOCK = "block"  # fail-safe, one failing reason per unknown field


class OverlayOrigin(str, Enum):
    RESOLVED = "resolved"    # returned by the overlay resolver
    FALLBACK = "fallback"    # derived from the static site record


class RunStatus(str, Enum):
    IDLE = "idle"
    BLOCKED = "blocked"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


BAL_RATINGS = ("BAL-LOW", "BAL-12.5", "BAL-19", "BAL-29", "BAL-40", "BAL-FZ")
FLOOD_CATEGORIES = ("NONE", "FLOODWAY", "STORAGE", "FLOOD_CONTROL")
UNKNOWN = "UNKNOWN"


# ---------------------------------------------------------------------------
# Proposal
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Proposal:
    """A proposed structure, in metres. Built fresh for every evaluation."""

    kind: StructureKind
    length_m: float
    width_m: float
    height_m: float
    nearest_boundary_m: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", StructureKind(self.kind))
        for name in ("length_m", "width_m", "height_m", "nearest_boundary_m"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value!r}")

    @property
    def area_m2(self) -> float:
        return self.length_m * self.width_m

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "length_m": self.length_m,
            "width_m": self.width_m,
            "height_m": self.height_m,
            "nearest_boundary_m": self.nearest_boundary_m,
            "area_m2": self.area_m2,
        }


# ---------------------------------------------------------------------------
# Overlays
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OverlaySnapshot:
    """Planning overlays that apply to a lot at the time of assessment."""

    zone: str = UNKNOWN
    bal: str = UNKNOWN                  # e.g. "BAL-LOW", "BAL-29", "BAL-FZ"
    flood_category: str = UNKNOWN       # NONE / FLOODWAY / STORAGE / FLOOD_CONTROL
    flood_control_lot: bool = False
    foreshore_proximity: bool = False

    def summary(self) -> str:
        """One-line summary used in the run history."""
        return f"{self.zone or UNKNOWN} | {self.bal or UNKNOWN} | {self.flood_category or UNKNOWN}"


@dataclass(frozen=True)
class OverlayFinding:
    """Overlay gate result. Reasons block; notes are informational only."""

    ok: bool
    reasons: list[str]
    snapshot: OverlaySnapshot
    notes: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Prechecks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PrecheckFlags:
    """Site restrictions that rule out exempt development outright."""

    heritage_item: bool = False
    heritage_conservation_area: bool = False
    environmentally_sensitive: bool = False
    critical_habitat: bool = False
    asbestos_management_area: bool = False

    @classmethod
    def keys(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, values: dict) -> "PrecheckFlags":
        """Build flags from a mapping, ignoring unrelated keys."""
        return cls(**{k: bool(values[k]) for k in cls.keys() if k in values})

    def to_dict(self) -> dict[str, bool]:
        return {k: getattr(self, k) for k in self.keys()}


@dataclass(frozen=True)
class Restriction:
    """Fixed label and description for one precheck flag."""

    key: str
    label: str
    description: str


# ---------------------------------------------------------------------------
# Rule evaluation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RuleCheck:
    """One rule's outcome with its legal citation."""

    id: str
    ok: bool
    message: str
    clause: str
    citation: str | None = None


@dataclass(frozen=True)
class RuleResult:
    """Structural rule evaluation: verdict, reason trail and all three checks."""

    verdict: Verdict
    reasons: list[str]
    checks: list[RuleCheck]


@dataclass(frozen=True)
class PrecheckOutcome:
    blocking: bool
    checks: list[RuleCheck]


@dataclass(frozen=True)
class CombinedResult:
    """Structure + overlay assessment merged into one verdict and check list."""

    verdict: Verdict
    reasons: list[str]
    checks: list[RuleCheck]
    structure: RuleResult
    overlays: OverlayFinding


# ---------------------------------------------------------------------------
# Site records (from the site dataset provider)
# ---------------------------------------------------------------------------

@dataclass
class SiteServices:
    """Service constraints recorded against a lot."""

    near_easement: bool = False
    above_sewer_main: bool = False
    distance_to_dwelling_m: float | None = None


@dataclass
class SiteRecord:
    """A lot from the site dataset.

    Overlay fields (bal, flood_category, flood_control_lot,
    foreshore_proximity) are the offline-enriched values; they seed the
    fallback snapshot when the live overlay resolver is unavailable.
    """

    id: str
    label: str
    zone: str
    lot_size_m2: float
    frontage_m: float
    corner_lot: bool
    setbacks_m: dict[str, float] = field(default_factory=dict)
    zone_label: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    bal: str = UNKNOWN
    flood_category: str = UNKNOWN
    flood_control_lot: bool = False
    prechecks: PrecheckFlags = field(default_factory=PrecheckFlags)
    services: SiteServices = field(default_factory=SiteServices)
    overlay_source: str | None = None
    notes: str | None = None
    foreshore_proximity: bool = False


# ---------------------------------------------------------------------------
# Assessment runs
# ---------------------------------------------------------------------------

@dataclass
class AssessmentOutcome:
    """What an assessment session shows for its latest accepted run."""

    run_id: int
    status: RunStatus
    verdict: Verdict | None = None
    checks: list[RuleCheck] = field(default_factory=list)
    overlay: OverlaySnapshot | None = None
    overlay_origin: OverlayOrigin | None = None
    combined: CombinedResult | None = None
    message: str = ""


@dataclass(frozen=True)
class LogEntry:
    """One row of the run history. Field order is the export column order."""

    timestamp: str
    site_id: str
    site_label: str
    verdict: str
    reason: str
    prechecks: str
    clauses: str
    overlay: str
    inputs: str

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
