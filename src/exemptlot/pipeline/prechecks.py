"""Site-restriction prechecks.

Any restriction that applies to the lot rules out exempt development
before the structure or overlays are looked at.
"""

from exemptlot.core.types import PrecheckFlags, PrecheckOutcome, Restriction, RuleCheck, SiteRecord
from exemptlot.pipeline.combine import GENERAL_RESTRICTIONS

PRECHECKS: tuple[Restriction, ...] = (
    Restriction(
        key="heritage_item",
        label="Heritage item",
        description="The lot is a listed heritage item under the LEP.",
    ),
    Restriction(
        key="heritage_conservation_area",
        label="Heritage conservation area",
        description="The site falls within a heritage conservation area boundary.",
    ),
    Restriction(
        key="environmentally_sensitive",
        label="Environmentally sensitive land",
        description="Mapped environmentally sensitive land or riparian corridor.",
    ),
    Restriction(
        key="critical_habitat",
        label="Critical habitat / wilderness",
        description="Identified critical habitat, wilderness area, or national park.",
    ),
    Restriction(
        key="asbestos_management_area",
        label="Asbestos management area",
        description="Lot sits in an asbestos encapsulation or management area.",
    ),
)


def apply_prechecks(flags: PrecheckFlags) -> PrecheckOutcome:
    """One failing check per restriction that applies, in PRECHECKS order."""
    checks = [
        RuleCheck(
            id=f"precheck-{item.key}",
            ok=False,
            message=f"{item.label} applies to this site.",
            clause=GENERAL_RESTRICTIONS,
            citation=item.description,
        )
        for item in PRECHECKS
        if getattr(flags, item.key)
    ]
    return PrecheckOutcome(blocking=bool(checks), checks=checks)


def resolve_prechecks(site: SiteRecord, overrides: dict[str, bool] | None = None) -> PrecheckFlags:
    """Start from the site's default flags and apply the operator's overrides."""
    values = site.prechecks.to_dict()
    for key, value in (overrides or {}).items():
        if key not in values:
            raise ValueError(
                f"Unknown precheck '{key}'. Expected one of: {', '.join(PrecheckFlags.keys())}"
            )
        values[key] = bool(value)
    return PrecheckFlags(**values)
