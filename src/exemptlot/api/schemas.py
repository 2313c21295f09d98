"""Pydantic request/response models for the ExemptLot API.

These are the API contract — decoupled from the internal domain dataclasses.
Route handlers bridge the two with dataclasses.asdict() or explicit mapping.
"""

from typing import Literal

from pydantic import BaseModel, Field


class ProposalRequest(BaseModel):
    """The structure being proposed, in metres."""

    kind: Literal["shed", "patio", "pergola", "carport"] = "shed"
    length_m: float = Field(..., ge=0, examples=[3.0])
    width_m: float = Field(..., ge=0, examples=[2.4])
    height_m: float = Field(..., ge=0, examples=[2.4])
    nearest_boundary_m: float = Field(..., ge=0, examples=[0.9])


class AssessRequest(BaseModel):
    """Request body for POST /api/v1/assess."""

    site_id: str = Field(..., min_length=1, max_length=100, examples=["ALB-001"])
    proposal: ProposalRequest
    prechecks: dict[str, bool] | None = Field(
        default=None,
        description="Overrides for the site's default precheck flags",
    )
    session_id: str | None = Field(
        default=None,
        max_length=100,
        description="Runs sharing a session supersede each other; omit for a one-off run",
    )


class RuleCheckResponse(BaseModel):
    id: str
    ok: bool
    message: str
    clause: str
    citation: str | None = None


class OverlaySnapshotResponse(BaseModel):
    zone: str
    zone_label: str
    bal: str
    flood_category: str
    flood_control_lot: bool
    foreshore_proximity: bool = False


class AssessmentResponse(BaseModel):
    """Outcome of one assessment run."""

    run_id: int
    status: Literal["blocked", "done"]
    verdict: Literal["LIKELY EXEMPT", "NOT EXEMPT"]
    checks: list[RuleCheckResponse]
    reasons: list[str] = []
    overlay: OverlaySnapshotResponse | None = None
    overlay_origin: Literal["resolved", "fallback"] | None = None
    overlay_notes: list[str] = []


class SiteServicesResponse(BaseModel):
    near_easement: bool = False
    above_sewer_main: bool = False
    distance_to_dwelling_m: float | None = None


class SiteResponse(BaseModel):
    id: str
    label: str
    zone: str
    zone_label: str | None = None
    lot_size_m2: float
    frontage_m: float
    corner_lot: bool
    setbacks_m: dict[str, float] = {}
    latitude: float | None = None
    longitude: float | None = None
    bal: str = "UNKNOWN"
    flood_category: str = "UNKNOWN"
    flood_control_lot: bool = False
    prechecks: dict[str, bool] = {}
    services: SiteServicesResponse = SiteServicesResponse()
    overlay_source: str | None = None
    notes: str | None = None
    foreshore_proximity: bool = False


class AddSiteRequest(BaseModel):
    """Request body for POST /api/v1/sites."""

    label: str = Field("", max_length=200)
    zone: str = Field("", max_length=100, examples=["R1 General Residential"])
    lot_size_m2: float = Field(0.0, ge=0)
    frontage_m: float = Field(0.0, ge=0)
    corner_lot: bool = False


class LogEntryResponse(BaseModel):
    timestamp: str
    site_id: str
    site_label: str
    verdict: str
    reason: str
    prechecks: str
    clauses: str
    overlay: str
    inputs: str


class ZoneResponse(BaseModel):
    code: str
    label: str
    permits_exempt_outbuildings: bool


class ErrorResponse(BaseModel):
    """Error response body."""

    detail: str
    error_type: str = "assessment_error"
