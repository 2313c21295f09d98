"""API route handlers for ExemptLot.

POST /api/v1/assess                 — run an assessment for a site + proposal
POST /api/v1/sessions/{id}/invalidate — inputs changed, drop in-flight runs
GET  /api/v1/sites, /sites/{id}     — browse the site catalog
POST /api/v1/sites                  — add a user site
GET  /api/v1/history                — run history
GET  /api/v1/history/export         — CSV or JSON export
GET  /api/v1/zones                  — zone codes and labels
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from exemptlot.api.deps import Services, get_services
from exemptlot.api.schemas import (
    AddSiteRequest,
    AssessmentResponse,
    AssessRequest,
    ErrorResponse,
    LogEntryResponse,
    OverlaySnapshotResponse,
    RuleCheckResponse,
    SiteResponse,
    ZoneResponse,
)
from exemptlot.core.types import AssessmentOutcome, Proposal, RunStatus, SiteRecord
from exemptlot.core.zones import ZONE_CODE_TO_LABEL, zone_code, zone_friendly_name
from exemptlot.pipeline.overlays import PERMITTED_ZONES
from exemptlot.pipeline.prechecks import resolve_prechecks
from exemptlot.storage.history import entries_to_csv, entries_to_json
from exemptlot.storage.sites import new_user_site

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["assessment"])


def _site_response(site: SiteRecord) -> SiteResponse:
    return SiteResponse(**asdict(site))


def _assessment_response(outcome: AssessmentOutcome) -> AssessmentResponse:
    overlay = None
    if outcome.overlay is not None:
        snap = outcome.overlay
        overlay = OverlaySnapshotResponse(
            zone=snap.zone,
            zone_label=zone_friendly_name(zone_code(snap.zone)),
            bal=snap.bal,
            flood_category=snap.flood_category,
            flood_control_lot=snap.flood_control_lot,
            foreshore_proximity=snap.foreshore_proximity,
        )
    combined = outcome.combined
    return AssessmentResponse(
        run_id=outcome.run_id,
        status=outcome.status.value,
        verdict=outcome.verdict.value,
        checks=[RuleCheckResponse(**asdict(c)) for c in outcome.checks],
        reasons=combined.reasons if combined else [c.message for c in outcome.checks],
        overlay=overlay,
        overlay_origin=outcome.overlay_origin.value if outcome.overlay_origin else None,
        overlay_notes=combined.overlays.notes if combined else [],
    )


@router.post(
    "/assess",
    response_model=AssessmentResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown site"},
        409: {"model": ErrorResponse, "description": "Run superseded by a newer one"},
        422: {"model": ErrorResponse, "description": "Invalid proposal or precheck override"},
        502: {"model": ErrorResponse, "description": "Assessment engine error"},
    },
)
async def assess(request: AssessRequest, services: Services = Depends(get_services)):
    """Assess a proposed structure on a catalog site."""
    site = services.catalog.get(request.site_id)
    if site is None:
        raise HTTPException(status_code=404, detail=f"Site not found: {request.site_id}")

    try:
        flags = resolve_prechecks(site, request.prechecks)
        proposal = Proposal(**request.proposal.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    session = services.session(request.session_id)
    outcome = await session.run(site, proposal, flags)

    if outcome is None:
        raise HTTPException(status_code=409, detail="Superseded by a newer assessment")
    if outcome.status is RunStatus.ERROR:
        raise HTTPException(status_code=502, detail=outcome.message)
    return _assessment_response(outcome)


@router.post("/sessions/{session_id}/invalidate")
async def invalidate_session(session_id: str, services: Services = Depends(get_services)):
    """Mark a session's inputs as changed so any in-flight run is discarded."""
    session = services.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    session.invalidate()
    return {"status": session.outcome.status.value, "run_id": session.latest_run_id}


@router.get("/sites", response_model=list[SiteResponse])
async def list_sites(services: Services = Depends(get_services)):
    """List user-added sites followed by the loaded dataset."""
    return [_site_response(s) for s in services.catalog.list_sites()]


@router.get("/sites/{site_id}", response_model=SiteResponse)
async def get_site(site_id: str, services: Services = Depends(get_services)):
    site = services.catalog.get(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return _site_response(site)


@router.post("/sites", response_model=SiteResponse, status_code=201)
async def add_site(request: AddSiteRequest, services: Services = Depends(get_services)):
    """Add a site by hand. It is listed ahead of the dataset from then on."""
    site = await services.catalog.add(new_user_site(**request.model_dump()))
    return _site_response(site)


@router.get("/history", response_model=list[LogEntryResponse])
async def list_history(services: Services = Depends(get_services)):
    """Completed runs, oldest first."""
    return [LogEntryResponse(**e.to_dict()) for e in await services.history.list_entries()]


@router.get("/history/export")
async def export_history(
    format: str = Query("csv", pattern="^(csv|json)$"),
    services: Services = Depends(get_services),
):
    """Download the run history as CSV or pretty-printed JSON."""
    entries = await services.history.list_entries()
    if not entries:
        raise HTTPException(status_code=404, detail="No log entries to export yet.")

    if format == "csv":
        return Response(
            content=entries_to_csv(entries),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="assessment_log.csv"'},
        )
    return Response(
        content=entries_to_json(entries),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="assessment_log.json"'},
    )


@router.get("/zones", response_model=list[ZoneResponse])
async def list_zones():
    return [
        ZoneResponse(code=code, label=label, permits_exempt_outbuildings=code in PERMITTED_ZONES)
        for code, label in ZONE_CODE_TO_LABEL.items()
        if code != "UNKNOWN"
    ]
