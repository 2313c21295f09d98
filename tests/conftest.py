"""Shared test fixtures."""

import logging

import mlflow
import pytest

from exemptlot.core.types import Proposal, SiteRecord


@pytest.fixture(autouse=True)
def _disable_mlflow_tracing():
    """Disable MLflow tracing during tests — no side effects, no mlruns/ writes."""
    mlflow.tracing.disable()
    yield
    mlflow.tracing.enable()


@pytest.fixture(autouse=True)
def _clear_overlay_cache():
    from exemptlot.retrieval.overlays import clear_cache
    clear_cache()
    yield
    clear_cache()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Entry points call setup_logging, which replaces the root handlers."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def site() -> SiteRecord:
    return SiteRecord(
        id="ALB-001",
        label="14 Kiewa Street, Albury",
        zone="R1 General Residential",
        lot_size_m2=650,
        frontage_m=15.2,
        corner_lot=False,
        setbacks_m={"front": 6.0, "side": 0.9, "rear": 3.0},
        bal="BAL-LOW",
        flood_category="NONE",
    )


@pytest.fixture
def small_shed() -> Proposal:
    return Proposal(kind="shed", length_m=3.0, width_m=2.4, height_m=2.4, nearest_boundary_m=0.9)
