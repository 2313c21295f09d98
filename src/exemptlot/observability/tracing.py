"""MLflow tracing helpers for the assessment pipeline.

Modules import tracing from here rather than calling mlflow directly:

    from exemptlot.observability.tracing import trace, start_span

    @trace(name="assess_all", span_type="CHAIN")
    def assess_all(...): ...

    with start_span("overlay_point_query") as span:
        span.set_inputs({...})
"""

import logging
from contextlib import contextmanager

import mlflow

logger = logging.getLogger(__name__)


def trace(name: str | None = None, **kwargs):
    """Decorator: wrap a sync or async function in an MLflow trace."""
    return mlflow.trace(name=name, **kwargs) if name else mlflow.trace(**kwargs)


@contextmanager
def start_span(name: str = "span", **kwargs):
    """Context manager: MLflow span around a pipeline step."""
    with mlflow.start_span(name=name, **kwargs) as span:
        yield span


def init_tracking(tracking_uri: str, experiment_name: str) -> None:
    """Point MLflow at the tracking store and select the experiment."""
    mlflow.set_tracking_uri(tracking_uri)
    mlflow.set_experiment(experiment_name)
    mlflow.config.enable_async_logging()
    logger.debug("MLflow experiment %s at %s", experiment_name, tracking_uri)
