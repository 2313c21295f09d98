"""Observability — structured logging and MLflow tracing helpers."""

from exemptlot.observability.logging import correlation_scope, get_correlation_id, setup_logging
from exemptlot.observability.tracing import init_tracking, trace

__all__ = ["correlation_scope", "get_correlation_id", "init_tracking", "setup_logging", "trace"]
