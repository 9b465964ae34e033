"""Observability module for the matching service.

Provides structured logging, metrics, and health checks.
"""

from .logging_config import configure_logging
from .metrics import (
    oracle_calls_total,
    oracle_latency_ms,
    scoring_fallbacks_total,
    compatibility_score_histogram,
    ranking_duration_seconds,
    ranking_candidates_skipped_total,
    learning_sessions_total,
    learning_matches_analyzed,
)
from .request_id import request_id_var, get_request_id, set_request_id, reset_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    # Metrics
    "oracle_calls_total",
    "oracle_latency_ms",
    "scoring_fallbacks_total",
    "compatibility_score_histogram",
    "ranking_duration_seconds",
    "ranking_candidates_skipped_total",
    "learning_sessions_total",
    "learning_matches_analyzed",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "reset_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
