"""Prometheus metrics for the matching engine.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram

# Oracle metrics
oracle_calls_total = Counter(
    "kindred_oracle_calls_total",
    "Total intelligence oracle calls",
    ["oracle", "aspect", "outcome"]  # outcome: success|timeout|error|invalid|cancelled
)

oracle_latency_ms = Histogram(
    "kindred_oracle_latency_ms",
    "Intelligence oracle call latency in milliseconds",
    ["oracle"],
    buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000, 10000]
)

scoring_fallbacks_total = Counter(
    "kindred_scoring_fallbacks_total",
    "Compatibility scores computed with the local fallback heuristic",
    ["reason"]  # reason: timeout|error|invalid
)

# Scoring metrics
compatibility_score_histogram = Histogram(
    "kindred_compatibility_overall_score",
    "Overall compatibility score distribution",
    buckets=[0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
)

# Ranking metrics
ranking_duration_seconds = Histogram(
    "kindred_ranking_duration_seconds",
    "Time spent ranking a candidate pool in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

ranking_candidates_skipped_total = Counter(
    "kindred_ranking_candidates_skipped_total",
    "Candidates dropped from a ranking because they could not be scored",
    ["reason"]  # reason: not_found|validation
)

# Learning metrics
learning_sessions_total = Counter(
    "kindred_learning_sessions_total",
    "Preference learning sessions",
    ["status"]  # status: success|error
)

learning_matches_analyzed = Histogram(
    "kindred_learning_matches_analyzed",
    "Match records analyzed per learning session",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250, 500]
)
