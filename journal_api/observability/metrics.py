"""
Prometheus metrics definitions for the journal API.

Organized by category:
- HTTP/API metrics: Request counts, latency, in-flight requests
- Journal metrics: Structure saves, entry saves, action registrations

Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

import logging
from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP/API Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests received",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# Journal Metrics
# =============================================================================

structure_saves_total = Counter(
    "journal_structure_saves_total",
    "Structure saves by outcome",
    ["outcome"],  # created, versioned, updated
)

entry_saves_total = Counter(
    "journal_entry_saves_total",
    "Entry writes by operation",
    ["operation"],  # insert, update, quick_fill
)

action_registrations_total = Counter(
    "journal_action_registrations_total",
    "Action registrations by result",
    ["status"],  # success, not_found, stale, error
)

actions_filtered_total = Counter(
    "journal_actions_filtered_total",
    "Actions hidden from listings because they no longer resolve",
)
