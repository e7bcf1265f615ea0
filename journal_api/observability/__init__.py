"""
Observability module for the journal API.

This module provides:
- Metrics collection with Prometheus
- HTTP metrics middleware
"""

__all__ = ["metrics", "metrics_middleware"]
