"""
Monitoring package.

- SessionStats: counters and latency aggregates for one run
"""

from monitoring.session_stats import SessionStats

__all__ = [
    "SessionStats",
]
