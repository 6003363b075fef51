"""
monitoring/session_stats.py - Counters for one hunter run.

Tracks:
- Blocks scanned and scan errors
- Pools detected
- Trades attempted, by outcome
- Gas used and latency aggregates

Updated from the scan loop and from trade tasks, so all mutations go
through one lock.
"""

import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from core.constants import TradeOutcome
from core.models import NewPoolEvent, TradeAttempt


class SessionStats:
    """Session statistics tracker."""

    def __init__(self, started_at: Optional[datetime] = None):
        self.started_at = started_at or datetime.now(timezone.utc)
        self._lock = threading.Lock()

        self.blocks_scanned = 0
        self.scan_errors = 0
        self.head_errors = 0
        self.pools_detected = 0
        self.trades_attempted = 0
        self.outcomes: Counter[str] = Counter()
        self.total_gas_used = 0

        self._broadcast_latencies: list[int] = []
        self._total_latencies: list[int] = []
        self.last_block: Optional[int] = None

    def record_block(self, block_number: int) -> None:
        with self._lock:
            self.blocks_scanned += 1
            self.last_block = block_number

    def record_scan_error(self) -> None:
        with self._lock:
            self.scan_errors += 1

    def record_head_error(self) -> None:
        with self._lock:
            self.head_errors += 1

    def record_pool(self, event: NewPoolEvent) -> None:
        with self._lock:
            self.pools_detected += 1

    def record_trade(self, attempt: TradeAttempt) -> None:
        """Fold a finished attempt into the aggregates."""
        with self._lock:
            self.trades_attempted += 1
            self.outcomes[attempt.outcome.value] += 1
            if attempt.gas_used:
                self.total_gas_used += attempt.gas_used
            if attempt.detection_to_broadcast_ms is not None:
                self._broadcast_latencies.append(attempt.detection_to_broadcast_ms)
            if attempt.total_ms is not None:
                self._total_latencies.append(attempt.total_ms)

    @staticmethod
    def _avg(values: list[int]) -> Optional[float]:
        if not values:
            return None
        return round(sum(values) / len(values), 1)

    @property
    def success_rate(self) -> float:
        """Confirmed successes as a percentage of broadcast trades."""
        broadcast = (
            self.outcomes[TradeOutcome.CONFIRMED_SUCCESS.value]
            + self.outcomes[TradeOutcome.CONFIRMED_FAILURE.value]
        )
        if not broadcast:
            return 0.0
        return round(self.outcomes[TradeOutcome.CONFIRMED_SUCCESS.value] / broadcast * 100, 1)

    def get_summary(self) -> dict[str, Any]:
        """Get session summary."""
        elapsed = datetime.now(timezone.utc) - self.started_at
        with self._lock:
            return {
                "session_start": self.started_at.isoformat(),
                "elapsed_seconds": int(elapsed.total_seconds()),
                "blocks_scanned": self.blocks_scanned,
                "last_block": self.last_block,
                "scan_errors": self.scan_errors,
                "head_errors": self.head_errors,
                "pools_detected": self.pools_detected,
                "trades_attempted": self.trades_attempted,
                "outcomes": {o.value: self.outcomes[o.value] for o in TradeOutcome},
                "success_rate": self.success_rate,
                "total_gas_used": self.total_gas_used,
                "avg_detection_to_broadcast_ms": self._avg(self._broadcast_latencies),
                "avg_trade_ms": self._avg(self._total_latencies),
            }
