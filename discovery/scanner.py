"""
discovery/scanner.py - Per-block pool-creation log fetch.

SCAN CONTRACT:
==============
  scan(block_number) -> ScanResult
    - logs:  every log in [block, block] matching any registered
             signature, ordered by log index (chain order)
    - error: set when any log query failed; logs is then empty

A failed scan is non-fatal. The driver retries the same block on the
next tick and does not advance its cursor past it, so no block is
ever silently skipped.
==============
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from chains.client import ChainClient
from core.exceptions import InfraError
from core.logging import get_logger
from core.models import PoolCreationLog
from core.time import elapsed_ms, monotonic
from discovery.events import DEFAULT_SIGNATURES, EventSignature

logger = get_logger(__name__)


@dataclass
class ScanResult:
    """Outcome of scanning one block."""
    block_number: int
    logs: list[PoolCreationLog]
    error: Optional[InfraError] = None
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class PoolScanner:
    """
    Fetches pool-creation logs for a single block.

    Usage:
        scanner = PoolScanner(client)
        result = await scanner.scan(block_number)
        if result.ok:
            for log in result.logs: ...
    """

    def __init__(
        self,
        client: ChainClient,
        signatures: Sequence[EventSignature] = DEFAULT_SIGNATURES,
    ):
        if not signatures:
            raise ValueError("At least one event signature is required")
        self.client = client
        self.signatures = tuple(signatures)

    async def scan(self, block_number: int) -> ScanResult:
        """Fetch all creation logs in one block. Never raises InfraError."""
        start = monotonic()
        logs: list[PoolCreationLog] = []

        for signature in self.signatures:
            try:
                found = await self.client.get_logs(block_number, block_number, signature.topic)
            except InfraError as e:
                logger.warning(
                    f"Log query failed for block {block_number}",
                    extra={"context": {
                        "block_number": block_number,
                        "event": signature.name,
                        "error": str(e),
                    }},
                )
                return ScanResult(
                    block_number=block_number,
                    logs=[],
                    error=e,
                    latency_ms=elapsed_ms(start),
                )
            logs.extend(found)

        # Merge across signature queries back into chain order
        logs.sort(key=lambda log: log.log_index)

        latency = elapsed_ms(start)
        if logs:
            logger.info(
                f"Block {block_number}: {len(logs)} pool creation events",
                extra={"context": {"block_number": block_number, "latency_ms": latency}},
            )
        else:
            logger.debug(f"Block {block_number}: no pool creation events ({latency}ms)")

        return ScanResult(block_number=block_number, logs=logs, latency_ms=latency)
