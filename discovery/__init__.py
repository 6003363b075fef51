"""
discovery/ - New-pool discovery.

Modules:
- events: pool-creation event layouts (V2 PairCreated, V3 PoolCreated)
- registry: excluded assets and processed-pool dedup
- scanner: per-block log fetch
- classifier: raw log -> NewPoolEvent
"""

from discovery.classifier import PoolCandidate, PoolClassifier
from discovery.events import (
    DEFAULT_SIGNATURES,
    PAIR_CREATED,
    POOL_CREATED,
    EventSignature,
    signatures_by_name,
)
from discovery.registry import AssetRegistry
from discovery.scanner import PoolScanner, ScanResult

__all__ = [
    "AssetRegistry",
    "DEFAULT_SIGNATURES",
    "EventSignature",
    "PAIR_CREATED",
    "POOL_CREATED",
    "PoolCandidate",
    "PoolClassifier",
    "PoolScanner",
    "ScanResult",
    "signatures_by_name",
]
