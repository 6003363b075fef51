"""
discovery/registry.py - Known-asset exclusion and processed-pool dedup.

Holds two sets:
1. ExclusionSet: lower-cased addresses that are never "new"
   (stables, wrapped native, governance tokens). Read-only after init.
   The wrapped native address is always included.
2. ProcessedPoolSet: pair addresses already handed to the executor.
   mark_processed() is an atomic check-and-set; it is the only
   path that inserts, and the at-most-once guarantee rests on it.
"""

import threading
from collections import OrderedDict
from typing import Iterable, Optional

from core.logging import get_logger
from core.validators import normalize_address

logger = get_logger(__name__)


class AssetRegistry:
    """
    Registry of excluded assets and processed pools.

    Usage:
        registry = AssetRegistry(known_tokens, wrapped_native=WETH_BASE)
        if registry.mark_processed(pair_address):
            dispatch(event)
    """

    def __init__(
        self,
        known_tokens: Iterable[str],
        wrapped_native: str,
        max_processed: Optional[int] = None,
    ):
        if max_processed is not None and max_processed <= 0:
            raise ValueError("max_processed must be positive or None")

        self.wrapped_native = normalize_address(wrapped_native)

        excluded = {normalize_address(addr) for addr in known_tokens}
        excluded.add(self.wrapped_native)
        self._excluded: frozenset[str] = frozenset(excluded)

        # Insertion-ordered so bounded mode can evict the oldest entry
        self._processed: "OrderedDict[str, None]" = OrderedDict()
        self._max_processed = max_processed
        self._lock = threading.Lock()
        self._evicted = 0

        logger.info(
            f"Asset registry ready: {len(self._excluded)} excluded tokens",
            extra={"context": {
                "wrapped_native": self.wrapped_native,
                "max_processed": max_processed,
            }},
        )

    @staticmethod
    def _key(address: str) -> str:
        return address.strip().lower()

    def is_excluded(self, address: str) -> bool:
        """Case-insensitive O(1) exclusion lookup."""
        return self._key(address) in self._excluded

    def is_processed(self, address: str) -> bool:
        """True if the pair address was already handed to the executor."""
        with self._lock:
            return self._key(address) in self._processed

    def mark_processed(self, address: str) -> bool:
        """
        Insert a pair address if absent.

        Returns:
            True only for the first-ever insertion; False means the
            pool was already processed and the caller must not proceed.
        """
        key = self._key(address)
        with self._lock:
            if key in self._processed:
                return False
            self._processed[key] = None
            if self._max_processed is not None and len(self._processed) > self._max_processed:
                self._processed.popitem(last=False)
                self._evicted += 1
            return True

    @property
    def excluded(self) -> frozenset[str]:
        return self._excluded

    @property
    def exclusion_count(self) -> int:
        return len(self._excluded)

    @property
    def processed_count(self) -> int:
        with self._lock:
            return len(self._processed)

    def get_summary(self) -> dict:
        """Get registry summary."""
        with self._lock:
            processed = len(self._processed)
        return {
            "excluded_tokens": len(self._excluded),
            "processed_pools": processed,
            "evicted_pools": self._evicted,
            "max_processed": self._max_processed,
        }

    @classmethod
    def from_config(cls, config) -> "AssetRegistry":
        """Build from a HunterConfig."""
        return cls(
            known_tokens=config.known_tokens,
            wrapped_native=config.wrapped_native,
            max_processed=config.max_processed_pools,
        )
