"""
discovery/events.py - Pool-creation event layouts.

Each supported factory event is one EventSignature entry. Supporting a
new factory generation means adding an entry here; scanner and
classifier iterate the list and never branch on the version.

Layouts (indexed topics after topics[0] are token0, token1):
- V2 PairCreated(token0, token1, pair, allPairsLength):
    data word 0 = pair
- V3 PoolCreated(token0, token1, fee, tickSpacing, pool):
    topics[3] = fee, data word 1 = pool
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from core.constants import PAIR_CREATED_TOPIC, POOL_CREATED_TOPIC, PoolVersion


@dataclass(frozen=True)
class EventSignature:
    """One pool-creation event the scanner subscribes to."""
    name: str
    topic: str
    version: PoolVersion
    pair_data_word: Optional[int] = None
    fee_topic_index: Optional[int] = None


PAIR_CREATED = EventSignature(
    name="PairCreated",
    topic=PAIR_CREATED_TOPIC,
    version=PoolVersion.V2,
    pair_data_word=0,
)

POOL_CREATED = EventSignature(
    name="PoolCreated",
    topic=POOL_CREATED_TOPIC,
    version=PoolVersion.V3,
    pair_data_word=1,
    fee_topic_index=3,
)

DEFAULT_SIGNATURES: tuple[EventSignature, ...] = (PAIR_CREATED, POOL_CREATED)

_BY_NAME = {sig.name: sig for sig in DEFAULT_SIGNATURES}


def signatures_by_name(names: Iterable[str]) -> tuple[EventSignature, ...]:
    """
    Resolve configured event names.

    Raises:
        KeyError: for an unknown event name
    """
    resolved = []
    for name in names:
        if name not in _BY_NAME:
            raise KeyError(f"Unknown pool-creation event: {name}")
        resolved.append(_BY_NAME[name])
    return tuple(resolved)


def index_by_topic(signatures: Iterable[EventSignature]) -> dict[str, EventSignature]:
    """Map lower-cased topic -> signature."""
    return {sig.topic.lower(): sig for sig in signatures}
