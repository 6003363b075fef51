"""
discovery/classifier.py - Raw creation log -> NewPoolEvent.

CLASSIFICATION CONTRACT:
========================
  classify(log, registry) -> NewPoolEvent | None

  1. Decode token A / token B from topics[1] / topics[2]
     (right-most 20 bytes of each 32-byte word).
     Fewer than 3 topics or malformed words -> None (log skipped).
  2. New token = A if A not excluded, else B if B not excluded,
     else None (known/known pair). Neither excluded -> A wins.
  3. Pair address = address in the event's data layout when present,
     otherwise the emitting contract.
  4. Pair already processed -> None.

classify() has no side effects. The caller inserts the pair into the
processed set via registry.mark_processed() before dispatching.
========================
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from core.constants import MIN_CREATION_TOPICS, ErrorCode, PoolVersion
from core.exceptions import DecodeError
from core.logging import get_logger
from core.models import NewPoolEvent, PoolCreationLog
from core.time import monotonic
from core.validators import address_from_word, data_word, is_hex
from discovery.events import DEFAULT_SIGNATURES, EventSignature, index_by_topic
from discovery.registry import AssetRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class PoolCandidate:
    """Decoded creation log before the exclusion rule is applied."""
    token_a: str
    token_b: str
    pair_address: str
    version: Optional[PoolVersion]
    fee: Optional[int]


class PoolClassifier:
    """
    Decodes creation logs and applies the exclusion and dedup rules.

    Usage:
        classifier = PoolClassifier()
        event = classifier.classify(log, registry)
        if event and registry.mark_processed(event.pair_address):
            dispatch(event)
    """

    def __init__(
        self,
        signatures: Sequence[EventSignature] = DEFAULT_SIGNATURES,
        clock: Callable[[], float] = monotonic,
    ):
        self._layouts = index_by_topic(signatures)
        self._clock = clock

    def decode(self, log: PoolCreationLog) -> PoolCandidate:
        """
        Decode the two token addresses and the pair address.

        Raises:
            DecodeError: on unexpected topic count or malformed words
        """
        if len(log.topics) < MIN_CREATION_TOPICS:
            raise DecodeError(
                f"Expected at least {MIN_CREATION_TOPICS} topics, got {len(log.topics)}",
                code=ErrorCode.DECODE_TOPIC_COUNT,
                details={"tx_hash": log.tx_hash, "topics": len(log.topics)},
            )

        token_a = address_from_word(log.topics[1])
        token_b = address_from_word(log.topics[2])

        layout = self._layouts.get(log.signature or "")
        pair_address = log.address
        version = None
        fee = None

        if layout is not None:
            version = layout.version
            if layout.pair_data_word is not None:
                word = data_word(log.data, layout.pair_data_word)
                if word is not None:
                    pair_address = address_from_word(word)
            if layout.fee_topic_index is not None and len(log.topics) > layout.fee_topic_index:
                fee_word = log.topics[layout.fee_topic_index]
                if is_hex(fee_word) and len(fee_word) > 2:
                    fee = int(fee_word, 16)

        return PoolCandidate(
            token_a=token_a,
            token_b=token_b,
            pair_address=pair_address.lower(),
            version=version,
            fee=fee,
        )

    def classify(
        self,
        log: PoolCreationLog,
        registry: AssetRegistry,
    ) -> Optional[NewPoolEvent]:
        """Return a NewPoolEvent, or None if the log is rejected. Never raises."""
        try:
            candidate = self.decode(log)
        except DecodeError as e:
            logger.debug(
                "Skipping undecodable creation log",
                extra={"context": {
                    "tx_hash": log.tx_hash,
                    "block_number": log.block_number,
                    "error": str(e),
                }},
            )
            return None

        if not registry.is_excluded(candidate.token_a):
            new_token, paired = candidate.token_a, candidate.token_b
        elif not registry.is_excluded(candidate.token_b):
            new_token, paired = candidate.token_b, candidate.token_a
        else:
            logger.debug(
                "Known/known pool rejected",
                extra={"context": {"pair_address": candidate.pair_address}},
            )
            return None

        if registry.is_processed(candidate.pair_address):
            logger.debug(
                "Pool already processed",
                extra={"context": {"pair_address": candidate.pair_address}},
            )
            return None

        return NewPoolEvent(
            new_token_address=new_token,
            pair_address=candidate.pair_address,
            block_number=log.block_number,
            tx_hash=log.tx_hash,
            detected_at=self._clock(),
            pool_version=candidate.version,
            paired_token_address=paired,
            fee=candidate.fee,
        )
