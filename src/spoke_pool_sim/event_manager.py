"""
In-memory event store backing simulated spoke pool clients.

Events are appended in the order they are generated and are never modified
afterwards. Block positions are assigned from a monotonically increasing
block counter unless the caller pins them explicitly.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from web3 import Web3

from .models import BlockInfo, SyntheticEvent
from .utils.clock import SystemClock
from .utils.event_encoding import build_topics, signature_topic
from .utils.random_source import RandomSource

logger = logging.getLogger(__name__)


def _freeze(value: Any) -> Any:
    """Recursively turn mappings and lists into read-only equivalents."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


class EventManager:
    """Ordered, per-address registry of synthetic events for one chain."""

    def __init__(
        self,
        chain_id: int,
        event_signatures: Mapping[str, str],
        block_number: int = 0,
        clock: Any = None,
        random_source: RandomSource | None = None,
    ) -> None:
        """
        Initialize the event store.

        Args:
            chain_id: Chain the events are emitted on
            event_signatures: Argument type lists keyed by event name, used for topic 0
            block_number: Initial value of the block counter (usually the deployment block)
            clock: Object with a ``now()`` method used for block timestamps
            random_source: Source of randomness for synthetic transaction hashes
        """
        self.chain_id = chain_id
        self.event_signatures = dict(event_signatures)
        self.block_number = block_number
        self.clock = clock or SystemClock()
        self.random_source = random_source or RandomSource()

        self._events: list[SyntheticEvent] = []
        self._events_by_address: dict[str, list[SyntheticEvent]] = {}
        self._blocks: dict[int, BlockInfo] = {}
        self._next_transaction_index: dict[int, int] = {}
        self._next_log_index: dict[int, int] = {}

    def resolve_position(
        self,
        block_number: int | None = None,
        transaction_index: int | None = None,
    ) -> tuple[int, int]:
        """
        Return the (block number, transaction index) an append would use.

        An unset block number means the block after the current counter; an
        unset transaction index means the next free index in that block.
        """
        if block_number is None:
            block_number = self.block_number + 1
        if transaction_index is None:
            transaction_index = self._next_transaction_index.get(block_number, 0)
        return block_number, transaction_index

    def generate_event(
        self,
        event_type: str,
        address: str,
        topics: list[Any],
        args: Mapping[str, Any],
        block_number: int | None = None,
        transaction_index: int | None = None,
    ) -> SyntheticEvent:
        """
        Build a synthetic event, store it and return it.

        Args:
            event_type: Contract event name
            address: Emitting contract address
            topics: Indexed values in contract order (topic 0 is added here)
            args: Event arguments keyed by on-chain name
            block_number: Block to place the event in (optional)
            transaction_index: Transaction index within the block (optional)

        Returns:
            The stored SyntheticEvent
        """
        block_number, transaction_index = self.resolve_position(block_number, transaction_index)

        block = self._blocks.get(block_number)
        if block is None:
            block = self._make_block(block_number)
            self._blocks[block_number] = block

        log_index = self._next_log_index.get(block_number, 0)
        self._next_log_index[block_number] = log_index + 1
        self._next_transaction_index[block_number] = max(
            self._next_transaction_index.get(block_number, 0), transaction_index + 1
        )
        self.block_number = max(self.block_number, block_number)

        transaction_hash = Web3.to_hex(Web3.keccak(
            text=f"{self.chain_id}-{event_type}-{block_number}-{transaction_index}-{self.random_source.hash()}"
        ))

        argument_types = self.event_signatures.get(event_type, "")
        event = SyntheticEvent(
            event_type=event_type,
            address=address,
            topics=tuple([signature_topic(event_type, argument_types)] + build_topics(topics)),
            args=_freeze(args),
            block_number=block_number,
            transaction_index=transaction_index,
            log_index=log_index,
            transaction_hash=transaction_hash,
            block_hash=block.hash,
        )

        self._events.append(event)
        self._events_by_address.setdefault(address, []).append(event)

        logger.debug(f"Stored {event}")
        return event

    def get_events(self, address: str | None = None) -> list[list[SyntheticEvent]]:
        """
        Return stored events grouped into batches of consecutive events sharing a block.

        Flattening the batches yields the global insertion order. The store
        itself is not modified.

        Args:
            address: Only return events emitted by this address (optional)
        """
        events = self._events if address is None else self._events_by_address.get(address, [])

        batches: list[list[SyntheticEvent]] = []
        for event in events:
            if batches and batches[-1][-1].block_number == event.block_number:
                batches[-1].append(event)
            else:
                batches.append([event])
        return batches

    async def get_block(self, block_number: int) -> BlockInfo | None:
        """
        Look up metadata for a block that holds at least one event.

        Returns:
            BlockInfo if the block is known, None otherwise
        """
        return self._blocks.get(block_number)

    def _make_block(self, block_number: int) -> BlockInfo:
        return BlockInfo(
            number=block_number,
            hash=self._block_hash(block_number),
            parent_hash=self._block_hash(block_number - 1),
            timestamp=self.clock.now(),
        )

    def _block_hash(self, block_number: int) -> str:
        return Web3.to_hex(Web3.keccak(text=f"{self.chain_id}-block-{block_number}"))

    def get_stats(self) -> dict:
        """
        Get current store statistics.

        Returns:
            Dictionary with current state metrics
        """
        return {
            'events': len(self._events),
            'blocks': len(self._blocks),
            'addresses': len(self._events_by_address),
            'block_number': self.block_number,
        }
