"""
Event shape helpers shared by the event store and the synthesizer.

Topics are kept as strings: topic 0 is the hex keccak hash of the event
signature, the remaining topics are the indexed values in contract order.
"""

from collections.abc import Iterable
from typing import Any

from web3 import Web3


def event_signature(event_type: str, argument_types: str) -> str:
    """Build the canonical ``Name(type,type,...)`` signature string."""
    return f"{event_type}({argument_types})"


def signature_topic(event_type: str, argument_types: str) -> str:
    """Hash an event signature into its topic 0 value."""
    return Web3.to_hex(Web3.keccak(text=event_signature(event_type, argument_types)))


def stringify_topic(value: Any) -> str:
    """Render an indexed value the way topics are compared by consumers."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return str(value)


def build_topics(values: Iterable[Any]) -> list[str]:
    return [stringify_topic(value) for value in values]

