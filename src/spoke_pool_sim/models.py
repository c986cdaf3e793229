"""
Shared data models for the simulated spoke pool.

This module contains the protocol records (deposits, fills, speed-ups, slow
fill requests, refund leaves, route changes), the canonical synthetic event
wrapper, and the snapshot types produced by a client update.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from web3.datastructures import AttributeDict

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _to_attribute_dict(value: Any) -> Any:
    if isinstance(value, Mapping):
        return AttributeDict({key: _to_attribute_dict(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return [_to_attribute_dict(item) for item in value]
    return value


class FillType(IntEnum):
    """Fill types emitted by the spoke pool, in contract enum order."""
    FAST_FILL = 0
    REPLACED_SLOW_FILL = 1
    SLOW_FILL = 2


@dataclass(frozen=True, slots=True)
class BlockInfo:
    """Metadata of a synthetic block.

    Attributes:
        number: Block number
        hash: Block hash (with 0x prefix)
        parent_hash: Parent block hash (with 0x prefix)
        timestamp: Block timestamp (Unix timestamp)
    """
    number: int
    hash: str
    parent_hash: str
    timestamp: int

    def __str__(self) -> str:
        return f"BlockInfo(number={self.number}, hash={self.hash[:10]}...)"


@dataclass(frozen=True, slots=True)
class SyntheticEvent:
    """Canonical on-chain shape of every event the simulator produces.

    Attributes:
        event_type: Contract event name, e.g. ``FundsDeposited``
        address: Emitting contract address
        topics: Signature topic followed by the stringified indexed fields
        args: Event arguments keyed by their on-chain (camelCase) names
        block_number: Block in which the event was emitted
        transaction_index: Position of the emitting transaction in the block
        log_index: Position of the log in the block
        transaction_hash: Synthetic transaction hash
        block_hash: Hash of the containing block
    """
    event_type: str
    address: str
    topics: tuple[str, ...]
    args: Mapping[str, Any]
    block_number: int
    transaction_index: int
    log_index: int = 0
    transaction_hash: str = ""
    block_hash: str = ""

    @property
    def unique_key(self) -> tuple[str, int]:
        """Key identifying this log across repeated reads."""
        return (self.transaction_hash, self.log_index)

    def to_event_data(self) -> AttributeDict:
        """Convert to the web3 ``EventData`` layout consumed by log processors."""
        return _to_attribute_dict({
            "event": self.event_type,
            "address": self.address,
            "topics": self.topics,
            "args": self.args,
            "blockNumber": self.block_number,
            "blockHash": self.block_hash,
            "transactionIndex": self.transaction_index,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
        })

    def __str__(self) -> str:
        return (
            f"SyntheticEvent({self.event_type}, block={self.block_number}, "
            f"tx_index={self.transaction_index}, log_index={self.log_index})"
        )


@dataclass(frozen=True, slots=True)
class Deposit:
    """A bridge deposit.

    Every field is optional so the record can describe a partially specified
    deposit handed to the synthesizer; decoded deposits are fully populated.
    The trailing enrichment fields are only filled in by a client update.
    """
    deposit_id: int | None = None
    origin_chain_id: int | None = None
    destination_chain_id: int | None = None
    depositor: str | None = None
    recipient: str | None = None
    input_token: str | None = None
    input_amount: int | None = None
    output_token: str | None = None
    output_amount: int | None = None
    quote_timestamp: int | None = None
    fill_deadline: int | None = None
    exclusivity_deadline: int | None = None
    exclusive_relayer: str | None = None
    message: str | None = None
    block_number: int | None = None
    transaction_index: int | None = None
    log_index: int | None = None
    transaction_hash: str | None = None
    realized_lp_fee_pct: int | None = None
    quote_block_number: int | None = None
    updated_recipient: str | None = None
    updated_output_amount: int | None = None
    updated_message: str | None = None
    speed_up_signature: str | None = None

    @classmethod
    def from_event(cls, event: SyntheticEvent) -> "Deposit":
        """Decode a ``FundsDeposited`` event."""
        args = event.args
        return cls(
            deposit_id=args["depositId"],
            origin_chain_id=args["originChainId"],
            destination_chain_id=args["destinationChainId"],
            depositor=args["depositor"],
            recipient=args["recipient"],
            input_token=args["inputToken"],
            input_amount=args["inputAmount"],
            output_token=args["outputToken"],
            output_amount=args["outputAmount"],
            quote_timestamp=args["quoteTimestamp"],
            fill_deadline=args["fillDeadline"],
            exclusivity_deadline=args["exclusivityDeadline"],
            exclusive_relayer=args["exclusiveRelayer"],
            message=args["message"],
            block_number=event.block_number,
            transaction_index=event.transaction_index,
            log_index=event.log_index,
            transaction_hash=event.transaction_hash,
        )


@dataclass(frozen=True, slots=True)
class RelayExecutionInfo:
    """Values actually used when a relay was executed."""
    updated_recipient: str | None = None
    updated_message: str | None = None
    updated_output_amount: int | None = None
    fill_type: FillType | None = None

    def to_args(self) -> dict[str, Any]:
        return {
            "updatedRecipient": self.updated_recipient,
            "updatedMessage": self.updated_message,
            "updatedOutputAmount": self.updated_output_amount,
            "fillType": self.fill_type,
        }


@dataclass(frozen=True, slots=True)
class Fill:
    """A relayer fill of a deposit on the destination chain."""
    deposit_id: int | None = None
    origin_chain_id: int | None = None
    destination_chain_id: int | None = None
    depositor: str | None = None
    recipient: str | None = None
    input_token: str | None = None
    input_amount: int | None = None
    output_token: str | None = None
    output_amount: int | None = None
    fill_deadline: int | None = None
    exclusivity_deadline: int | None = None
    exclusive_relayer: str | None = None
    message: str | None = None
    relayer: str | None = None
    repayment_chain_id: int | None = None
    relay_execution_info: RelayExecutionInfo = field(default_factory=RelayExecutionInfo)
    block_number: int | None = None
    transaction_index: int | None = None
    log_index: int | None = None
    transaction_hash: str | None = None

    @classmethod
    def from_event(cls, event: SyntheticEvent) -> "Fill":
        """Decode a ``FilledRelay`` event."""
        args = event.args
        info = args["relayExecutionInfo"]
        return cls(
            deposit_id=args["depositId"],
            origin_chain_id=args["originChainId"],
            destination_chain_id=args["destinationChainId"],
            depositor=args["depositor"],
            recipient=args["recipient"],
            input_token=args["inputToken"],
            input_amount=args["inputAmount"],
            output_token=args["outputToken"],
            output_amount=args["outputAmount"],
            fill_deadline=args["fillDeadline"],
            exclusivity_deadline=args["exclusivityDeadline"],
            exclusive_relayer=args["exclusiveRelayer"],
            message=args["message"],
            relayer=args["relayer"],
            repayment_chain_id=args["repaymentChainId"],
            relay_execution_info=RelayExecutionInfo(
                updated_recipient=info["updatedRecipient"],
                updated_message=info["updatedMessage"],
                updated_output_amount=info["updatedOutputAmount"],
                fill_type=FillType(info["fillType"]),
            ),
            block_number=event.block_number,
            transaction_index=event.transaction_index,
            log_index=event.log_index,
            transaction_hash=event.transaction_hash,
        )


@dataclass(frozen=True, slots=True)
class SpeedUp:
    """Depositor-signed amendment of an existing deposit.

    The signature is carried as opaque bytes and never verified.
    """
    depositor: str
    deposit_id: int
    updated_recipient: str
    updated_output_amount: int
    updated_message: str = "0x"
    depositor_signature: str = "0x"
    origin_chain_id: int | None = None

    def to_args(self) -> dict[str, Any]:
        return {
            "depositor": self.depositor,
            "depositId": self.deposit_id,
            "updatedRecipient": self.updated_recipient,
            "updatedOutputAmount": self.updated_output_amount,
            "updatedMessage": self.updated_message,
            "depositorSignature": self.depositor_signature,
        }

    @classmethod
    def from_event(cls, event: SyntheticEvent, origin_chain_id: int | None = None) -> "SpeedUp":
        args = event.args
        return cls(
            depositor=args["depositor"],
            deposit_id=args["depositId"],
            updated_recipient=args["updatedRecipient"],
            updated_output_amount=args["updatedOutputAmount"],
            updated_message=args["updatedMessage"],
            depositor_signature=args["depositorSignature"],
            origin_chain_id=origin_chain_id,
        )


@dataclass(frozen=True, slots=True)
class RelayData:
    """Relay parameters shared by a deposit and any fill of it."""
    depositor: str
    recipient: str
    input_token: str
    input_amount: int
    output_token: str
    output_amount: int
    origin_chain_id: int
    deposit_id: int
    fill_deadline: int
    exclusivity_deadline: int = 0
    exclusive_relayer: str = ZERO_ADDRESS
    message: str = "0x"

    def to_args(self) -> dict[str, Any]:
        return {
            "depositor": self.depositor,
            "recipient": self.recipient,
            "inputToken": self.input_token,
            "inputAmount": self.input_amount,
            "outputToken": self.output_token,
            "outputAmount": self.output_amount,
            "originChainId": self.origin_chain_id,
            "depositId": self.deposit_id,
            "fillDeadline": self.fill_deadline,
            "exclusivityDeadline": self.exclusivity_deadline,
            "exclusiveRelayer": self.exclusive_relayer,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class SlowFillRequest:
    """Request for a deposit to be settled by a slow fill."""
    relay_data: RelayData
    block_number: int | None = None
    transaction_index: int | None = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.relay_data.origin_chain_id, self.relay_data.deposit_id)

    @classmethod
    def from_event(cls, event: SyntheticEvent) -> "SlowFillRequest":
        args = event.args
        relay_data = RelayData(
            depositor=args["depositor"],
            recipient=args["recipient"],
            input_token=args["inputToken"],
            input_amount=args["inputAmount"],
            output_token=args["outputToken"],
            output_amount=args["outputAmount"],
            origin_chain_id=args["originChainId"],
            deposit_id=args["depositId"],
            fill_deadline=args["fillDeadline"],
            exclusivity_deadline=args["exclusivityDeadline"],
            exclusive_relayer=args["exclusiveRelayer"],
            message=args["message"],
        )
        return cls(
            relay_data=relay_data,
            block_number=event.block_number,
            transaction_index=event.transaction_index,
        )


@dataclass(frozen=True, slots=True)
class SlowFillLeaf:
    """Leaf of a slow relay root.

    ``root_bundle_id`` and ``proof`` are accepted so callers can pass a full
    leaf, but execution never checks them.
    """
    relay_data: RelayData
    chain_id: int
    updated_output_amount: int
    root_bundle_id: int | None = None
    proof: tuple[str, ...] = ()
    block_number: int | None = None
    transaction_index: int | None = None


@dataclass(frozen=True, slots=True)
class RelayerRefundExecution:
    """Execution of one relayer refund leaf for a single chain."""
    root_bundle_id: int
    leaf_id: int
    l2_token_address: str
    refund_addresses: tuple[str, ...] = ()
    refund_amounts: tuple[int, ...] = ()
    amount_to_return: int = 0
    chain_id: int | None = None
    block_number: int | None = None
    transaction_index: int | None = None

    @classmethod
    def from_event(cls, event: SyntheticEvent) -> "RelayerRefundExecution":
        args = event.args
        return cls(
            root_bundle_id=args["rootBundleId"],
            leaf_id=args["leafId"],
            l2_token_address=args["l2TokenAddress"],
            refund_addresses=tuple(args["refundAddresses"]),
            refund_amounts=tuple(args["refundAmounts"]),
            amount_to_return=args["amountToReturn"],
            chain_id=args["chainId"],
            block_number=event.block_number,
            transaction_index=event.transaction_index,
        )


@dataclass(frozen=True, slots=True)
class DepositRoute:
    """Enablement state of an (origin token, destination chain) route."""
    origin_token: str
    destination_chain_id: int
    enabled: bool
    block_number: int | None = None

    @classmethod
    def from_event(cls, event: SyntheticEvent) -> "DepositRoute":
        args = event.args
        return cls(
            origin_token=args["originToken"],
            destination_chain_id=args["destinationChainId"],
            enabled=args["enabled"],
            block_number=event.block_number,
        )


@dataclass(frozen=True, slots=True)
class RealizedLpFee:
    """Realized LP fee (1e18 fixed point) and the block it was quoted at."""
    realized_lp_fee_pct: int
    quote_block: int


@dataclass(frozen=True, slots=True)
class SpokePoolUpdate:
    """Snapshot of everything a client update observed.

    ``events`` holds one list per requested event type, in request order.
    """
    success: bool
    first_deposit_id: int
    latest_deposit_id: int
    current_time: int
    oldest_time: int
    events: list[list[SyntheticEvent]]
    search_end_block: int
    has_cctp_bridging_enabled: bool = False

    def events_for(self, events_to_query: list[str], event_type: str) -> list[SyntheticEvent]:
        """Return the bucket for ``event_type``, or an empty list if it was not queried."""
        try:
            return self.events[events_to_query.index(event_type)]
        except ValueError:
            return []
