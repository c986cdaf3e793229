"""
Simulated spoke pool client.

MockSpokePoolClient wraps a SpokePoolClient and replaces its on-chain queries
with an in-memory event store. Tests synthesize protocol events through it,
then call ``update()`` to have the wrapped client ingest them exactly as it
would ingest real logs. Per-instance overrides short-circuit fee, destination
token, deposit id and block height lookups.
"""

import asyncio
import logging
from typing import Any

from .config import MockClientConfig
from .event_manager import EventManager
from .models import (
    ZERO_ADDRESS,
    BlockInfo,
    Deposit,
    Fill,
    FillType,
    RealizedLpFee,
    RelayExecutionInfo,
    RelayerRefundExecution,
    SlowFillLeaf,
    SlowFillRequest,
    SpeedUp,
    SpokePoolUpdate,
    SyntheticEvent,
)
from .overrides import ClientOverrides
from .spoke_pool_client import (
    ENABLED_DEPOSIT_ROUTE,
    EXECUTED_RELAYER_REFUND_ROOT,
    FILLED_RELAY,
    FUNDS_DEPOSITED,
    REQUESTED_SLOW_FILL,
    REQUESTED_SPEED_UP_DEPOSIT,
    SPOKE_POOL_EVENTS,
    SpokePoolClient,
)
from .utils.clock import SystemClock
from .utils.random_source import RandomSource

logger = logging.getLogger(__name__)

MAX_RANDOM_CHAIN_ID = 42161
MAX_RANDOM_DEPOSIT_ID = 100_000
FILL_DEADLINE_BUFFER = 3600  # seconds after the quote
EXCLUSIVITY_PERIOD = 600  # seconds after the quote
RELAY_FILL_DEADLINE = 60  # seconds after "now" for synthesized fills


class MockSpokePoolClient:
    """
    Event source and override layer around a SpokePoolClient.

    The wrapped client keeps all ingested state; this class owns the deposit
    counter, the overrides and the event store handle.
    """

    # Argument type lists, used to derive each event's signature topic.
    EVENT_SIGNATURES: dict[str, str] = {
        FUNDS_DEPOSITED: "address,address,uint256,uint256,uint256,uint32,uint32,uint32,uint32,address,address,address,bytes",
        FILLED_RELAY: (
            "address,address,uint256,uint256,uint256,uint256,uint32,uint32,uint32,"
            "address,address,address,address,bytes,(address,bytes,uint256,uint8)"
        ),
        REQUESTED_SPEED_UP_DEPOSIT: "uint256,uint32,address,address,bytes,bytes",
        REQUESTED_SLOW_FILL: "address,address,uint256,uint256,uint256,uint32,uint32,uint32,address,address,address,bytes",
        EXECUTED_RELAYER_REFUND_ROOT: "uint256,uint256,uint256[],uint32,uint32,address,address[],address",
        ENABLED_DEPOSIT_ROUTE: "address,uint256,bool",
    }

    def __init__(
        self,
        spoke_pool_client: SpokePoolClient,
        event_manager: EventManager | None = None,
        clock: Any = None,
        random_source: RandomSource | None = None,
        overrides: ClientOverrides | None = None,
    ) -> None:
        """
        Initialize the mock client.

        Args:
            spoke_pool_client: Client that ingests the synthesized updates
            event_manager: Event store, shareable between clients (created if omitted)
            clock: Object with a ``now()`` method for timestamps and deadlines
            random_source: Source of randomized defaults
            overrides: Initial override state
        """
        self.spoke_pool_client = spoke_pool_client
        self.clock = clock or SystemClock()
        self.random_source = random_source or RandomSource()
        self.overrides = overrides or ClientOverrides()
        self.event_manager = event_manager or EventManager(
            chain_id=spoke_pool_client.chain_id,
            event_signatures=self.EVENT_SIGNATURES,
            block_number=spoke_pool_client.deployment_block,
            clock=self.clock,
            random_source=self.random_source,
        )

        self.number_of_deposits = 0
        self.blocks: dict[int, BlockInfo] = {}

    @classmethod
    def from_config(
        cls,
        config: MockClientConfig,
        hub_pool_client: Any = None,
        event_manager: EventManager | None = None,
        clock: Any = None,
    ) -> "MockSpokePoolClient":
        """
        Build a mock client and its wrapped SpokePoolClient from configuration.

        Args:
            config: Validated client configuration
            hub_pool_client: Fee and token collaborator for the wrapped client (optional)
            event_manager: Shared event store (optional)
            clock: Clock source (optional)
        """
        spoke_pool_client = SpokePoolClient(
            chain_id=config.chain_id,
            spoke_pool_address=config.spoke_pool_address,
            deployment_block=config.deployment_block,
            hub_pool_client=hub_pool_client,
            event_search_config=config.event_search_config,
        )
        return cls(
            spoke_pool_client,
            event_manager=event_manager,
            clock=clock,
            random_source=RandomSource(config.seed),
        )

    @property
    def chain_id(self) -> int:
        return self.spoke_pool_client.chain_id

    @property
    def spoke_pool_address(self) -> str:
        return self.spoke_pool_client.spoke_pool_address

    @property
    def latest_block_searched(self) -> int:
        return self.spoke_pool_client.latest_block_searched

    @property
    def latest_deposit_id_queried(self) -> int:
        return self.spoke_pool_client.latest_deposit_id_queried

    # Overrides

    def set_default_realized_lp_fee_pct(self, fee: int) -> None:
        self.overrides.realized_lp_fee_pct = fee

    def clear_default_realized_lp_fee_pct(self) -> None:
        self.overrides.realized_lp_fee_pct = None

    @property
    def can_compute_fees(self) -> bool:
        return self.overrides.realized_lp_fee_pct is not None or self.spoke_pool_client.can_compute_fees

    async def compute_realized_lp_fee_pct(self, deposit: Deposit) -> RealizedLpFee:
        """Return the fixed fee quoted at the deposit's block when overridden, else delegate."""
        fee = self.overrides.realized_lp_fee_pct
        if fee is not None:
            return RealizedLpFee(realized_lp_fee_pct=fee, quote_block=deposit.block_number)
        return await self.spoke_pool_client.compute_realized_lp_fee_pct(deposit)

    async def batch_compute_realized_lp_fee_pct(self, deposits: list[Deposit]) -> list[RealizedLpFee]:
        fee = self.overrides.realized_lp_fee_pct
        if fee is not None:
            return [
                RealizedLpFee(realized_lp_fee_pct=fee, quote_block=deposit.block_number)
                for deposit in deposits
            ]
        return await self.spoke_pool_client.batch_compute_realized_lp_fee_pct(deposits)

    def set_destination_token_for_chain(self, chain_id: int, token: str) -> None:
        self.overrides.destination_tokens[chain_id] = token

    def clear_destination_token_overrides(self) -> None:
        self.overrides.destination_tokens.clear()

    def get_destination_token_for_deposit(self, deposit: Deposit) -> str:
        token = self.overrides.destination_tokens.get(deposit.origin_chain_id)
        if token is not None:
            return token
        return self.spoke_pool_client.get_destination_token_for_deposit(deposit)

    def set_latest_block_number(self, block_number: int) -> None:
        self.spoke_pool_client.latest_block_searched = block_number

    def set_deposit_ids(self, deposit_ids: list[int]) -> None:
        """
        Set the numberOfDeposits() value reported at each block tag.

        Raises:
            ValueError: If the ids decrease anywhere in the sequence
        """
        self.overrides.set_deposit_ids(deposit_ids)

    async def get_deposit_id_at_block(self, block_tag: int) -> int | None:
        """Deposit id recorded for a block tag, or None when the table has no entry."""
        return self.overrides.deposit_id_at(block_tag)

    # Update

    async def update(self, events_to_query: list[str] | None = None) -> SpokePoolUpdate:
        """
        Produce an update snapshot and have the wrapped client ingest it.

        Args:
            events_to_query: Event type names to report (defaults to every
                spoke pool event type)

        Returns:
            The snapshot handed to the wrapped client
        """
        events_to_query = list(events_to_query) if events_to_query is not None else list(SPOKE_POOL_EVENTS)
        update = await self._update(events_to_query)
        await self.spoke_pool_client.apply_update(update, events_to_query, pricing=self)
        return update

    async def _update(self, events_to_query: list[str]) -> SpokePoolUpdate:
        """Build a snapshot from the event store in a single pass."""
        latest_block_searched = self.event_manager.block_number
        current_time = self.clock.now()

        # One bucket per requested type, in request order, even when empty.
        events: list[list[SyntheticEvent]] = [[] for _ in events_to_query]
        latest_deposit_id = self.spoke_pool_client.latest_deposit_id_queried

        stored = [
            event
            for batch in self.event_manager.get_events(self.spoke_pool_address)
            for event in batch
        ]
        for event in stored:
            if event.event_type == FUNDS_DEPOSITED:
                latest_deposit_id = max(latest_deposit_id, event.args["depositId"])
            if event.event_type in events_to_query:
                events[events_to_query.index(event.event_type)].append(event)

        block_numbers = list(dict.fromkeys(event.block_number for event in stored))
        blocks = await asyncio.gather(
            *(self.event_manager.get_block(block_number) for block_number in block_numbers)
        )
        self.blocks = {
            block_number: block
            for block_number, block in zip(block_numbers, blocks)
            if block is not None
        }

        to_block = self.spoke_pool_client.event_search_config.to_block
        logger.debug(
            f"Update for chain {self.chain_id}: {len(stored)} stored events, "
            f"{sum(len(bucket) for bucket in events)} matched"
        )

        return SpokePoolUpdate(
            success=True,
            first_deposit_id=0,
            latest_deposit_id=latest_deposit_id,
            current_time=current_time,
            oldest_time=0,
            events=events,
            search_end_block=to_block if to_block is not None else latest_block_searched,
            has_cctp_bridging_enabled=False,
        )

    def get_block(self, block_number: int) -> BlockInfo | None:
        """Block metadata from the latest update, or None if it held no events in that block."""
        return self.blocks.get(block_number)

    # Event synthesis

    def deposit(self, deposit: Deposit | None = None) -> SyntheticEvent:
        """
        Synthesize a FundsDeposited event.

        Raises:
            ValueError: If an explicit deposit id is lower than the number of deposits
        """
        deposit = deposit or Deposit()
        rs = self.random_source

        deposit_id = deposit.deposit_id if deposit.deposit_id is not None else self.number_of_deposits
        if deposit_id < self.number_of_deposits:
            raise ValueError(
                f"Deposit ID {deposit_id} is lower than the number of deposits ({self.number_of_deposits})"
            )

        destination_chain_id = (
            deposit.destination_chain_id if deposit.destination_chain_id is not None
            else rs.integer(1, MAX_RANDOM_CHAIN_ID)
        )
        depositor = deposit.depositor if deposit.depositor is not None else rs.address()
        input_token = deposit.input_token if deposit.input_token is not None else rs.address()
        output_token = deposit.output_token if deposit.output_token is not None else input_token
        input_amount = deposit.input_amount if deposit.input_amount is not None else rs.token_amount()
        output_amount = (
            deposit.output_amount if deposit.output_amount is not None
            else input_amount * 95 // 100
        )
        quote_timestamp = deposit.quote_timestamp if deposit.quote_timestamp is not None else self.clock.now()

        block_number, transaction_index = self.event_manager.resolve_position(
            deposit.block_number, deposit.transaction_index
        )
        message = (
            deposit.message if deposit.message is not None
            else f"{FUNDS_DEPOSITED} event at block {block_number}, index {transaction_index}."
        )

        topics = [destination_chain_id, deposit_id, depositor]
        args = {
            "depositId": deposit_id,
            "originChainId": deposit.origin_chain_id if deposit.origin_chain_id is not None else self.chain_id,
            "destinationChainId": destination_chain_id,
            "depositor": depositor,
            "recipient": deposit.recipient if deposit.recipient is not None else depositor,
            "inputToken": input_token,
            "inputAmount": input_amount,
            "outputToken": output_token,
            "outputAmount": output_amount,
            "quoteTimestamp": quote_timestamp,
            "fillDeadline": (
                deposit.fill_deadline if deposit.fill_deadline is not None
                else quote_timestamp + FILL_DEADLINE_BUFFER
            ),
            "exclusiveRelayer": deposit.exclusive_relayer if deposit.exclusive_relayer is not None else ZERO_ADDRESS,
            "exclusivityDeadline": (
                deposit.exclusivity_deadline if deposit.exclusivity_deadline is not None
                else quote_timestamp + EXCLUSIVITY_PERIOD
            ),
            "message": message,
        }

        event = self._generate(FUNDS_DEPOSITED, topics, args, block_number, transaction_index)
        self.number_of_deposits = deposit_id + 1

        logger.info(f"Deposit {deposit_id} synthesized on chain {self.chain_id} at block {event.block_number}")
        return event

    def fill(self, fill: Fill | None = None) -> SyntheticEvent:
        """Synthesize a FilledRelay event."""
        fill = fill or Fill()
        rs = self.random_source

        origin_chain_id = (
            fill.origin_chain_id if fill.origin_chain_id is not None
            else rs.integer(1, MAX_RANDOM_CHAIN_ID)
        )
        deposit_id = fill.deposit_id if fill.deposit_id is not None else rs.integer(1, MAX_RANDOM_DEPOSIT_ID)
        input_token = fill.input_token if fill.input_token is not None else rs.address()
        input_amount = fill.input_amount if fill.input_amount is not None else rs.token_amount()
        output_amount = fill.output_amount if fill.output_amount is not None else input_amount
        fill_deadline = (
            fill.fill_deadline if fill.fill_deadline is not None
            else self.clock.now() + RELAY_FILL_DEADLINE
        )
        relayer = fill.relayer if fill.relayer is not None else rs.address()
        recipient = fill.recipient if fill.recipient is not None else rs.address()

        block_number, transaction_index = self.event_manager.resolve_position(
            fill.block_number, fill.transaction_index
        )
        message = (
            fill.message if fill.message is not None
            else f"{FILLED_RELAY} event at block {block_number}, index {transaction_index}."
        )

        info = fill.relay_execution_info
        relay_execution_info = {
            "updatedRecipient": info.updated_recipient if info.updated_recipient is not None else recipient,
            "updatedMessage": info.updated_message if info.updated_message is not None else message,
            "updatedOutputAmount": (
                info.updated_output_amount if info.updated_output_amount is not None else output_amount
            ),
            "fillType": info.fill_type if info.fill_type is not None else FillType.FAST_FILL,
        }

        topics = [origin_chain_id, deposit_id, relayer]
        args = {
            "inputToken": input_token,
            # Resolved from the hub pool by consumers when left unset.
            "outputToken": fill.output_token if fill.output_token is not None else ZERO_ADDRESS,
            "inputAmount": input_amount,
            "outputAmount": output_amount,
            "repaymentChainId": fill.repayment_chain_id if fill.repayment_chain_id is not None else self.chain_id,
            "originChainId": origin_chain_id,
            "destinationChainId": (
                fill.destination_chain_id if fill.destination_chain_id is not None else self.chain_id
            ),
            "depositId": deposit_id,
            "fillDeadline": fill_deadline,
            "exclusivityDeadline": (
                fill.exclusivity_deadline if fill.exclusivity_deadline is not None else fill_deadline
            ),
            "exclusiveRelayer": fill.exclusive_relayer if fill.exclusive_relayer is not None else ZERO_ADDRESS,
            "relayer": relayer,
            "depositor": fill.depositor if fill.depositor is not None else rs.address(),
            "recipient": recipient,
            "message": message,
            "relayExecutionInfo": relay_execution_info,
        }

        event = self._generate(FILLED_RELAY, topics, args, block_number, transaction_index)
        logger.info(
            f"Fill of deposit {deposit_id} from chain {origin_chain_id} synthesized "
            f"({FillType(relay_execution_info['fillType']).name})"
        )
        return event

    def speed_up(self, speed_up: SpeedUp) -> SyntheticEvent:
        """Synthesize a RequestedSpeedUpDeposit event."""
        topics = [speed_up.deposit_id, speed_up.depositor]
        return self._generate(REQUESTED_SPEED_UP_DEPOSIT, topics, speed_up.to_args())

    def request_slow_fill(self, request: SlowFillRequest) -> SyntheticEvent:
        """Synthesize a RequestedSlowFill event."""
        relay_data = request.relay_data
        topics = [relay_data.origin_chain_id, relay_data.deposit_id]
        return self._generate(
            REQUESTED_SLOW_FILL,
            topics,
            relay_data.to_args(),
            request.block_number,
            request.transaction_index,
        )

    def execute_slow_relay_leaf(self, leaf: SlowFillLeaf) -> SyntheticEvent:
        """
        Synthesize the slow fill produced by executing a slow relay leaf.

        The leaf's root bundle id and proof are not checked.
        """
        relay_data = leaf.relay_data
        fill = Fill(
            deposit_id=relay_data.deposit_id,
            origin_chain_id=relay_data.origin_chain_id,
            destination_chain_id=self.chain_id,
            depositor=relay_data.depositor,
            recipient=relay_data.recipient,
            input_token=relay_data.input_token,
            input_amount=relay_data.input_amount,
            output_token=relay_data.output_token,
            output_amount=relay_data.output_amount,
            fill_deadline=relay_data.fill_deadline,
            exclusivity_deadline=relay_data.exclusivity_deadline,
            exclusive_relayer=relay_data.exclusive_relayer,
            message=relay_data.message,
            relayer=ZERO_ADDRESS,
            repayment_chain_id=0,
            relay_execution_info=RelayExecutionInfo(
                updated_recipient=relay_data.recipient,
                updated_message=relay_data.message,
                updated_output_amount=leaf.updated_output_amount,
                fill_type=FillType.SLOW_FILL,
            ),
            block_number=leaf.block_number,
            transaction_index=leaf.transaction_index,
        )
        return self.fill(fill)

    def execute_relayer_refund_leaf(self, refund: RelayerRefundExecution) -> SyntheticEvent:
        """
        Synthesize an ExecutedRelayerRefundRoot event.

        Raises:
            ValueError: If the refund names another chain, or its refund
                addresses and amounts differ in length
        """
        chain_id = refund.chain_id if refund.chain_id is not None else self.chain_id
        if chain_id != self.chain_id:
            raise ValueError(f"Refund chain ID {chain_id} does not match client chain ID {self.chain_id}")
        if len(refund.refund_addresses) != len(refund.refund_amounts):
            raise ValueError(
                f"Refund leaf {refund.leaf_id} has {len(refund.refund_addresses)} addresses "
                f"but {len(refund.refund_amounts)} amounts"
            )

        topics = [chain_id, refund.root_bundle_id, refund.leaf_id]
        args = {
            "chainId": chain_id,
            "rootBundleId": refund.root_bundle_id,
            "leafId": refund.leaf_id,
            "amountToReturn": refund.amount_to_return,
            "l2TokenAddress": refund.l2_token_address,
            "refundAddresses": list(refund.refund_addresses),
            "refundAmounts": list(refund.refund_amounts),
        }
        return self._generate(
            EXECUTED_RELAYER_REFUND_ROOT, topics, args, refund.block_number, refund.transaction_index
        )

    def set_enable_route(
        self,
        origin_token: str,
        destination_chain_id: int,
        enabled: bool,
        block_number: int | None = None,
    ) -> SyntheticEvent:
        """Synthesize an EnabledDepositRoute event."""
        topics = [origin_token, destination_chain_id]
        args = {"originToken": origin_token, "destinationChainId": destination_chain_id, "enabled": enabled}
        return self._generate(ENABLED_DEPOSIT_ROUTE, topics, args, block_number)

    def _generate(
        self,
        event_type: str,
        topics: list[Any],
        args: dict[str, Any],
        block_number: int | None = None,
        transaction_index: int | None = None,
    ) -> SyntheticEvent:
        return self.event_manager.generate_event(
            event_type=event_type,
            address=self.spoke_pool_address,
            topics=topics,
            args=args,
            block_number=block_number,
            transaction_index=transaction_index,
        )
