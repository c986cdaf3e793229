"""
Spoke pool client state and update contract.

This module holds the client that turns update snapshots into queryable
deposit, fill, speed-up, slow fill, refund and route state. Fetching those
snapshots from a live chain is not provided here; a snapshot source such as
the mock client produces them and hands them to ``apply_update``.
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Optional

from web3 import Web3

from .config import EventSearchConfig
from .models import (
    ZERO_ADDRESS,
    Deposit,
    DepositRoute,
    Fill,
    RealizedLpFee,
    RelayerRefundExecution,
    SlowFillRequest,
    SpeedUp,
    SpokePoolUpdate,
    SyntheticEvent,
)

if TYPE_CHECKING:
    from .mock_spoke_pool_client import MockSpokePoolClient

logger = logging.getLogger(__name__)

FUNDS_DEPOSITED = "FundsDeposited"
FILLED_RELAY = "FilledRelay"
REQUESTED_SPEED_UP_DEPOSIT = "RequestedSpeedUpDeposit"
REQUESTED_SLOW_FILL = "RequestedSlowFill"
EXECUTED_RELAYER_REFUND_ROOT = "ExecutedRelayerRefundRoot"
ENABLED_DEPOSIT_ROUTE = "EnabledDepositRoute"

SPOKE_POOL_EVENTS: tuple[str, ...] = (
    FUNDS_DEPOSITED,
    FILLED_RELAY,
    REQUESTED_SPEED_UP_DEPOSIT,
    REQUESTED_SLOW_FILL,
    EXECUTED_RELAYER_REFUND_ROOT,
    ENABLED_DEPOSIT_ROUTE,
)


class SpokePoolClient:
    """Tracks the state of one spoke pool as reported by update snapshots."""

    def __init__(
        self,
        chain_id: int,
        spoke_pool_address: str,
        deployment_block: int = 0,
        hub_pool_client: Any = None,
        event_search_config: EventSearchConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            chain_id: Chain the spoke pool is deployed on
            spoke_pool_address: Spoke pool contract address
            deployment_block: Block the spoke pool was deployed at
            hub_pool_client: Collaborator providing realized LP fees and
                destination token resolution (optional)
            event_search_config: Block range searched by updates
        """
        self.chain_id = chain_id
        self.spoke_pool_address = Web3.to_checksum_address(spoke_pool_address)
        self.deployment_block = deployment_block
        self.hub_pool_client = hub_pool_client
        self.event_search_config = event_search_config or EventSearchConfig(from_block=deployment_block)

        self.latest_block_searched = deployment_block
        self.latest_deposit_id_queried = 0
        self.first_deposit_id_for_spoke_pool = 0
        self.current_time = 0
        self.is_updated = False

        self.deposits: dict[int, Deposit] = {}
        self.fills: dict[int, list[Fill]] = {}
        self.speed_ups: dict[str, dict[int, list[SpeedUp]]] = {}
        self.slow_fill_requests: dict[tuple[int, int], SlowFillRequest] = {}
        self.relayer_refund_executions: list[RelayerRefundExecution] = []
        self.deposit_routes: dict[tuple[str, int], DepositRoute] = {}

        # Logs seen by earlier updates, keyed by (transaction hash, log index).
        # Event sources replay their full history, so this grows with the source.
        self.processed_events: set[tuple[str, int]] = set()

    @property
    def can_compute_fees(self) -> bool:
        return self.hub_pool_client is not None

    async def compute_realized_lp_fee_pct(self, deposit: Deposit) -> RealizedLpFee:
        """Quote the realized LP fee for a deposit via the hub pool client."""
        if self.hub_pool_client is None:
            raise ValueError(
                f"Cannot compute realized LP fee for deposit {deposit.deposit_id}: no hub pool client"
            )
        return await self.hub_pool_client.compute_realized_lp_fee_pct(deposit)

    async def batch_compute_realized_lp_fee_pct(self, deposits: list[Deposit]) -> list[RealizedLpFee]:
        """Quote realized LP fees for several deposits via the hub pool client."""
        if self.hub_pool_client is None:
            raise ValueError(
                f"Cannot compute realized LP fees for {len(deposits)} deposits: no hub pool client"
            )
        return await self.hub_pool_client.batch_compute_realized_lp_fee_pct(deposits)

    def get_destination_token_for_deposit(self, deposit: Deposit) -> str:
        """Resolve the token a deposit should be filled with on its destination chain."""
        if self.hub_pool_client is None:
            raise ValueError(
                f"Cannot resolve destination token for deposit {deposit.deposit_id}: no hub pool client"
            )
        return self.hub_pool_client.get_l2_token_for_deposit(deposit)

    async def apply_update(
        self,
        update: SpokePoolUpdate,
        events_to_query: list[str],
        pricing: Optional["SpokePoolClient | MockSpokePoolClient"] = None,
    ) -> None:
        """
        Fold an update snapshot into client state.

        Events already seen by an earlier update are skipped, so re-reading an
        unchanged event source is harmless.

        Args:
            update: Snapshot to ingest
            events_to_query: Event type names, aligned with ``update.events``
            pricing: Object used for fee and destination token lookups
                (defaults to this client)
        """
        if not update.success:
            logger.warning(f"Skipping unsuccessful update for chain {self.chain_id}")
            return

        pricing = pricing or self

        # Deposits are marked processed only after enrichment succeeds.
        deposit_events = [
            event for event in update.events_for(events_to_query, FUNDS_DEPOSITED)
            if event.unique_key not in self.processed_events
        ]
        new_deposits = [Deposit.from_event(event) for event in deposit_events]
        if new_deposits:
            new_deposits = await self._enrich_deposits(new_deposits, pricing)
        for event, deposit in zip(deposit_events, new_deposits):
            self._mark_processed(event)
            self.deposits[deposit.deposit_id] = deposit

        for event in update.events_for(events_to_query, REQUESTED_SPEED_UP_DEPOSIT):
            if self._mark_processed(event):
                speed_up = SpeedUp.from_event(event, origin_chain_id=self.chain_id)
                by_deposit = self.speed_ups.setdefault(Web3.to_checksum_address(speed_up.depositor), {})
                by_deposit.setdefault(speed_up.deposit_id, []).append(speed_up)

        for event in update.events_for(events_to_query, FILLED_RELAY):
            if self._mark_processed(event):
                fill = Fill.from_event(event)
                self.fills.setdefault(fill.origin_chain_id, []).append(fill)

        for event in update.events_for(events_to_query, REQUESTED_SLOW_FILL):
            if self._mark_processed(event):
                request = SlowFillRequest.from_event(event)
                self.slow_fill_requests.setdefault(request.key, request)

        for event in update.events_for(events_to_query, EXECUTED_RELAYER_REFUND_ROOT):
            if self._mark_processed(event):
                self.relayer_refund_executions.append(RelayerRefundExecution.from_event(event))

        for event in update.events_for(events_to_query, ENABLED_DEPOSIT_ROUTE):
            if self._mark_processed(event):
                route = DepositRoute.from_event(event)
                self.deposit_routes[(route.origin_token, route.destination_chain_id)] = route

        self._apply_speed_ups()

        self.latest_block_searched = update.search_end_block
        self.latest_deposit_id_queried = update.latest_deposit_id
        self.first_deposit_id_for_spoke_pool = update.first_deposit_id
        self.current_time = update.current_time
        self.is_updated = True

        logger.info(
            f"Chain {self.chain_id} updated to block {self.latest_block_searched}: "
            f"{len(new_deposits)} new deposits, latest deposit id {self.latest_deposit_id_queried}"
        )

    async def _enrich_deposits(self, deposits: list[Deposit], pricing: Any) -> list[Deposit]:
        if pricing.can_compute_fees:
            fees = await pricing.batch_compute_realized_lp_fee_pct(deposits)
            deposits = [
                replace(deposit, realized_lp_fee_pct=fee.realized_lp_fee_pct, quote_block_number=fee.quote_block)
                for deposit, fee in zip(deposits, fees)
            ]

        enriched = []
        for deposit in deposits:
            if deposit.output_token == ZERO_ADDRESS:
                try:
                    deposit = replace(deposit, output_token=pricing.get_destination_token_for_deposit(deposit))
                except ValueError as e:
                    logger.debug(f"Leaving output token unresolved: {e}")
            enriched.append(deposit)
        return enriched

    def _apply_speed_ups(self) -> None:
        """Attach the lowest-output speed-up to each deposit it improves on."""
        for depositor, by_deposit in self.speed_ups.items():
            for deposit_id, speed_ups in by_deposit.items():
                deposit = self.deposits.get(deposit_id)
                if deposit is None or Web3.to_checksum_address(deposit.depositor) != depositor:
                    continue
                best = min(speed_ups, key=lambda speed_up: speed_up.updated_output_amount)
                if best.updated_output_amount >= deposit.output_amount:
                    continue
                self.deposits[deposit_id] = replace(
                    deposit,
                    updated_recipient=best.updated_recipient,
                    updated_output_amount=best.updated_output_amount,
                    updated_message=best.updated_message,
                    speed_up_signature=best.depositor_signature,
                )

    def _mark_processed(self, event: SyntheticEvent) -> bool:
        """
        Record an event as processed.

        Returns:
            False if the event was seen before, True otherwise
        """
        event_key = event.unique_key
        if event_key in self.processed_events:
            return False
        self.processed_events.add(event_key)
        return True

    def get_deposits(self) -> list[Deposit]:
        return sorted(self.deposits.values(), key=lambda deposit: deposit.deposit_id)

    def get_deposit(self, deposit_id: int) -> Deposit | None:
        return self.deposits.get(deposit_id)

    def get_deposits_for_destination_chain(self, destination_chain_id: int) -> list[Deposit]:
        return [
            deposit for deposit in self.get_deposits()
            if deposit.destination_chain_id == destination_chain_id
        ]

    def get_fills(self) -> list[Fill]:
        return [fill for fills in self.fills.values() for fill in fills]

    def get_fills_for_origin_chain(self, origin_chain_id: int) -> list[Fill]:
        return list(self.fills.get(origin_chain_id, []))

    def get_speed_ups(self, depositor: str, deposit_id: int) -> list[SpeedUp]:
        by_deposit = self.speed_ups.get(Web3.to_checksum_address(depositor), {})
        return list(by_deposit.get(deposit_id, []))

    def get_slow_fill_requests(self) -> list[SlowFillRequest]:
        return list(self.slow_fill_requests.values())

    def get_relayer_refund_executions(self) -> list[RelayerRefundExecution]:
        return list(self.relayer_refund_executions)

    def is_deposit_route_enabled(self, origin_token: str, destination_chain_id: int) -> bool:
        route = self.deposit_routes.get((origin_token, destination_chain_id))
        return route.enabled if route else False

    def get_stats(self) -> dict:
        """
        Get current client statistics.

        Returns:
            Dictionary with current state metrics
        """
        return {
            'deposits': len(self.deposits),
            'fills': sum(len(fills) for fills in self.fills.values()),
            'slow_fill_requests': len(self.slow_fill_requests),
            'relayer_refund_executions': len(self.relayer_refund_executions),
            'deposit_routes': len(self.deposit_routes),
            'latest_block_searched': self.latest_block_searched,
            'latest_deposit_id_queried': self.latest_deposit_id_queried,
        }
