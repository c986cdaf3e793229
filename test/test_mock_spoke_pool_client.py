"""Unit tests for MockSpokePoolClient event synthesis."""

import pytest
from web3 import Web3

from conftest import CHAIN_ID, DEPLOYMENT_BLOCK, NOW
from spoke_pool_sim.config import MockClientConfig
from spoke_pool_sim.mock_spoke_pool_client import MockSpokePoolClient
from spoke_pool_sim.models import (
    ZERO_ADDRESS,
    Deposit,
    Fill,
    FillType,
    RelayData,
    RelayerRefundExecution,
    RelayExecutionInfo,
    SlowFillLeaf,
    SlowFillRequest,
    SpeedUp,
)
from spoke_pool_sim.utils.clock import FixedClock

DEPOSITOR = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
RECIPIENT = "0x9f983F759d511D0f404582b0bdc1994edb5db856"
TOKEN = "0x1f54b7AF3A462aABed01D5910a3e5911e76D4B51"


def make_relay_data(deposit_id: int = 7) -> RelayData:
    return RelayData(
        depositor=DEPOSITOR,
        recipient=RECIPIENT,
        input_token=TOKEN,
        input_amount=1_000,
        output_token=TOKEN,
        output_amount=990,
        origin_chain_id=1,
        deposit_id=deposit_id,
        fill_deadline=NOW + 3600,
        exclusivity_deadline=NOW + 600,
        message="0x",
    )


class TestDepositSynthesis:
    """Tests for deposit()."""

    def test_sequential_deposit_ids(self, mock_client):
        """Deposits without ids are numbered 0, 1, 2, ... in call order."""
        events = [mock_client.deposit() for _ in range(5)]

        assert [event.args["depositId"] for event in events] == [0, 1, 2, 3, 4]
        assert mock_client.number_of_deposits == 5

    def test_explicit_deposit_id_advances_counter(self, mock_client):
        """An explicit id at or above the counter is accepted and moves the counter past it."""
        mock_client.deposit()
        event = mock_client.deposit(Deposit(deposit_id=10))

        assert event.args["depositId"] == 10
        assert mock_client.number_of_deposits == 11
        assert mock_client.deposit().args["depositId"] == 11

    def test_explicit_deposit_id_below_counter_fails(self, mock_client):
        """An explicit id lower than the counter raises and stores nothing."""
        mock_client.deposit()
        mock_client.deposit()
        stored_before = mock_client.event_manager.get_events()

        with pytest.raises(ValueError, match="Deposit ID 1 is lower than the number of deposits \\(2\\)"):
            mock_client.deposit(Deposit(deposit_id=1))

        assert mock_client.event_manager.get_events() == stored_before
        assert mock_client.number_of_deposits == 2

    def test_output_amount_defaults_to_relay_fee_discount(self, mock_client):
        """Output amount defaults to 95% of the input amount."""
        event = mock_client.deposit(Deposit(input_amount=1000))

        assert event.args["inputAmount"] == 1000
        assert event.args["outputAmount"] == 950

    def test_random_input_amount_is_discounted(self, mock_client):
        """The discount also applies to randomized whole-token input amounts."""
        event = mock_client.deposit()

        input_amount = event.args["inputAmount"]
        assert input_amount % Web3.to_wei(1, "ether") == 0
        assert 1 <= Web3.from_wei(input_amount, "ether") <= 1000
        assert event.args["outputAmount"] == input_amount * 95 // 100

    def test_timing_defaults(self, mock_client):
        """Deadlines are derived from the quote timestamp."""
        event = mock_client.deposit()

        assert event.args["quoteTimestamp"] == NOW
        assert event.args["fillDeadline"] == NOW + 3600
        assert event.args["exclusivityDeadline"] == NOW + 600
        assert event.args["exclusiveRelayer"] == ZERO_ADDRESS

        quoted = mock_client.deposit(Deposit(quote_timestamp=5_000))
        assert quoted.args["fillDeadline"] == 8_600
        assert quoted.args["exclusivityDeadline"] == 5_600

    def test_address_and_chain_defaults(self, mock_client):
        """Unset addresses and chains default to plausible values."""
        event = mock_client.deposit()
        args = event.args

        assert args["originChainId"] == CHAIN_ID
        assert 1 <= args["destinationChainId"] <= 42161
        assert Web3.is_checksum_address(args["depositor"])
        assert Web3.is_checksum_address(args["inputToken"])
        assert args["recipient"] == args["depositor"]
        assert args["outputToken"] == args["inputToken"]

    def test_caller_fields_preserved(self, mock_client):
        """Fields set by the caller are stored verbatim."""
        deposit = Deposit(
            destination_chain_id=137,
            depositor=DEPOSITOR,
            recipient=RECIPIENT,
            input_token=TOKEN,
            input_amount=5_000,
            output_token=ZERO_ADDRESS,
            output_amount=4_000,
            quote_timestamp=1_234,
            fill_deadline=9_999,
            exclusivity_deadline=2_000,
            exclusive_relayer=RECIPIENT,
            message="0xabcdef",
        )
        args = mock_client.deposit(deposit).args

        assert args["destinationChainId"] == 137
        assert args["depositor"] == DEPOSITOR
        assert args["recipient"] == RECIPIENT
        assert args["inputToken"] == TOKEN
        assert args["outputToken"] == ZERO_ADDRESS
        assert args["outputAmount"] == 4_000
        assert args["fillDeadline"] == 9_999
        assert args["exclusivityDeadline"] == 2_000
        assert args["exclusiveRelayer"] == RECIPIENT
        assert args["message"] == "0xabcdef"

    def test_default_message_names_position(self, mock_client):
        """The placeholder message embeds the block number and transaction index."""
        event = mock_client.deposit(Deposit(block_number=500, transaction_index=3))

        assert event.block_number == 500
        assert event.transaction_index == 3
        assert event.args["message"] == "FundsDeposited event at block 500, index 3."

        auto = mock_client.deposit()
        assert auto.args["message"] == (
            f"FundsDeposited event at block {auto.block_number}, index {auto.transaction_index}."
        )

    def test_deposit_topics(self, mock_client):
        """Indexed fields are destination chain, deposit id and depositor."""
        event = mock_client.deposit(Deposit(destination_chain_id=137, depositor=DEPOSITOR))

        assert event.event_type == "FundsDeposited"
        assert event.address == mock_client.spoke_pool_address
        assert event.topics[1:] == ("137", "0", DEPOSITOR)

    def test_first_event_follows_deployment_block(self, mock_client):
        """Synthesized events start after the deployment block."""
        assert mock_client.deposit().block_number == DEPLOYMENT_BLOCK + 1


class TestFillSynthesis:
    """Tests for fill() and execute_slow_relay_leaf()."""

    def test_fill_defaults(self, mock_client):
        """Unset fill fields are derived from the rest of the fill."""
        event = mock_client.fill(Fill(origin_chain_id=1, deposit_id=3, input_amount=2_000))
        args = event.args

        assert args["outputAmount"] == 2_000
        assert args["fillDeadline"] == NOW + 60
        assert args["exclusivityDeadline"] == NOW + 60
        assert args["repaymentChainId"] == CHAIN_ID
        assert args["destinationChainId"] == CHAIN_ID
        assert args["outputToken"] == ZERO_ADDRESS
        assert args["exclusiveRelayer"] == ZERO_ADDRESS
        assert Web3.is_checksum_address(args["relayer"])

    def test_fill_type_defaults_to_fast_fill(self, mock_client):
        """A fill for a deposit without an explicit fill type is a fast fill."""
        deposit = mock_client.deposit(Deposit(input_amount=1000))
        event = mock_client.fill(Fill(
            origin_chain_id=deposit.args["originChainId"],
            deposit_id=deposit.args["depositId"],
        ))

        assert event.args["relayExecutionInfo"]["fillType"] == FillType.FAST_FILL

    def test_relay_execution_info_defaults_from_fill(self, mock_client):
        """Updated recipient, message and output amount default to the fill's values."""
        args = mock_client.fill(Fill(recipient=RECIPIENT, output_amount=777, message="0x01")).args
        info = args["relayExecutionInfo"]

        assert info["updatedRecipient"] == RECIPIENT
        assert info["updatedMessage"] == "0x01"
        assert info["updatedOutputAmount"] == 777

    def test_relay_execution_info_preserved(self, mock_client):
        """Explicit relay execution info is kept."""
        fill = Fill(relay_execution_info=RelayExecutionInfo(
            updated_recipient=DEPOSITOR,
            updated_output_amount=1,
            fill_type=FillType.REPLACED_SLOW_FILL,
        ))
        info = mock_client.fill(fill).args["relayExecutionInfo"]

        assert info["updatedRecipient"] == DEPOSITOR
        assert info["updatedOutputAmount"] == 1
        assert info["fillType"] == FillType.REPLACED_SLOW_FILL

    def test_fill_topics(self, mock_client):
        """Indexed fields are origin chain, deposit id and relayer."""
        event = mock_client.fill(Fill(origin_chain_id=1, deposit_id=3, relayer=RECIPIENT))

        assert event.event_type == "FilledRelay"
        assert event.topics[1:] == ("1", "3", RECIPIENT)

    def test_slow_relay_leaf_produces_slow_fill(self, mock_client):
        """Executing a slow relay leaf emits a slow fill with no relayer."""
        leaf = SlowFillLeaf(
            relay_data=make_relay_data(deposit_id=7),
            chain_id=CHAIN_ID,
            updated_output_amount=980,
            root_bundle_id=4,
            proof=("0x" + "ab" * 32,),
        )
        event = mock_client.execute_slow_relay_leaf(leaf)
        args = event.args

        assert event.event_type == "FilledRelay"
        assert args["relayer"] == ZERO_ADDRESS
        assert args["repaymentChainId"] == 0
        assert args["destinationChainId"] == CHAIN_ID
        assert args["depositId"] == 7
        assert args["outputAmount"] == 990
        assert args["relayExecutionInfo"]["fillType"] == FillType.SLOW_FILL
        assert args["relayExecutionInfo"]["updatedOutputAmount"] == 980
        assert args["relayExecutionInfo"]["updatedRecipient"] == RECIPIENT
        assert "rootBundleId" not in args
        assert "proof" not in args


class TestOtherEvents:
    """Tests for speed-ups, slow fill requests, refunds and routes."""

    def test_speed_up_passthrough(self, mock_client):
        """Speed-ups are stored as given with deposit id and depositor indexed."""
        speed_up = SpeedUp(
            depositor=DEPOSITOR,
            deposit_id=4,
            updated_recipient=RECIPIENT,
            updated_output_amount=900,
            depositor_signature="0x1234",
        )
        event = mock_client.speed_up(speed_up)

        assert event.event_type == "RequestedSpeedUpDeposit"
        assert event.topics[1:] == ("4", DEPOSITOR)
        assert event.args["updatedOutputAmount"] == 900
        assert event.args["depositorSignature"] == "0x1234"

    def test_slow_fill_request(self, mock_client):
        """Slow fill requests index origin chain and deposit id."""
        request = SlowFillRequest(relay_data=make_relay_data(deposit_id=9), block_number=300)
        event = mock_client.request_slow_fill(request)

        assert event.event_type == "RequestedSlowFill"
        assert event.topics[1:] == ("1", "9")
        assert event.block_number == 300
        assert event.args["depositId"] == 9
        assert event.args["outputAmount"] == 990

    def test_refund_leaf_defaults_to_client_chain(self, mock_client):
        """Refund leaves default to the client's chain."""
        refund = RelayerRefundExecution(
            root_bundle_id=2,
            leaf_id=5,
            l2_token_address=TOKEN,
            refund_addresses=(DEPOSITOR, RECIPIENT),
            refund_amounts=(100, 200),
            amount_to_return=50,
        )
        event = mock_client.execute_relayer_refund_leaf(refund)

        assert event.event_type == "ExecutedRelayerRefundRoot"
        assert event.topics[1:] == (str(CHAIN_ID), "2", "5")
        assert event.args["chainId"] == CHAIN_ID
        assert event.args["refundAddresses"] == (DEPOSITOR, RECIPIENT)
        assert event.args["refundAmounts"] == (100, 200)
        assert event.args["amountToReturn"] == 50

    def test_refund_leaf_for_other_chain_fails(self, mock_client):
        """A refund leaf naming another chain is rejected."""
        refund = RelayerRefundExecution(root_bundle_id=1, leaf_id=0, l2_token_address=TOKEN, chain_id=137)

        with pytest.raises(ValueError, match="Refund chain ID 137 does not match client chain ID 10"):
            mock_client.execute_relayer_refund_leaf(refund)
        assert mock_client.event_manager.get_events() == []

    def test_refund_leaf_with_mismatched_arrays_fails(self, mock_client):
        """Refund addresses and amounts must pair up."""
        refund = RelayerRefundExecution(
            root_bundle_id=1,
            leaf_id=0,
            l2_token_address=TOKEN,
            refund_addresses=(DEPOSITOR,),
            refund_amounts=(1, 2),
        )

        with pytest.raises(ValueError, match="1 addresses but 2 amounts"):
            mock_client.execute_relayer_refund_leaf(refund)
        assert mock_client.event_manager.get_events() == []

    def test_enable_route(self, mock_client):
        """Route enablement indexes origin token and destination chain."""
        event = mock_client.set_enable_route(TOKEN, 137, True, block_number=400)

        assert event.event_type == "EnabledDepositRoute"
        assert event.topics[1:] == (TOKEN, "137")
        assert dict(event.args) == {"originToken": TOKEN, "destinationChainId": 137, "enabled": True}
        assert event.block_number == 400


class TestDeterminism:
    """Seeded random sources make synthesis reproducible."""

    def test_same_seed_same_defaults(self):
        config = MockClientConfig(
            chain_id=CHAIN_ID,
            spoke_pool_address="0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb7",
            seed=99,
        )
        first = MockSpokePoolClient.from_config(config, clock=FixedClock(NOW)).deposit()
        second = MockSpokePoolClient.from_config(config, clock=FixedClock(NOW)).deposit()

        for key in ("destinationChainId", "depositor", "inputToken", "inputAmount", "outputAmount"):
            assert first.args[key] == second.args[key]
