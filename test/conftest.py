"""Shared fixtures for the spoke pool simulator tests."""

import pytest

from spoke_pool_sim.mock_spoke_pool_client import MockSpokePoolClient
from spoke_pool_sim.spoke_pool_client import SpokePoolClient
from spoke_pool_sim.utils.clock import FixedClock
from spoke_pool_sim.utils.random_source import RandomSource

CHAIN_ID = 10
DEPLOYMENT_BLOCK = 100
SPOKE_POOL_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb7"
NOW = 1_700_000_000


@pytest.fixture
def clock():
    """Clock pinned to a known timestamp."""
    return FixedClock(NOW)


@pytest.fixture
def spoke_pool_client():
    """Wrapped client without a hub pool collaborator."""
    return SpokePoolClient(
        chain_id=CHAIN_ID,
        spoke_pool_address=SPOKE_POOL_ADDRESS,
        deployment_block=DEPLOYMENT_BLOCK,
    )


@pytest.fixture
def mock_client(spoke_pool_client, clock):
    """Seeded mock client around the wrapped client."""
    return MockSpokePoolClient(
        spoke_pool_client,
        clock=clock,
        random_source=RandomSource(seed=1234),
    )
