"""
Spoke pool simulator package.

Deterministic, injectable event source that stands in for an on-chain spoke
pool so bridge relay clients can be tested without a live chain.
"""

from .config import EventSearchConfig, MockClientConfig
from .event_manager import EventManager
from .mock_spoke_pool_client import MockSpokePoolClient
from .models import (
    ZERO_ADDRESS,
    Deposit,
    Fill,
    FillType,
    RelayData,
    RelayExecutionInfo,
    RelayerRefundExecution,
    SlowFillLeaf,
    SlowFillRequest,
    SpeedUp,
    SpokePoolUpdate,
    SyntheticEvent,
)
from .overrides import ClientOverrides
from .spoke_pool_client import SPOKE_POOL_EVENTS, SpokePoolClient

__all__ = [
    "ClientOverrides",
    "Deposit",
    "EventManager",
    "EventSearchConfig",
    "Fill",
    "FillType",
    "MockClientConfig",
    "MockSpokePoolClient",
    "RelayData",
    "RelayExecutionInfo",
    "RelayerRefundExecution",
    "SPOKE_POOL_EVENTS",
    "SlowFillLeaf",
    "SlowFillRequest",
    "SpeedUp",
    "SpokePoolClient",
    "SpokePoolUpdate",
    "SyntheticEvent",
    "ZERO_ADDRESS",
]
__version__ = "0.1.0"
