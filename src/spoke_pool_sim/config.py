"""Configuration management for simulated spoke pool clients.

This module provides type-safe configuration dataclasses with validation.
Configuration can be built directly in test setup or loaded from environment
variables with sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EventSearchConfig:
    """Block range a client searches for events.

    Attributes:
        from_block: First block to search
        to_block: Last block to search; None follows the chain head
        max_block_look_back: Maximum block range per query (0 means unbounded)
    """

    from_block: int = 0
    to_block: int | None = None
    max_block_look_back: int = 0

    def __post_init__(self) -> None:
        """Validate the search range."""
        if self.from_block < 0:
            raise ValueError(f"from_block must be non-negative, got {self.from_block}")
        if self.to_block is not None and self.to_block < self.from_block:
            raise ValueError(
                f"to_block ({self.to_block}) must not be lower than from_block ({self.from_block})"
            )
        if self.max_block_look_back < 0:
            raise ValueError(
                f"max_block_look_back must be non-negative, got {self.max_block_look_back}"
            )


@dataclass(frozen=True, slots=True)
class MockClientConfig:
    """Configuration of one simulated spoke pool client.

    Attributes:
        chain_id: Chain the spoke pool is deployed on
        spoke_pool_address: Checksummed spoke pool contract address
        deployment_block: Block the spoke pool was deployed at
        seed: Seed for randomized defaults (None for a fresh seed)
        event_search_config: Block range used when reporting updates
    """

    chain_id: int
    spoke_pool_address: str
    deployment_block: int = 0
    seed: int | None = None
    event_search_config: EventSearchConfig = field(default_factory=EventSearchConfig)

    def __post_init__(self) -> None:
        """Validate client configuration."""
        if self.chain_id <= 0:
            raise ValueError(f"Chain ID must be positive, got {self.chain_id}")

        if self.deployment_block < 0:
            raise ValueError(
                f"Deployment block must be non-negative, got {self.deployment_block}"
            )

        if not self.spoke_pool_address:
            raise ValueError("Spoke pool address is required (SPOKE_POOL_ADDRESS)")

        if not Web3.is_address(self.spoke_pool_address):
            raise ValueError(f"Invalid spoke pool address: {self.spoke_pool_address}")

        checksummed = Web3.to_checksum_address(self.spoke_pool_address)
        if checksummed != self.spoke_pool_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'spoke_pool_address', checksummed)

    @classmethod
    def from_env(cls) -> "MockClientConfig":
        """
        Load configuration from environment variables.

        Returns:
            MockClientConfig: Validated configuration

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        chain_id = os.environ.get("SPOKE_POOL_CHAIN_ID")
        if not chain_id:
            raise ValueError(
                "SPOKE_POOL_CHAIN_ID environment variable is required. "
                "Example: 10"
            )

        spoke_pool_address = os.environ.get("SPOKE_POOL_ADDRESS", "")

        deployment_block = os.environ.get("SPOKE_POOL_DEPLOYMENT_BLOCK", "0")
        seed = os.environ.get("SPOKE_POOL_SEED")
        to_block = os.environ.get("SPOKE_POOL_TO_BLOCK")

        try:
            event_search_config = EventSearchConfig(
                from_block=int(deployment_block),
                to_block=int(to_block) if to_block else None,
            )
            return cls(
                chain_id=int(chain_id),
                spoke_pool_address=spoke_pool_address,
                deployment_block=int(deployment_block),
                seed=int(seed) if seed else None,
                event_search_config=event_search_config,
            )
        except ValueError as e:
            logger.error(f"Invalid spoke pool configuration: {e}")
            raise

    def log_config(self) -> None:
        """Log configuration settings."""
        logger.info("=== Spoke Pool Client Configuration ===")
        logger.info(f"  Chain ID: {self.chain_id}")
        logger.info(f"  SpokePool: {self.spoke_pool_address}")
        logger.info(f"  Deployment Block: {self.deployment_block}")
        logger.info(f"  Seed: {self.seed if self.seed is not None else '[RANDOM]'}")
        logger.info(
            f"  Search Range: {self.event_search_config.from_block} -> "
            f"{self.event_search_config.to_block or 'latest'}"
        )
