"""
Per-client override state for the simulated spoke pool.

Each override is optional and independent. When set, it replaces the value a
client would otherwise derive from chain state.
"""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class ClientOverrides:
    """Overrides owned by a single client instance.

    Attributes:
        realized_lp_fee_pct: Fixed realized LP fee (1e18 fixed point), None when inactive
        destination_tokens: Destination token keyed by deposit origin chain id
        deposit_id_at_block: numberOfDeposits() value at each block tag
    """
    realized_lp_fee_pct: int | None = None
    destination_tokens: dict[int, str] = field(default_factory=dict)
    deposit_id_at_block: list[int] = field(default_factory=list)

    def set_deposit_ids(self, deposit_ids: list[int]) -> None:
        """
        Replace the deposit id table.

        Raises:
            ValueError: If any id is lower than the one before it. The table
                is left empty in that case.
        """
        self.deposit_id_at_block = []
        for block_tag, deposit_id in enumerate(deposit_ids):
            if block_tag > 0 and deposit_id < deposit_ids[block_tag - 1]:
                raise ValueError(
                    f"Deposit ID {deposit_id} at block tag {block_tag} must be equal to or "
                    f"greater than previous ({deposit_ids[block_tag - 1]})"
                )
        self.deposit_id_at_block = list(deposit_ids)
        logger.debug(f"Deposit id table set for {len(deposit_ids)} block tags")

    def deposit_id_at(self, block_tag: int) -> int | None:
        if 0 <= block_tag < len(self.deposit_id_at_block):
            return self.deposit_id_at_block[block_tag]
        return None

    def clear(self) -> None:
        """Drop every override."""
        self.realized_lp_fee_pct = None
        self.destination_tokens.clear()
        self.deposit_id_at_block = []
