"""
Seedable randomness for fields a test leaves unconstrained.
"""

import random

from web3 import Web3


class RandomSource:
    """Wraps ``random.Random`` so every random default can be reproduced from a seed."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def integer(self, low: int, high: int) -> int:
        """Random integer in ``[low, high]``."""
        return self._rng.randint(low, high)

    def address(self) -> str:
        """Random checksummed 20-byte address."""
        return Web3.to_checksum_address("0x" + self._rng.randbytes(20).hex())

    def token_amount(self, low: int = 1, high: int = 1000) -> int:
        """Random whole-token amount, in wei."""
        return Web3.to_wei(self.integer(low, high), "ether")

    def hash(self) -> str:
        return "0x" + self._rng.randbytes(32).hex()
