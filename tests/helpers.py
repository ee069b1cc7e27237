"""
Plain helpers shared by the test modules and fixtures.
"""

from epochledger.core.utxo import UTXO
from epochledger.crypto.hash import double_sha256
from epochledger.crypto.keys import PrivateKey


def make_key(seed: int) -> PrivateKey:
    """A private key from a repeated seed byte, for reproducible tests."""
    return PrivateKey(bytes([seed]) * 32)


def seed_utxo(label: str, index: int = 0) -> UTXO:
    """A UTXO whose producing transaction hash is derived from ``label``."""
    return UTXO(double_sha256(label.encode()), index)
