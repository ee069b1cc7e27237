"""
Shared fixtures: deterministic keys, funded pools and a signed-transaction
builder.
"""

import pytest

from epochledger.core.transaction import Transaction, TxOutput
from epochledger.core.utxo import UTXOPool

from helpers import make_key, seed_utxo


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def alice():
    return make_key(1)


@pytest.fixture(scope="session")
def bob():
    return make_key(2)


@pytest.fixture(scope="session")
def carol():
    return make_key(3)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

@pytest.fixture
def make_pool():
    """
    Build a pool from ``[(value, owner_private_key), ...]``.

    Returns ``(pool, utxos)`` where ``utxos[i]`` holds the i-th entry.
    """
    def _make(entries):
        pool = UTXOPool()
        utxos = []
        for i, (value, owner) in enumerate(entries):
            utxo = seed_utxo(f"seed-{i}")
            pool.add(utxo, TxOutput(value, owner.public_key))
            utxos.append(utxo)
        return pool, utxos
    return _make


@pytest.fixture
def build_tx():
    """
    Build a signed transaction.

    ``spends`` is a list of ``(utxo, signer)``; a signer of None leaves the
    input unsigned. ``outputs`` is a list of ``(value, recipient_key)``
    where the recipient is a PrivateKey (its public key is used).
    """
    def _build(spends, outputs):
        tx = Transaction()
        for utxo, _ in spends:
            tx.add_input(utxo.tx_hash, utxo.index)
        for value, recipient in outputs:
            tx.add_output(value, recipient.public_key)
        for i, (_, signer) in enumerate(spends):
            if signer is not None:
                tx.sign_input(i, signer)
        return tx
    return _build
