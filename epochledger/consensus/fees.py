"""
Transaction Fees
================

The fee of a transaction is the value it consumes minus the value it
creates::

    fee = sum(pool[input].value for input in tx.inputs) - sum(tx.outputs)

Input values live in the pool, so a fee is only defined relative to a pool
state. Rankings must only use fees of transactions that are valid against
that state; :func:`compute_fee` refuses to guess for unresolvable inputs.

:class:`FeeCache` memoizes fees keyed by ``(tx.hash, pool.version)``. The
version stamp changes on every pool mutation and differs between a pool and
its copies, so a fee computed before the pool advanced is never returned
for the advanced pool.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from epochledger.core.transaction import Transaction
    from epochledger.core.utxo import UTXOPool

logger = logging.getLogger(__name__)


def sum_inputs(tx: "Transaction", pool: "UTXOPool") -> int:
    """
    Total value of the outputs ``tx`` spends.

    Raises:
        UTXONotFoundError: If an input refers to a UTXO not in ``pool``.
    """
    return sum(pool.get(txin.utxo).value for txin in tx.inputs)


def sum_outputs(tx: "Transaction") -> int:
    """Total value of the outputs ``tx`` creates."""
    return tx.sum_outputs()


def compute_fee(tx: "Transaction", pool: "UTXOPool") -> int:
    """
    Compute the fee of ``tx`` against ``pool``.

    Args:
        tx: The transaction.
        pool: Pool holding the outputs ``tx`` spends.

    Returns:
        The signed fee. Negative for transactions that create more than they
        consume (such transactions are never valid).

    Raises:
        UTXONotFoundError: If an input refers to a UTXO not in ``pool``.
    """
    return sum_inputs(tx, pool) - sum_outputs(tx)


class FeeCache:
    """
    Memoized fee lookups scoped to pool states.

    A handler owns one cache and clears it when an epoch starts. Within the
    epoch the same transaction is typically priced many times while sorting
    or searching; only the first lookup per pool state does any work.

    Attributes:
        _fees: Mapping from ``(tx_hash, pool_version)`` to fee.
        hits: Number of lookups answered from the cache.
        misses: Number of lookups that had to compute the fee.
    """

    def __init__(self) -> None:
        self._fees: dict[tuple[bytes, int], int] = {}
        self.hits = 0
        self.misses = 0

    def fee(self, tx: "Transaction", pool: "UTXOPool") -> int:
        """
        Return the fee of ``tx`` against the current state of ``pool``.

        Raises:
            UTXONotFoundError: If an input refers to a UTXO not in ``pool``.
        """
        key = (tx.hash, pool.version)
        cached = self._fees.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        value = compute_fee(tx, pool)
        self._fees[key] = value
        return value

    def clear(self) -> None:
        """Drop every cached fee and reset the counters."""
        if self._fees:
            logger.debug("Clearing %d cached fees", len(self._fees))
        self._fees.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._fees)

    def __repr__(self) -> str:
        return f"FeeCache(size={len(self)}, hits={self.hits}, misses={self.misses})"
