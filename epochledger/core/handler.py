"""
Epoch Transaction Handler
=========================

:class:`TxHandler` owns a UTXO pool across epochs. Each epoch it receives an
unordered batch of proposed transactions, returns the conflict-free subset
it accepted and leaves its pool advanced by exactly those transactions.

Which subset is accepted is decided by a selection strategy (see
:mod:`epochledger.core.selection`), chosen at construction::

    handler = TxHandler(pool)                            # greedy by fee
    handler = TxHandler(pool, strategy="exhaustive")     # max-fee oracle
    handler = TxHandler(
        pool, strategy=functools.partial(exhaustive_search, max_batch_size=12)
    )

The handler copies the pool it is given, so the caller's pool is never
modified. After an epoch the advanced pool is available as
:attr:`TxHandler.utxo_pool` and becomes the starting pool of the next epoch.

Processing is synchronous and single-threaded; nothing else may read or
write the pool while :meth:`TxHandler.handle_txs` runs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Union

from epochledger.consensus.fees import FeeCache
from epochledger.consensus.validation import is_valid_tx
from epochledger.core.selection import resolve_strategy

if TYPE_CHECKING:
    from epochledger.core.transaction import Transaction
    from epochledger.core.utxo import UTXOPool

logger = logging.getLogger(__name__)


class TxHandler:
    """
    Processes epochs of candidate transactions against an owned UTXO pool.

    Attributes:
        strategy: The selection strategy callable.
        fee_cache: Fee cache owned by this handler, cleared every epoch.
        epochs: Number of epochs completed so far. A batch refused by the
            strategy does not count.
    """

    def __init__(
        self,
        utxo_pool: "UTXOPool",
        strategy: Optional[Union[str, Callable]] = None,
    ) -> None:
        """
        Create a handler over a private copy of ``utxo_pool``.

        Args:
            utxo_pool: The starting pool. Not modified by the handler.
            strategy: Strategy name (``"greedy"``, ``"exhaustive"``,
                ``"first_seen"``) or callable; defaults to greedy by fee.

        Raises:
            ValueError: If ``strategy`` is an unknown name.
        """
        self._pool = utxo_pool.copy()
        self.strategy = resolve_strategy(strategy)
        self.fee_cache = FeeCache()
        self.epochs = 0

    @property
    def utxo_pool(self) -> "UTXOPool":
        """
        The pool as advanced by every epoch handled so far.

        This is the handler's own pool, not a copy; pass it (or a copy of it)
        to the next epoch's handler.
        """
        return self._pool

    def is_valid_tx(self, tx: "Transaction") -> bool:
        """Check ``tx`` against the handler's current pool."""
        return is_valid_tx(tx, self._pool)

    def tx_fee(self, tx: "Transaction") -> int:
        """
        Fee of ``tx`` against the handler's current pool.

        Raises:
            UTXONotFoundError: If an input refers to a UTXO not in the pool.
        """
        return self.fee_cache.fee(tx, self._pool)

    def handle_txs(self, possible_txs: Iterable["Transaction"]) -> list:
        """
        Process one epoch.

        Args:
            possible_txs: The epoch's candidate transactions, in submission
                order.

        Returns:
            The accepted transactions in the order they were applied. The
            handler's pool now reflects exactly these transactions.

        Raises:
            BatchTooLargeError: If the strategy refuses the batch size. The
                pool is unchanged.
            PoolInvariantError: If the pool was modified from outside while
                the epoch was running.
        """
        candidates = list(possible_txs)
        self.fee_cache.clear()

        size_before = len(self._pool)
        accepted = self.strategy(candidates, self._pool, self.fee_cache)
        self.epochs += 1

        logger.info(
            "Epoch %d: accepted %d of %d transactions (pool %d -> %d UTXOs)",
            self.epochs, len(accepted), len(candidates),
            size_before, len(self._pool),
        )
        return accepted

    handle_epoch = handle_txs

    def __repr__(self) -> str:
        name = getattr(self.strategy, '__name__', repr(self.strategy))
        return f"TxHandler(strategy={name}, pool={self._pool!r})"


def select_and_apply(
    candidates: Iterable["Transaction"],
    pool: "UTXOPool",
    strategy: Optional[Union[str, Callable]] = None,
) -> tuple:
    """
    Run a single epoch without keeping a handler around.

    Args:
        candidates: The epoch's candidate transactions.
        pool: The starting pool. Not modified.
        strategy: Strategy name or callable, as for :class:`TxHandler`.

    Returns:
        A tuple of (accepted transactions, advanced pool).
    """
    handler = TxHandler(pool, strategy=strategy)
    accepted = handler.handle_txs(candidates)
    return accepted, handler.utxo_pool
