"""
Epoch Selection Strategies
==========================

A selection strategy decides which of an epoch's candidate transactions are
accepted and in which order they are applied. Every strategy is a plain
callable with the same signature::

    strategy(candidates, pool, fees) -> accepted

- ``candidates``: the epoch's transactions, in submission order.
- ``pool``: the handler's UTXO pool. Strategies advance it only through
  ``pool.apply_transaction``, one accepted transaction at a time.
- ``fees``: the handler's :class:`~epochledger.consensus.fees.FeeCache`.

Accepted transactions are pairwise conflict-free: each one is validated
against the pool as it stands when it is applied (or, for the exhaustive
search, against the epoch-start pool with conflicts excluded explicitly).

Strategies provided:

- :func:`greedy_by_fee` -- sort by fee, accept greedily. Deterministic,
  cheap, not always optimal. The default.
- :func:`exhaustive_search` -- maximum total fee over every conflict-free
  subset. Exponential; meant as an oracle for small batches.
- :func:`first_seen` -- accept in submission order, no fee ordering.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from epochledger.consensus.rules import DEFAULT_STRATEGY, MAX_EXHAUSTIVE_BATCH_SIZE
from epochledger.consensus.validation import is_valid_tx

if TYPE_CHECKING:
    from epochledger.consensus.fees import FeeCache
    from epochledger.core.transaction import Transaction
    from epochledger.core.utxo import UTXOPool

logger = logging.getLogger(__name__)


class BatchTooLargeError(ValueError):
    """
    Raised when a batch exceeds the size a strategy is willing to search.

    The exhaustive strategy never truncates a batch to fit its bound; the
    caller must split the batch or pick another strategy.
    """
    pass


def _accept_in_order(order: list, pool: "UTXOPool") -> list:
    """
    Walk ``order`` once, applying every transaction that is valid against
    the pool at the moment it is reached. Rejected transactions are not
    revisited in this epoch.
    """
    accepted = []
    for tx in order:
        if not is_valid_tx(tx, pool):
            logger.debug("Skipping transaction %s for this epoch", tx.short_id())
            continue
        pool.apply_transaction(tx)
        accepted.append(tx)
    return accepted


# ---------------------------------------------------------------------------
# First-seen
# ---------------------------------------------------------------------------

def first_seen(candidates: list, pool: "UTXOPool", fees: "FeeCache") -> list:
    """
    Accept candidates in submission order.

    A transaction spending an output created earlier in the same batch is
    accepted once its parent has been applied. ``fees`` is unused; it is
    accepted so all strategies share one signature.
    """
    return _accept_in_order(list(candidates), pool)


# ---------------------------------------------------------------------------
# Greedy by fee
# ---------------------------------------------------------------------------

def greedy_by_fee(candidates: list, pool: "UTXOPool", fees: "FeeCache") -> list:
    """
    Accept candidates in descending fee order.

    1. Every candidate valid against the epoch-start pool is priced against
       that pool and ranked by fee, highest first. Equal fees keep their
       submission order.
    2. Candidates not valid at epoch start (for example, ones spending an
       output of another candidate) follow, in submission order.
    3. The ranking is walked once; each transaction is re-validated against
       the current pool and applied if it still holds.

    Not guaranteed to find the maximum-fee subset: a high-fee transaction
    accepted first can block two lower-fee transactions whose fees add up
    to more.

    Returns:
        The accepted transactions in the order they were applied.
    """
    ranked = []
    deferred = []
    for position, tx in enumerate(candidates):
        if is_valid_tx(tx, pool):
            ranked.append((fees.fee(tx, pool), position, tx))
        else:
            deferred.append(tx)

    ranked.sort(key=lambda entry: (-entry[0], entry[1]))
    order = [tx for _, _, tx in ranked] + deferred

    logger.debug(
        "Greedy order: %d ranked by fee, %d deferred", len(ranked), len(deferred)
    )
    return _accept_in_order(order, pool)


# ---------------------------------------------------------------------------
# Exhaustive search
# ---------------------------------------------------------------------------

class _Eligible:
    """A candidate valid against the epoch-start pool, with its price."""

    __slots__ = ('position', 'tx', 'fee', 'claims')

    def __init__(self, position: int, tx: "Transaction", fee: int):
        self.position = position
        self.tx = tx
        self.fee = fee
        self.claims = frozenset(tx.spent_utxos())


def _breaks_tie(subset: list, best: list) -> bool:
    """
    Decide between two subsets of equal total fee.

    Fewer transactions win, then the lexicographically smallest sorted list
    of transaction hashes.
    """
    if len(subset) != len(best):
        return len(subset) < len(best)
    return (sorted(item.tx.hash for item in subset)
            < sorted(item.tx.hash for item in best))


def exhaustive_search(
    candidates: list,
    pool: "UTXOPool",
    fees: "FeeCache",
    max_batch_size: int = MAX_EXHAUSTIVE_BATCH_SIZE,
) -> list:
    """
    Accept the conflict-free subset with the largest total fee.

    Only candidates valid against the epoch-start pool take part, so no
    member of the chosen subset depends on an output created by another
    member. Subsets are enumerated as index sets by depth-first search,
    skipping any extension that claims an already-claimed UTXO, and
    abandoning a branch once even every remaining fee could not reach the
    best total found so far. The worst case is still O(2^n).

    Ties on total fee go to the smaller subset, then to the
    lexicographically smallest sorted list of transaction hashes. The
    winning subset is applied in submission order.

    Args:
        candidates: The epoch's transactions.
        pool: The handler's pool, advanced by the chosen subset.
        fees: Fee cache used to price eligible candidates.
        max_batch_size: Largest accepted ``len(candidates)``.

    Returns:
        The accepted transactions, in submission order.

    Raises:
        BatchTooLargeError: If ``len(candidates) > max_batch_size``.
    """
    if len(candidates) > max_batch_size:
        logger.warning(
            "Refusing exhaustive search over %d candidates (limit %d)",
            len(candidates), max_batch_size,
        )
        raise BatchTooLargeError(
            f"Exhaustive search is limited to {max_batch_size} candidates, "
            f"got {len(candidates)}"
        )

    eligible = [
        _Eligible(position, tx, fees.fee(tx, pool))
        for position, tx in enumerate(candidates)
        if is_valid_tx(tx, pool)
    ]

    # remaining[j]: total fee of eligible[j:]; every eligible fee is positive
    remaining = [0] * (len(eligible) + 1)
    for j in range(len(eligible) - 1, -1, -1):
        remaining[j] = remaining[j + 1] + eligible[j].fee

    best = []
    best_fee = 0
    visited = 0

    def search(start: int, chosen: list, claimed: frozenset, total: int) -> None:
        nonlocal best, best_fee, visited
        visited += 1
        if total > best_fee or (total == best_fee and _breaks_tie(chosen, best)):
            best, best_fee = list(chosen), total

        for j in range(start, len(eligible)):
            if total + remaining[j] < best_fee:
                return
            item = eligible[j]
            if not claimed.isdisjoint(item.claims):
                continue
            chosen.append(item)
            search(j + 1, chosen, claimed | item.claims, total + item.fee)
            chosen.pop()

    search(0, [], frozenset(), 0)
    logger.debug(
        "Exhaustive search: %d eligible, %d subsets visited, best fee %d",
        len(eligible), visited, best_fee,
    )

    accepted = []
    for item in sorted(best, key=lambda entry: entry.position):
        pool.apply_transaction(item.tx)
        accepted.append(item.tx)
    return accepted


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

STRATEGIES: dict[str, Callable] = {
    "greedy": greedy_by_fee,
    "exhaustive": exhaustive_search,
    "first_seen": first_seen,
}
"""Selection strategies by name."""


def resolve_strategy(strategy=None) -> Callable:
    """
    Turn a strategy name or callable into a callable.

    Args:
        strategy: A key of :data:`STRATEGIES`, a callable with the strategy
            signature, or None for :data:`DEFAULT_STRATEGY`.

    Raises:
        ValueError: If ``strategy`` is an unknown name.
    """
    if strategy is None:
        strategy = DEFAULT_STRATEGY
    if callable(strategy):
        return strategy
    try:
        return STRATEGIES[strategy]
    except KeyError:
        raise ValueError(
            f"Unknown selection strategy {strategy!r}; "
            f"expected one of {sorted(STRATEGIES)}"
        ) from None
