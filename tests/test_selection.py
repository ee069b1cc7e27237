"""
Tests for Selection Strategies
==============================

Tests cover:
- Greedy-by-fee ordering, tie-breaks and chained spends
- Greedy being suboptimal where exhaustive search is not
- Exhaustive search optimality and its tie-break rules
- Exhaustive search refusing oversized batches
- First-seen ordering and the greedy >= first-seen comparison
- Strategy lookup by name
"""

import functools
import itertools
import random

import pytest

from epochledger.consensus.fees import FeeCache, compute_fee
from epochledger.consensus.validation import is_valid_tx
from epochledger.core.selection import (
    BatchTooLargeError,
    exhaustive_search,
    first_seen,
    greedy_by_fee,
    resolve_strategy,
)
from epochledger.core.utxo import UTXO

from helpers import make_key


def run(strategy, candidates, pool):
    """Run a strategy on a copy of ``pool``; return (accepted, advanced pool)."""
    working = pool.copy()
    accepted = strategy(candidates, working, FeeCache())
    return accepted, working


def total_fee(txs, pool):
    return sum(compute_fee(tx, pool) for tx in txs)


def claims(txs):
    return [utxo for tx in txs for utxo in tx.spent_utxos()]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def two_utxos(make_pool, alice):
    """Two 10-unit outputs owned by alice."""
    return make_pool([(10, alice), (10, alice)])


@pytest.fixture
def contested(two_utxos, build_tx, alice, bob):
    """
    A wide spend of both UTXOs (fee 5) against two narrow spends of one
    UTXO each (fee 3 apiece). Greedy takes the wide one; the optimum is
    the two narrow ones.
    """
    pool, (u1, u2) = two_utxos
    wide = build_tx([(u1, alice), (u2, alice)], [(15, bob)])
    narrow_1 = build_tx([(u1, alice)], [(7, bob)])
    narrow_2 = build_tx([(u2, alice)], [(7, bob)])
    return pool, wide, narrow_1, narrow_2


# ---------------------------------------------------------------------------
# Greedy Tests
# ---------------------------------------------------------------------------

class TestGreedyByFee:
    """Tests for greedy_by_fee."""

    def test_higher_fee_wins_double_spend(self, two_utxos, build_tx, alice, bob):
        """Of two spends of one UTXO, the higher-fee one is accepted."""
        pool, (u1, _) = two_utxos
        low = build_tx([(u1, alice)], [(9, bob)])
        high = build_tx([(u1, alice)], [(6, bob)])
        accepted, _ = run(greedy_by_fee, [low, high], pool)
        assert accepted == [high]

    def test_applies_in_fee_order(self, two_utxos, build_tx, alice, bob):
        """Independent transactions are applied highest fee first."""
        pool, (u1, u2) = two_utxos
        fee_1 = build_tx([(u1, alice)], [(9, bob)])
        fee_4 = build_tx([(u2, alice)], [(6, bob)])
        accepted, _ = run(greedy_by_fee, [fee_1, fee_4], pool)
        assert accepted == [fee_4, fee_1]

    def test_equal_fees_keep_submission_order(self, two_utxos, build_tx, alice, bob, carol):
        """Ties on fee are broken by submission order."""
        pool, (u1, _) = two_utxos
        first = build_tx([(u1, alice)], [(8, bob)])
        second = build_tx([(u1, alice)], [(8, carol)])
        assert run(greedy_by_fee, [first, second], pool)[0] == [first]
        assert run(greedy_by_fee, [second, first], pool)[0] == [second]

    def test_chained_spend_accepted_after_parent(self, two_utxos, build_tx, alice, bob, carol):
        """A child submitted before its parent is still accepted after it."""
        pool, (u1, _) = two_utxos
        parent = build_tx([(u1, alice)], [(8, bob)])
        child = build_tx([(UTXO(parent.hash, 0), bob)], [(6, carol)])

        accepted, advanced = run(greedy_by_fee, [child, parent], pool)

        assert accepted == [parent, child]
        assert UTXO(parent.hash, 0) not in advanced
        assert advanced.get(UTXO(child.hash, 0)).value == 6

    def test_invalid_candidates_skipped(self, two_utxos, build_tx, alice, bob):
        """Invalid candidates never make it into the accepted list."""
        pool, (u1, u2) = two_utxos
        forged = build_tx([(u1, bob)], [(5, bob)])
        good = build_tx([(u2, alice)], [(5, bob)])
        accepted, _ = run(greedy_by_fee, [forged, good], pool)
        assert accepted == [good]

    def test_suboptimal_on_contested_batch(self, contested):
        """Greedy takes the single highest fee even when a pair pays more."""
        pool, wide, narrow_1, narrow_2 = contested
        accepted, _ = run(greedy_by_fee, [narrow_1, narrow_2, wide], pool)
        assert accepted == [wide]
        assert total_fee(accepted, pool) == 5

    def test_original_pool_untouched(self, two_utxos, build_tx, alice, bob):
        """Only the pool passed in is advanced."""
        pool, (u1, _) = two_utxos
        tx = build_tx([(u1, alice)], [(5, bob)])
        run(greedy_by_fee, [tx], pool)
        assert u1 in pool


# ---------------------------------------------------------------------------
# First-seen Tests
# ---------------------------------------------------------------------------

class TestFirstSeen:
    """Tests for first_seen."""

    def test_first_valid_spend_wins(self, two_utxos, build_tx, alice, bob):
        """The earlier of two double-spends wins regardless of fee."""
        pool, (u1, _) = two_utxos
        low = build_tx([(u1, alice)], [(9, bob)])
        high = build_tx([(u1, alice)], [(6, bob)])
        assert run(first_seen, [low, high], pool)[0] == [low]

    def test_child_before_parent_rejected(self, two_utxos, build_tx, alice, bob, carol):
        """A child seen before its parent is skipped for the epoch."""
        pool, (u1, _) = two_utxos
        parent = build_tx([(u1, alice)], [(8, bob)])
        child = build_tx([(UTXO(parent.hash, 0), bob)], [(6, carol)])
        assert run(first_seen, [child, parent], pool)[0] == [parent]
        assert run(first_seen, [parent, child], pool)[0] == [parent, child]

    def test_greedy_not_worse_than_submission_order(self, make_pool, build_tx, alice, bob):
        """On competing double-spends, sorting by fee never loses fees."""
        pool, (u1, u2, u3) = make_pool([(10, alice), (10, alice), (10, alice)])
        candidates = [
            build_tx([(u1, alice)], [(9, bob)]),   # fee 1
            build_tx([(u2, alice)], [(8, bob)]),   # fee 2
            build_tx([(u1, alice)], [(6, bob)]),   # fee 4
            build_tx([(u2, alice)], [(5, bob)]),   # fee 5
            build_tx([(u3, alice)], [(7, bob)]),   # fee 3
        ]
        greedy, _ = run(greedy_by_fee, candidates, pool)
        in_order, _ = run(first_seen, candidates, pool)
        assert total_fee(greedy, pool) == 12
        assert total_fee(in_order, pool) == 6
        assert total_fee(greedy, pool) >= total_fee(in_order, pool)


# ---------------------------------------------------------------------------
# Exhaustive Search Tests
# ---------------------------------------------------------------------------

class TestExhaustiveSearch:
    """Tests for exhaustive_search."""

    def test_finds_optimum_on_contested_batch(self, contested):
        """The two narrow spends (6) beat the wide one (5)."""
        pool, wide, narrow_1, narrow_2 = contested
        accepted, advanced = run(exhaustive_search, [wide, narrow_1, narrow_2], pool)
        assert accepted == [narrow_1, narrow_2]
        assert total_fee(accepted, pool) == 6
        assert UTXO(wide.hash, 0) not in advanced

    def test_tie_prefers_fewer_transactions(self, two_utxos, build_tx, alice, bob):
        """Equal total fees go to the smaller subset."""
        pool, (u1, u2) = two_utxos
        pair_1 = build_tx([(u1, alice)], [(7, bob)])
        pair_2 = build_tx([(u2, alice)], [(7, bob)])
        single = build_tx([(u1, alice), (u2, alice)], [(14, bob)])
        accepted, _ = run(exhaustive_search, [pair_1, pair_2, single], pool)
        assert accepted == [single]

    def test_tie_prefers_smallest_hash(self, two_utxos, build_tx, alice, bob, carol):
        """Equal fee and size go to the lexicographically smallest hash."""
        pool, (u1, _) = two_utxos
        one = build_tx([(u1, alice)], [(7, bob)])
        two = build_tx([(u1, alice)], [(7, carol)])
        expected = min([one, two], key=lambda tx: tx.hash)
        assert run(exhaustive_search, [one, two], pool)[0] == [expected]
        assert run(exhaustive_search, [two, one], pool)[0] == [expected]

    def test_no_chaining_within_batch(self, two_utxos, build_tx, alice, bob, carol):
        """Members must be valid against the epoch-start pool."""
        pool, (u1, _) = two_utxos
        parent = build_tx([(u1, alice)], [(8, bob)])
        child = build_tx([(UTXO(parent.hash, 0), bob)], [(6, carol)])
        assert run(exhaustive_search, [parent, child], pool)[0] == [parent]

    def test_nothing_valid(self, two_utxos, build_tx, bob):
        """With no valid candidate the result is empty and the pool unchanged."""
        pool, (u1, _) = two_utxos
        forged = build_tx([(u1, bob)], [(5, bob)])
        accepted, advanced = run(exhaustive_search, [forged], pool)
        assert accepted == []
        assert advanced.utxos() == pool.utxos()

    def test_full_batch_without_conflicts(self, make_pool, build_tx, alice, bob):
        """A conflict-free batch at the size bound is accepted whole."""
        pool, utxos = make_pool([(10, alice)] * 20)
        candidates = [
            build_tx([(utxo, alice)], [(10 - 1 - i % 3, bob)])
            for i, utxo in enumerate(utxos)
        ]
        accepted, advanced = run(exhaustive_search, candidates, pool)
        assert accepted == candidates
        assert len(advanced) == 20
        assert advanced.total_value() == pool.total_value() - total_fee(candidates, pool)

    def test_tie_with_more_transactions_loses(self, make_pool, build_tx, alice, bob):
        """A larger subset found later with an equal fee does not replace the best."""
        pool, (u1, u2, u3) = make_pool([(10, alice), (10, alice), (10, alice)])
        single = build_tx([(u1, alice), (u2, alice), (u3, alice)], [(24, bob)])
        pair_1 = build_tx([(u1, alice)], [(7, bob)])
        pair_2 = build_tx([(u2, alice), (u3, alice)], [(17, bob)])
        accepted, _ = run(exhaustive_search, [single, pair_1, pair_2], pool)
        assert accepted == [single]

    def test_refuses_oversized_batch(self, two_utxos, build_tx, alice, bob):
        """Batches above the bound raise and leave the pool untouched."""
        pool, (u1, _) = two_utxos
        candidates = [build_tx([(u1, alice)], [(9 - i % 5, bob)]) for i in range(4)]
        strategy = functools.partial(exhaustive_search, max_batch_size=3)
        working = pool.copy()
        version = working.version

        with pytest.raises(BatchTooLargeError):
            strategy(candidates, working, FeeCache())
        assert working.version == version

    def test_batch_error_is_value_error(self):
        """BatchTooLargeError should be catchable as ValueError."""
        assert issubclass(BatchTooLargeError, ValueError)

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_no_better_conflict_free_subset(self, make_pool, build_tx, alice, seed):
        """No conflict-free valid subset pays strictly more than the result."""
        rng = random.Random(seed)
        pool, utxos = make_pool([(rng.randint(5, 20), alice) for _ in range(6)])
        payee = make_key(40 + seed)

        candidates = []
        for _ in range(10):
            spent = rng.sample(utxos, rng.randint(1, 2))
            value = sum(pool.get(u).value for u in spent) - rng.randint(1, 4)
            candidates.append(build_tx([(u, alice) for u in spent], [(value, payee)]))
        # one forged spend that must never be chosen
        candidates.append(build_tx([(utxos[0], payee)], [(1, payee)]))

        strategy = functools.partial(exhaustive_search, max_batch_size=12)
        accepted, _ = run(strategy, candidates, pool)

        valid = [tx for tx in candidates if is_valid_tx(tx, pool)]
        best = 0
        for size in range(1, len(valid) + 1):
            for subset in itertools.combinations(valid, size):
                spent = claims(subset)
                if len(spent) == len(set(spent)):
                    best = max(best, total_fee(subset, pool))

        assert len(claims(accepted)) == len(set(claims(accepted)))
        assert total_fee(accepted, pool) == best

        greedy, _ = run(greedy_by_fee, candidates, pool)
        assert total_fee(greedy, pool) <= best


# ---------------------------------------------------------------------------
# Registry Tests
# ---------------------------------------------------------------------------

class TestResolveStrategy:
    """Tests for strategy lookup."""

    def test_default_is_greedy(self):
        assert resolve_strategy() is greedy_by_fee

    def test_by_name(self):
        assert resolve_strategy("exhaustive") is exhaustive_search
        assert resolve_strategy("first_seen") is first_seen

    def test_callable_passes_through(self):
        strategy = functools.partial(exhaustive_search, max_batch_size=5)
        assert resolve_strategy(strategy) is strategy

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            resolve_strategy("fastest")
