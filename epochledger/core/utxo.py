"""
UTXO (Unspent Transaction Output) pool management.

The pool is the authoritative record of which outputs may be spent. A
transaction is checked against it, and when the transaction is accepted
the pool is advanced: the outputs it consumes are removed and the outputs
it creates are added under ``UTXO(tx.hash, index)``.

This module provides:

- **UTXO**: the immutable identity of an output, ``(tx_hash, index)``.

- **UTXOPool**: an in-memory mapping from UTXO to TxOutput. Every mutation
  and every copy receives a fresh ``version`` stamp, unique across all pools
  in the process, so derived values (such as fees) can be cached per pool
  state without ever being served against a different state.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from epochledger.core.transaction import Transaction, TxOutput

logger = logging.getLogger(__name__)

_versions = itertools.count(1)


class UTXONotFoundError(KeyError):
    """
    Raised when a UTXO is looked up in a pool that does not contain it.
    """
    pass


class PoolInvariantError(RuntimeError):
    """
    Raised when the pool cannot be advanced by a transaction that was
    expected to apply cleanly, i.e. one of its inputs is missing.

    Selection only applies transactions it has just validated against the
    same pool, so this signals that the pool was modified from outside
    while an epoch was in progress.
    """
    pass


# ---------------------------------------------------------------------------
# UTXO
# ---------------------------------------------------------------------------

class UTXO:
    """
    Identity of a transaction output: the producing transaction's hash and
    the output's index in it.

    Two UTXOs are equal iff both fields match. Instances are hashable and
    ordered by ``(tx_hash, index)``.

    Attributes:
        tx_hash: Content hash of the producing transaction.
        index: Output index within that transaction.
    """

    __slots__ = ('_tx_hash', '_index')

    def __init__(self, tx_hash: bytes, index: int):
        self._tx_hash = bytes(tx_hash)
        self._index = index

    @property
    def tx_hash(self) -> bytes:
        return self._tx_hash

    @property
    def index(self) -> int:
        return self._index

    def _key(self) -> tuple:
        return (self._tx_hash, self._index)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UTXO):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other) -> bool:
        if not isinstance(other, UTXO):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"UTXO({self._tx_hash.hex()[:16]}...:{self._index})"


# ---------------------------------------------------------------------------
# UTXOPool
# ---------------------------------------------------------------------------

class UTXOPool:
    """
    In-memory pool of all unspent transaction outputs.

    The pool has no internal locking. During an epoch it is owned by a
    single :class:`~epochledger.core.handler.TxHandler`, which is the only
    caller allowed to mutate it.

    Attributes:
        _utxos: Internal dictionary mapping UTXO to TxOutput.
        _version: Stamp of the current pool state.
    """

    def __init__(self):
        """Initialize an empty pool."""
        self._utxos: dict[UTXO, TxOutput] = {}
        self._version = next(_versions)

    @property
    def version(self) -> int:
        """
        Stamp identifying the current state of this pool.

        Changes on every ``add``, ``remove`` and ``apply_transaction``;
        a copy never shares a stamp with its source.
        """
        return self._version

    def _touch(self) -> None:
        self._version = next(_versions)

    # -- queries ------------------------------------------------------------

    def contains(self, utxo: UTXO) -> bool:
        """Check whether ``utxo`` is currently spendable."""
        return utxo in self._utxos

    def get(self, utxo: UTXO) -> TxOutput:
        """
        Return the output recorded for ``utxo``.

        Raises:
            UTXONotFoundError: If ``utxo`` is not in the pool.
        """
        try:
            return self._utxos[utxo]
        except KeyError:
            raise UTXONotFoundError(f"UTXO not found: {utxo!r}") from None

    def get_or_none(self, utxo: UTXO) -> Optional[TxOutput]:
        """Return the output for ``utxo``, or None if it is not in the pool."""
        return self._utxos.get(utxo)

    def utxos(self) -> list:
        """Return all UTXOs in the pool, sorted by ``(tx_hash, index)``."""
        return sorted(self._utxos)

    def total_value(self) -> int:
        """Sum of the values of every output in the pool."""
        return sum(output.value for output in self._utxos.values())

    def get_balance(self, address: str) -> int:
        """
        Sum the values of all outputs whose recipient has ``address``.

        Args:
            address: Base58check address, as returned by
                ``PublicKey.to_address()``.

        Returns:
            Total value owned by the address.
        """
        return sum(
            output.value
            for output in self._utxos.values()
            if output.recipient.to_address() == address
        )

    # -- mutation -----------------------------------------------------------

    def add(self, utxo: UTXO, output: TxOutput) -> None:
        """
        Record ``output`` as spendable under ``utxo``.

        An existing entry under the same UTXO is overwritten; callers derive
        UTXOs from content hashes, which keeps them unique.
        """
        self._utxos[utxo] = output
        self._touch()

    def remove(self, utxo: UTXO) -> None:
        """Remove ``utxo`` from the pool. Removing an absent UTXO is a no-op."""
        if self._utxos.pop(utxo, None) is not None:
            self._touch()

    def apply_transaction(self, tx: "Transaction") -> None:
        """
        Advance the pool by an accepted transaction.

        All consumed UTXOs are checked before anything changes, so the pool
        is either fully advanced (every input removed, every output added as
        ``UTXO(tx.hash, i)``) or left untouched.

        Args:
            tx: A transaction already validated against this pool.

        Raises:
            PoolInvariantError: If any input refers to a UTXO that is not in
                the pool.
        """
        spent = tx.spent_utxos()
        missing = [utxo for utxo in spent if utxo not in self._utxos]
        if missing:
            logger.error(
                "Cannot apply transaction %s: %d input(s) missing from pool",
                tx.short_id(), len(missing),
            )
            raise PoolInvariantError(
                f"Transaction {tx.short_id()} spends UTXOs absent from the pool: "
                f"{missing!r}"
            )

        tx_hash = tx.hash
        for utxo in spent:
            self._utxos.pop(utxo, None)
        for index, output in enumerate(tx.outputs):
            self._utxos[UTXO(tx_hash, index)] = output
        self._touch()

    # -- copying ------------------------------------------------------------

    def copy(self) -> UTXOPool:
        """
        Create an independent copy of this pool.

        The mapping and the output records are both copied; the recipient
        keys are immutable and shared.

        Returns:
            A new UTXOPool with its own version stamp.
        """
        from epochledger.core.transaction import TxOutput

        new_pool = UTXOPool()
        new_pool._utxos = {
            utxo: TxOutput(output.value, output.recipient)
            for utxo, output in self._utxos.items()
        }
        return new_pool

    clone = copy

    def __contains__(self, utxo: UTXO) -> bool:
        return self.contains(utxo)

    def __iter__(self) -> Iterator[UTXO]:
        return iter(self._utxos)

    def __len__(self) -> int:
        return len(self._utxos)

    def __repr__(self) -> str:
        return f"UTXOPool(size={len(self)})"
