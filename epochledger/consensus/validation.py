"""
Transaction Validation
======================

A transaction is valid against a UTXO pool iff all of the following hold:

1. Every input refers to a UTXO that is currently in the pool.
2. Every input's signature verifies over ``tx.get_raw_data_to_sign(i)``
   with the recipient key of the output it spends. Ownership comes from the
   pool, never from the transaction's own outputs.
3. No UTXO is claimed by more than one input of the transaction.
4. Every output value is non-negative.
5. The sum of the input values is *strictly* greater than the sum of the
   output values. A transaction whose inputs exactly balance its outputs
   pays no fee and is rejected.

All checks read the same pool and nothing is mutated. Checking stops at the
first failing condition.

The public predicate :func:`is_valid_tx` returns a plain boolean; failures
are never raised. :func:`check_transaction` returns the first failing
condition as a :class:`TxValidity` for diagnostics and tests.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from epochledger.utils.encoding import ENCODING_ERRORS

if TYPE_CHECKING:
    from epochledger.core.transaction import Transaction
    from epochledger.core.utxo import UTXOPool

logger = logging.getLogger(__name__)


class TxValidity(enum.Enum):
    """Outcome of checking one transaction against a pool."""

    VALID = "valid"
    MISSING_UTXO = "input refers to a UTXO not in the pool"
    BAD_SIGNATURE = "input signature does not verify"
    DOUBLE_CLAIM = "UTXO claimed by more than one input"
    NEGATIVE_OUTPUT = "output has a negative value"
    NO_FEE = "input value does not exceed output value"
    MALFORMED = "field cannot be encoded (index outside u32, value outside i64)"

    def __bool__(self) -> bool:
        return self is TxValidity.VALID


def check_transaction(tx: "Transaction", pool: "UTXOPool") -> TxValidity:
    """
    Check ``tx`` against ``pool`` and report the first failing condition.

    Never raises for a bad transaction: a field that cannot be encoded into
    the signing payload (an input index outside u32, an output value that is
    not an i64 integer, a non-bytes hash) is reported as
    ``TxValidity.MALFORMED``.

    Args:
        tx: The candidate transaction.
        pool: The pool snapshot to check against. Not modified.

    Returns:
        ``TxValidity.VALID`` if every condition holds, otherwise the member
        naming the first condition that failed.
    """
    try:
        return _check_conditions(tx, pool)
    except ENCODING_ERRORS as e:
        logger.debug("Transaction %s is malformed: %s", tx.short_id(), e)
        return TxValidity.MALFORMED


def _check_conditions(tx: "Transaction", pool: "UTXOPool") -> TxValidity:
    claimed = set()
    total_input_value = 0

    for i, txin in enumerate(tx.inputs):
        utxo = txin.utxo

        # 1. The claimed output must be spendable
        spent_output = pool.get_or_none(utxo)
        if spent_output is None:
            return TxValidity.MISSING_UTXO

        # 3. Each UTXO may be claimed once per transaction
        if utxo in claimed:
            return TxValidity.DOUBLE_CLAIM

        # 2. The current owner must have signed this input
        message = tx.get_raw_data_to_sign(i)
        if not spent_output.recipient.verify_signature(message, txin.signature):
            return TxValidity.BAD_SIGNATURE

        claimed.add(utxo)
        total_input_value += spent_output.value

    # 4. No negative outputs
    total_output_value = 0
    for txout in tx.outputs:
        if txout.value < 0:
            return TxValidity.NEGATIVE_OUTPUT
        total_output_value += txout.value

    # 5. Strictly positive fee
    if total_input_value <= total_output_value:
        return TxValidity.NO_FEE

    return TxValidity.VALID


def is_valid_tx(tx: "Transaction", pool: "UTXOPool") -> bool:
    """
    Return True iff ``tx`` satisfies every validity condition against
    ``pool``.

    Pure: repeated calls against an unchanged pool give the same answer.
    """
    result = check_transaction(tx, pool)
    if result is not TxValidity.VALID:
        logger.debug("Transaction %s invalid: %s", tx.short_id(), result.value)
        return False
    return True
