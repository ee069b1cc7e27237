# Pool, transactions, selection strategies and the epoch handler

from .utxo import UTXO, UTXOPool, UTXONotFoundError, PoolInvariantError
from .transaction import Transaction, TxInput, TxOutput
from .selection import (
    BatchTooLargeError,
    STRATEGIES,
    exhaustive_search,
    first_seen,
    greedy_by_fee,
)
from .handler import TxHandler, select_and_apply

__all__ = [
    # Pool
    'UTXO',
    'UTXOPool',
    'UTXONotFoundError',
    'PoolInvariantError',
    # Transactions
    'Transaction',
    'TxInput',
    'TxOutput',
    # Selection
    'BatchTooLargeError',
    'STRATEGIES',
    'exhaustive_search',
    'first_seen',
    'greedy_by_fee',
    # Handler
    'TxHandler',
    'select_and_apply',
]
