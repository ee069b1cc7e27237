# Ledger-epoch transaction processing over a UTXO pool

from epochledger.core.handler import TxHandler, select_and_apply
from epochledger.core.transaction import Transaction, TxInput, TxOutput
from epochledger.core.utxo import UTXO, UTXOPool

__version__ = "0.1.0"

__all__ = [
    'TxHandler',
    'select_and_apply',
    'Transaction',
    'TxInput',
    'TxOutput',
    'UTXO',
    'UTXOPool',
]
