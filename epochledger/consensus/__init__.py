# Validity rules, fees and tunables

from .validation import TxValidity, check_transaction, is_valid_tx
from .fees import FeeCache, compute_fee, sum_inputs, sum_outputs

__all__ = [
    'TxValidity',
    'check_transaction',
    'is_valid_tx',
    'FeeCache',
    'compute_fee',
    'sum_inputs',
    'sum_outputs',
]
