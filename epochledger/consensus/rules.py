"""
Ledger Rules and Tunables
=========================

Constants that shape how an epoch is processed. They are plain module-level
values so that callers can read them, and every one of them can be
overridden per call (strategy choice on ``TxHandler``, batch bound through
``functools.partial(exhaustive_search, max_batch_size=...)``).

Acceptance rules themselves (the five validity conditions) are not
configurable and live in :mod:`epochledger.consensus.validation`.
"""

# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

DEFAULT_STRATEGY = "greedy"
"""Name of the selection strategy a handler uses when none is given.
Greedy-by-fee is deterministic and linear after sorting, and is the
production path; see :mod:`epochledger.core.selection` for the others."""

MAX_EXHAUSTIVE_BATCH_SIZE = 20
"""Largest candidate batch the exhaustive strategy accepts.
Exhaustive search enumerates every subset of the valid candidates, so its
cost doubles with each additional transaction. Past this bound the call is
rejected with ``BatchTooLargeError`` instead of being truncated."""

# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

ADDRESS_VERSION = b'\x00'
"""Version byte prepended to the address hash before base58check encoding."""
