"""
Hash Functions
==============

Content hashing used by the ledger:

- **SHA-256**: building block for everything below.
- **double SHA-256**: SHA-256 applied twice. Used for transaction content
  hashes (the identity under which a transaction's outputs enter the UTXO
  pool) and as the digest that signatures are computed over.
- **address hash**: the 20-byte digest embedded in a base58check address.
"""

import hashlib


def sha256(data: bytes) -> bytes:
    """
    Compute the SHA-256 hash of the input data.

    Args:
        data: The raw bytes to hash.

    Returns:
        The 32-byte SHA-256 digest.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def double_sha256(data: bytes) -> bytes:
    """
    Compute the double SHA-256 hash: SHA-256(SHA-256(data)).

    Transaction hashes and signature digests both use this construction,
    so a transaction's identity and the payload its inputs sign are
    derived the same way.

    Args:
        data: The raw bytes to hash.

    Returns:
        The 32-byte double-SHA-256 digest.

    Example:
        >>> double_sha256(b"hello").hex()
        '9595c9df90075148eb06860365df33584b75bff782a510c6cd4883a419833d50'
    """
    return sha256(sha256(data))


def address_hash(data: bytes) -> bytes:
    """
    Compute the 20-byte payload of an address.

    The serialized public key is double-hashed and truncated to 20 bytes,
    which keeps addresses short while staying collision resistant for a
    single ledger.

    Args:
        data: Serialized (compressed) public key bytes.

    Returns:
        The 20-byte address hash.
    """
    return double_sha256(data)[:20]
