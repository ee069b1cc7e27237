# Hash functions, keys and signatures

from .hash import sha256, double_sha256, address_hash
from .keys import PrivateKey, PublicKey, KeyPair

__all__ = [
    # Hash functions
    'sha256',
    'double_sha256',
    'address_hash',
    # Key management
    'PrivateKey',
    'PublicKey',
    'KeyPair',
]
