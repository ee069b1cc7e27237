"""
ECDSA Keys, Signing and Addresses
=================================

Output ownership in the ledger is expressed by a public key: an output's
``recipient`` is the key whose holder may spend it, and each spending input
carries a signature that must verify against that key.

- **PrivateKey**: a secp256k1 signing key. Signs the double-SHA-256 digest of
  a message and returns a DER-encoded signature.
- **PublicKey**: the matching verification key. ``verify_signature`` never
  raises; anything that is not a valid signature over the message simply
  does not verify.
- **KeyPair**: a private key, its public key and the derived address.

Addresses are base58check strings over a 20-byte hash of the compressed
public key. They are used for display and balance queries only; the ledger
itself keys ownership on the public key.
"""

import ecdsa
from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigencode_der, sigdecode_der

from epochledger.consensus.rules import ADDRESS_VERSION
from epochledger.crypto.hash import address_hash, double_sha256
from epochledger.utils.encoding import base58check_encode


# =============================================================================
# PublicKey Class
# =============================================================================

class PublicKey:
    """
    A secp256k1 public key able to verify signatures.

    Serialized in compressed SEC form (33 bytes) wherever it enters a
    signing payload or a transaction hash, so two equal keys always produce
    identical bytes.
    """

    def __init__(self, key: VerifyingKey):
        """
        Initialize a PublicKey from an ecdsa VerifyingKey.

        Args:
            key: An ecdsa.VerifyingKey instance on the SECP256k1 curve.
        """
        self._key = key

    def verify_signature(self, message: bytes, signature: bytes) -> bool:
        """
        Verify a DER-encoded ECDSA signature over ``message``.

        The message is hashed with double SHA-256 (the same digest the
        signer used) before verification. Malformed signatures, empty
        signatures and signatures by another key all return False.

        Args:
            message: The original message bytes.
            signature: The DER-encoded ECDSA signature.

        Returns:
            True if the signature is valid, False otherwise.
        """
        try:
            message_hash = double_sha256(message)
            return self._key.verify_digest(
                signature, message_hash, sigdecode=sigdecode_der
            )
        except (
            ecdsa.BadSignatureError,
            ecdsa.BadDigestError,
            UnexpectedDER,
            ValueError,
            TypeError,
        ):
            return False

    def to_bytes(self) -> bytes:
        """Return the 33-byte compressed SEC encoding."""
        return self._key.to_string("compressed")

    def to_hex(self) -> str:
        """Return the compressed encoding as a lowercase hex string."""
        return self.to_bytes().hex()

    def to_address(self) -> str:
        """
        Derive the base58check address of this key.

        The address payload is the 20-byte :func:`address_hash` of the
        compressed key, prefixed with :data:`ADDRESS_VERSION`.

        Returns:
            The base58check-encoded address string.
        """
        return base58check_encode(ADDRESS_VERSION, address_hash(self.to_bytes()))

    @classmethod
    def from_bytes(cls, data: bytes) -> 'PublicKey':
        """
        Deserialize a public key from compressed (33-byte) or uncompressed
        (65-byte) SEC bytes.

        Raises:
            ValueError: If the bytes are not a valid point on secp256k1.
        """
        try:
            key = VerifyingKey.from_string(data, curve=SECP256k1)
        except ecdsa.MalformedPointError as e:
            raise ValueError(f"Invalid public key encoding: {e}") from e
        return cls(key)

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()[:16]}...)"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


# =============================================================================
# PrivateKey Class
# =============================================================================

class PrivateKey:
    """
    A secp256k1 private key.

    The key is a 256-bit scalar. Signing hashes the message with double
    SHA-256 and signs the digest, so :meth:`PublicKey.verify_signature` can
    be called with the same raw message.
    """

    def __init__(self, key_bytes: bytes = None):
        """
        Create a PrivateKey from raw bytes or generate a new random one.

        Args:
            key_bytes: Optional 32-byte private key. If None, a new random
                      key is generated.

        Raises:
            ValueError: If key_bytes is provided but not exactly 32 bytes.
        """
        if key_bytes is not None:
            if len(key_bytes) != 32:
                raise ValueError(
                    f"Private key must be exactly 32 bytes, got {len(key_bytes)}"
                )
            self._key = SigningKey.from_string(key_bytes, curve=SECP256k1)
        else:
            self._key = SigningKey.generate(curve=SECP256k1)
        self._public_key = None

    @property
    def public_key(self) -> PublicKey:
        """The matching public key, computed once and cached."""
        if self._public_key is None:
            self._public_key = PublicKey(self._key.get_verifying_key())
        return self._public_key

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message and return a DER-encoded signature.

        Args:
            message: The raw message bytes to sign.

        Returns:
            The DER-encoded ECDSA signature bytes.
        """
        message_hash = double_sha256(message)
        return self._key.sign_digest(message_hash, sigencode=sigencode_der)

    def to_bytes(self) -> bytes:
        """Return the raw 32-byte private key."""
        return self._key.to_string()

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> 'PrivateKey':
        """
        Create a PrivateKey from a 64-character hexadecimal string.

        Raises:
            ValueError: If the hex string is invalid or wrong length.
        """
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def generate(cls) -> 'PrivateKey':
        """Generate a new random private key."""
        return cls()

    def __repr__(self) -> str:
        # Only show a partial fingerprint to discourage accidental exposure
        hex_str = self.to_hex()
        return f"PrivateKey({hex_str[:8]}...{hex_str[-8:]})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


# =============================================================================
# KeyPair Class
# =============================================================================

class KeyPair:
    """
    A matched private key, public key and derived address.
    """

    def __init__(self, private_key: PrivateKey, public_key: PublicKey, address: str):
        self.private_key = private_key
        self.public_key = public_key
        self.address = address

    @classmethod
    def generate(cls) -> 'KeyPair':
        """Generate a fresh random key pair with its address."""
        return cls.from_private_key(PrivateKey.generate())

    @classmethod
    def from_private_key(cls, private_key: PrivateKey) -> 'KeyPair':
        """Build the key pair belonging to an existing private key."""
        public_key = private_key.public_key
        return cls(private_key, public_key, public_key.to_address())

    def __repr__(self) -> str:
        return f"KeyPair(address={self.address})"
