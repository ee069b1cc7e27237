"""
Byte encoding utilities.

Helpers shared by transaction serialization and address derivation:

- Little-endian integer encoding (unsigned indices, signed output values)
- Variable-length integer (varint) prefixes for lists and byte strings
- Base58Check encoding for human-readable addresses
- Short hex prefixes for log lines and error messages

Output values are encoded as *signed* 64-bit integers so that a transaction
carrying a negative output can still be hashed and signed; rejecting it is
the validator's job, not the encoder's.
"""

import struct

import base58

from epochledger.crypto.hash import double_sha256

ENCODING_ERRORS = (ValueError, TypeError, OverflowError, struct.error)
"""Exceptions raised when a field does not fit its wire encoding."""


# ---------------------------------------------------------------------------
# Integer encodings
# ---------------------------------------------------------------------------

def uint32_to_little_endian(value: int) -> bytes:
    """
    Encode an unsigned 32-bit integer in little-endian order.

    Args:
        value: Integer in ``[0, 2**32)``.

    Returns:
        4 bytes.

    Raises:
        ValueError: If the value does not fit.

    Example:
        >>> uint32_to_little_endian(1)
        b'\\x01\\x00\\x00\\x00'
    """
    if not 0 <= value <= 0xffffffff:
        raise ValueError(f"Value out of uint32 range: {value}")
    return struct.pack('<I', value)


def int64_to_little_endian(value: int) -> bytes:
    """
    Encode a signed 64-bit integer in little-endian two's complement.

    Example:
        >>> int64_to_little_endian(-1).hex()
        'ffffffffffffffff'
    """
    return struct.pack('<q', value)


def encode_varint(value: int) -> bytes:
    """
    Encode an integer using the compact variable-length format.

    Encoding rules:
    - 0x00-0xfc:       1 byte  (the value itself)
    - 0xfd-0xffff:     3 bytes (0xfd prefix + 2-byte little-endian)
    - 0x10000-0xffffffff: 5 bytes (0xfe prefix + 4-byte little-endian)
    - Larger:           9 bytes (0xff prefix + 8-byte little-endian)

    Args:
        value: Non-negative integer to encode.

    Returns:
        Variable-length encoded bytes.

    Raises:
        ValueError: If value is negative.

    Example:
        >>> encode_varint(252).hex()
        'fc'
        >>> encode_varint(255).hex()
        'fdff00'
    """
    if value < 0:
        raise ValueError(f"Varint value must be non-negative, got {value}")

    if value < 0xfd:
        return bytes([value])
    elif value <= 0xffff:
        return b'\xfd' + struct.pack('<H', value)
    elif value <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', value)
    else:
        return b'\xff' + struct.pack('<Q', value)


def encode_bytes(data: bytes) -> bytes:
    """Prefix a byte string with its varint length."""
    return encode_varint(len(data)) + data


# ---------------------------------------------------------------------------
# Hex helpers
# ---------------------------------------------------------------------------

def short_hex(data: bytes, length: int = 16) -> str:
    """
    Return the first ``length`` hex characters of ``data``.

    Used to keep transaction ids readable in log lines.
    """
    return data.hex()[:length]


# ---------------------------------------------------------------------------
# Base58Check
# ---------------------------------------------------------------------------

def base58check_encode(version: bytes, payload: bytes) -> str:
    """
    Encode data using Base58Check encoding with a version prefix and checksum.

    Format: Base58(version + payload + checksum)
    where checksum = first 4 bytes of double_sha256(version + payload)

    Args:
        version: Version byte(s) indicating the type of data.
        payload: The data to encode (e.g., a 20-byte address hash).

    Returns:
        Base58Check encoded string.

    Example:
        >>> base58check_encode(b'\\x00', bytes(20))
        '1111111111111111111114oLvT2'
    """
    data = version + payload
    checksum = double_sha256(data)[:4]
    return base58.b58encode(data + checksum).decode('ascii')


def base58check_decode(encoded: str) -> tuple:
    """
    Decode a Base58Check string, verifying the checksum.

    Args:
        encoded: Base58Check encoded string.

    Returns:
        A tuple of (version_bytes, payload_bytes).

    Raises:
        ValueError: If the data is too short or the checksum does not match.
    """
    data = base58.b58decode(encoded)
    if len(data) < 5:
        raise ValueError("Base58Check data too short (must be at least 5 bytes)")

    body, checksum = data[:-4], data[-4:]
    expected = double_sha256(body)[:4]
    if checksum != expected:
        raise ValueError(
            f"Base58Check checksum mismatch: "
            f"expected {expected.hex()}, got {checksum.hex()}"
        )
    return body[:1], body[1:]
