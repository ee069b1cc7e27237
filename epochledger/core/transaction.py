"""
Transaction data structures.

- **TxOutput**: a value and the public key (``recipient``) allowed to spend
  it. Values are integers in the ledger's smallest unit. A negative value
  can be constructed and serialized; it is rejected at validation time.

- **TxInput**: a reference to a previously produced output
  (``prev_tx_hash``, ``output_index``) plus the signature that authorizes
  spending it.

- **Transaction**: ordered inputs and ordered outputs. Its ``hash`` is the
  double SHA-256 of the raw transaction (signatures included) and is the
  identity under which its outputs enter the UTXO pool: output ``i`` becomes
  ``UTXO(tx.hash, i)``.

Signing payload for input ``i`` (``get_raw_data_to_sign``)::

    prev_tx_hash || output_index (u32 LE)
    || for each output: value (i64 LE) || recipient (33-byte compressed key)

Every input commits to all outputs, so reordering or altering outputs
invalidates every signature, while other inputs' signatures are not covered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from epochledger.core.utxo import UTXO
from epochledger.crypto.hash import double_sha256
from epochledger.utils.encoding import (
    ENCODING_ERRORS,
    encode_bytes,
    encode_varint,
    int64_to_little_endian,
    short_hex,
    uint32_to_little_endian,
)

if TYPE_CHECKING:
    from epochledger.crypto.keys import PrivateKey, PublicKey


# ---------------------------------------------------------------------------
# TxOutput
# ---------------------------------------------------------------------------

class TxOutput:
    """
    A transaction output assigns a value to a recipient public key.

    Outputs are treated as immutable once created. A pool copy rebuilds
    its outputs but shares their recipient keys.

    Attributes:
        value: Amount in the ledger's smallest unit.
        recipient: PublicKey that must sign to spend this output.
    """

    __slots__ = ('value', 'recipient')

    def __init__(self, value: int, recipient: "PublicKey"):
        self.value = value
        self.recipient = recipient

    def serialize(self) -> bytes:
        """
        Serialize this output.

        Format:
            - value: 8 bytes, signed little-endian
            - recipient: 33 bytes, compressed public key
        """
        return int64_to_little_endian(self.value) + self.recipient.to_bytes()

    def __repr__(self) -> str:
        return (
            f"TxOutput(value={self.value}, "
            f"recipient='{self.recipient.to_hex()[:16]}...')"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, TxOutput):
            return NotImplemented
        return self.value == other.value and self.recipient == other.recipient

    def __hash__(self) -> int:
        return hash((self.value, self.recipient))


# ---------------------------------------------------------------------------
# TxInput
# ---------------------------------------------------------------------------

class TxInput:
    """
    A transaction input references a previous output and carries the
    signature authorizing the spend.

    Attributes:
        prev_tx_hash: Hash of the transaction that produced the output.
        output_index: Index of the output within that transaction.
        signature: DER-encoded signature (empty until signed).
    """

    def __init__(self, prev_tx_hash: bytes, output_index: int, signature: bytes = b''):
        self.prev_tx_hash = prev_tx_hash
        self.output_index = output_index
        self.signature = signature

    @property
    def utxo(self) -> UTXO:
        """The UTXO this input claims."""
        return UTXO(self.prev_tx_hash, self.output_index)

    def serialize(self) -> bytes:
        """
        Serialize this input.

        Format:
            - prev_tx_hash: varint length + raw bytes
            - output_index: 4 bytes, little-endian
            - signature: varint length + raw bytes
        """
        return (
            encode_bytes(self.prev_tx_hash)
            + uint32_to_little_endian(self.output_index)
            + encode_bytes(self.signature)
        )

    def __repr__(self) -> str:
        return (
            f"TxInput(prev='{short_hex(self.prev_tx_hash)}...', "
            f"index={self.output_index})"
        )


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------

class Transaction:
    """
    An ordered list of inputs spending existing outputs and an ordered list
    of new outputs.

    The content hash is computed lazily and cached. Every mutator below
    drops the cached value, so ``hash`` always reflects the current content
    as long as inputs and outputs are changed through these methods.

    Attributes:
        inputs: List of TxInput objects.
        outputs: List of TxOutput objects.
    """

    def __init__(
        self,
        inputs: Optional[list] = None,
        outputs: Optional[list] = None,
    ):
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self._hash: Optional[bytes] = None

    # -- construction -------------------------------------------------------

    def add_input(self, prev_tx_hash: bytes, output_index: int) -> TxInput:
        """Append an unsigned input spending ``(prev_tx_hash, output_index)``."""
        tx_input = TxInput(prev_tx_hash, output_index)
        self.inputs.append(tx_input)
        self._hash = None
        return tx_input

    def add_output(self, value: int, recipient: "PublicKey") -> TxOutput:
        """Append an output paying ``value`` to ``recipient``."""
        tx_output = TxOutput(value, recipient)
        self.outputs.append(tx_output)
        self._hash = None
        return tx_output

    def remove_input(self, index: int) -> TxInput:
        """Remove and return the input at ``index``."""
        tx_input = self.inputs.pop(index)
        self._hash = None
        return tx_input

    def add_signature(self, signature: bytes, index: int) -> None:
        """
        Attach a signature to the input at ``index``.

        Raises:
            ValueError: If there is no input at ``index``.
        """
        self._check_input_index(index)
        self.inputs[index].signature = signature
        self._hash = None

    def sign_input(self, index: int, private_key: "PrivateKey") -> bytes:
        """
        Sign the input at ``index`` with ``private_key`` and attach the
        signature.

        Returns:
            The DER-encoded signature.
        """
        signature = private_key.sign(self.get_raw_data_to_sign(index))
        self.add_signature(signature, index)
        return signature

    # -- serialization ------------------------------------------------------

    def get_raw_data_to_sign(self, index: int) -> bytes:
        """
        Build the canonical signing payload for the input at ``index``.

        The payload covers the input's outpoint and every output, but no
        signatures, so it is stable while other inputs are being signed.

        Raises:
            ValueError: If there is no input at ``index``.
        """
        self._check_input_index(index)
        tx_input = self.inputs[index]
        result = tx_input.prev_tx_hash + uint32_to_little_endian(tx_input.output_index)
        for txout in self.outputs:
            result += txout.serialize()
        return result

    def serialize(self) -> bytes:
        """
        Serialize the full transaction, signatures included.

        Format:
            - input_count: varint
            - inputs: serialized sequentially
            - output_count: varint
            - outputs: serialized sequentially
        """
        result = encode_varint(len(self.inputs))
        for txin in self.inputs:
            result += txin.serialize()

        result += encode_varint(len(self.outputs))
        for txout in self.outputs:
            result += txout.serialize()
        return result

    get_raw_tx = serialize

    # -- identity -----------------------------------------------------------

    @property
    def hash(self) -> bytes:
        """
        The 32-byte content hash: double SHA-256 of :meth:`serialize`.
        """
        if self._hash is None:
            self._hash = double_sha256(self.serialize())
        return self._hash

    @property
    def txid(self) -> str:
        """The content hash as a 64-character lowercase hex string."""
        return self.hash.hex()

    def short_id(self) -> str:
        """
        First 16 hex characters of the txid, for log lines.

        Transactions carrying fields that cannot be serialized (an index
        outside u32, a value outside i64) have no hash; they are shown as
        ``<unencodable>`` instead of raising.
        """
        try:
            return self.txid[:16]
        except ENCODING_ERRORS:
            return "<unencodable>"

    # -- helpers ------------------------------------------------------------

    def spent_utxos(self) -> list:
        """Return the UTXO claimed by each input, in input order."""
        return [txin.utxo for txin in self.inputs]

    def sum_outputs(self) -> int:
        """Total value of all outputs (negative values included)."""
        return sum(txout.value for txout in self.outputs)

    def _check_input_index(self, index: int) -> None:
        if not 0 <= index < len(self.inputs):
            raise ValueError(
                f"Input index {index} out of range for transaction "
                f"with {len(self.inputs)} inputs"
            )

    def __repr__(self) -> str:
        return (
            f"Transaction(txid='{self.short_id()}...', "
            f"inputs={len(self.inputs)}, outputs={len(self.outputs)})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.hash == other.hash

    def __hash__(self) -> int:
        return hash(self.hash)
