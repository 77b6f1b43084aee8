"""In-process mock coprocessor.

Keeps plaintexts in a private table keyed by handle and evaluates every
operation with the wrap-around semantics of the declared width, so code
that would underflow a real FHE uint underflows here too. Every operation
is counted, which lets tests assert that the sequence of operations the
engine issues does not depend on secret values.

Client input format (``client_encrypt`` / ``ingest``):
    b"CLO1" | type code (1 byte) | value (16 bytes, big-endian)
"""
import itertools
import logging
from collections import Counter

from src.clo_common.enums import FheOp, FheType
from src.clo_fhe.backend import InvalidCiphertextInput
from src.clo_fhe.types import Ciphertext, EncryptedInput

logger = logging.getLogger(__name__)

_MAGIC = b"CLO1"
_VALUE_BYTES = 16
_TYPE_CODES: dict[FheType, int] = {
    FheType.EBOOL: 0,
    FheType.EUINT8: 2,
    FheType.EUINT64: 5,
    FheType.EUINT128: 6,
}
_CODE_TYPES = {code: t for t, code in _TYPE_CODES.items()}

_ARITHMETIC = {FheOp.ADD, FheOp.SUB, FheOp.MUL, FheOp.DIV, FheOp.MIN, FheOp.MAX}
_COMPARISON = {FheOp.GTE, FheOp.LTE, FheOp.EQ}
_LOGICAL = {FheOp.AND, FheOp.OR}


def _mask(fhe_type: FheType) -> int:
    return (1 << fhe_type.bits) - 1


class MockFheBackend:
    """Plaintext-simulating implementation of FheBackend."""

    def __init__(self, resolve_immediately: bool = True) -> None:
        self.resolve_immediately = resolve_immediately
        self._values: dict[int, int] = {}
        self._types: dict[int, FheType] = {}
        self._handles = itertools.count(0x1000)
        self._pending: set[int] = set()
        self._published: dict[int, int] = {}
        self.op_counts: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Client SDK side
    # ------------------------------------------------------------------

    def client_encrypt(self, value: int, fhe_type: FheType) -> EncryptedInput:
        """Encrypt a plaintext the way a client would before submitting it."""
        if value < 0 or value > _mask(fhe_type):
            raise ValueError(f"value does not fit in {fhe_type.value}")
        data = _MAGIC + bytes([_TYPE_CODES[fhe_type]]) + value.to_bytes(_VALUE_BYTES, "big")
        return EncryptedInput(data=data, fhe_type=fhe_type)

    # ------------------------------------------------------------------
    # FheBackend
    # ------------------------------------------------------------------

    def ingest(self, value: EncryptedInput) -> Ciphertext:
        data = value.data
        if len(data) != len(_MAGIC) + 1 + _VALUE_BYTES or not data.startswith(_MAGIC):
            raise InvalidCiphertextInput("unrecognised ciphertext encoding")
        encoded_type = _CODE_TYPES.get(data[len(_MAGIC)])
        if encoded_type is None:
            raise InvalidCiphertextInput("unknown ciphertext type code")
        if encoded_type is not value.fhe_type:
            raise InvalidCiphertextInput(
                f"declared {value.fhe_type.value} but encoded {encoded_type.value}"
            )
        plain = int.from_bytes(data[len(_MAGIC) + 1:], "big")
        if plain > _mask(encoded_type):
            raise InvalidCiphertextInput("encoded value exceeds declared width")
        self.op_counts["INGEST"] += 1
        return self._store(plain, encoded_type)

    def trivial_encrypt(self, value: int, fhe_type: FheType) -> Ciphertext:
        self.op_counts["TRIVIAL"] += 1
        return self._store(value & _mask(fhe_type), fhe_type)

    def apply(self, op: FheOp, *operands: Ciphertext) -> Ciphertext:
        self.op_counts[op.value] += 1
        if op is FheOp.SELECT:
            return self._select(*operands)
        if op is FheOp.NOT:
            (a,) = operands
            return self._store(~self._values[a.handle] & _mask(a.fhe_type), a.fhe_type)

        a, b = operands
        if a.fhe_type is not b.fhe_type:
            raise TypeError(f"{op.value}: operand types differ ({a.fhe_type}, {b.fhe_type})")
        x, y = self._values[a.handle], self._values[b.handle]
        if op in _COMPARISON:
            result = {FheOp.GTE: x >= y, FheOp.LTE: x <= y, FheOp.EQ: x == y}[op]
            return self._store(int(result), FheType.EBOOL)
        if op in _LOGICAL:
            return self._store(x & y if op is FheOp.AND else x | y, a.fhe_type)
        if op in _ARITHMETIC:
            return self._store(self._arith(op, x, y, a.fhe_type), a.fhe_type)
        raise ValueError(f"unsupported op {op}")

    def cast(self, value: Ciphertext, fhe_type: FheType) -> Ciphertext:
        self.op_counts["CAST"] += 1
        return self._store(self._values[value.handle] & _mask(fhe_type), fhe_type)

    def request_decryption(self, handle: int) -> None:
        if handle not in self._values:
            raise KeyError(handle)
        if handle in self._published:
            return
        if self.resolve_immediately:
            self._published[handle] = self._values[handle]
        else:
            self._pending.add(handle)

    def decryption_result(self, handle: int) -> int | None:
        return self._published.get(handle)

    def verify_plaintext(self, handle: int, value: int) -> bool:
        return self._values.get(handle) == value

    # ------------------------------------------------------------------
    # Test / local-dev helpers
    # ------------------------------------------------------------------

    def resolve_pending(self) -> int:
        """Publish every pending decryption; returns how many were published."""
        count = len(self._pending)
        for handle in self._pending:
            self._published[handle] = self._values[handle]
        self._pending.clear()
        logger.debug("Mock coprocessor published %d pending decryptions", count)
        return count

    def plaintext_of(self, value: Ciphertext) -> int:
        """Read a plaintext directly. Tests only; bypasses every grant."""
        return self._values[value.handle]

    @property
    def op_total(self) -> int:
        return sum(self.op_counts.values())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _store(self, value: int, fhe_type: FheType) -> Ciphertext:
        handle = next(self._handles)
        self._values[handle] = value
        self._types[handle] = fhe_type
        return Ciphertext(handle=handle, fhe_type=fhe_type)

    def _select(self, cond: Ciphertext, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        if cond.fhe_type is not FheType.EBOOL:
            raise TypeError("SELECT condition must be EBOOL")
        if a.fhe_type is not b.fhe_type:
            raise TypeError(f"SELECT: branch types differ ({a.fhe_type}, {b.fhe_type})")
        chosen = a if self._values[cond.handle] else b
        return self._store(self._values[chosen.handle], a.fhe_type)

    @staticmethod
    def _arith(op: FheOp, x: int, y: int, fhe_type: FheType) -> int:
        mask = _mask(fhe_type)
        if op is FheOp.ADD:
            return (x + y) & mask
        if op is FheOp.SUB:
            return (x - y) & mask
        if op is FheOp.MUL:
            return (x * y) & mask
        if op is FheOp.DIV:
            # TFHE-style: division by zero yields the all-ones value
            return mask if y == 0 else x // y
        if op is FheOp.MIN:
            return min(x, y)
        return max(x, y)
