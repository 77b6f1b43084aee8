"""FheOps — the engine's view of the coprocessor.

Every operand must already carry a grant for the engine principal, and every
result is granted to the engine before it is handed back, so nothing the
engine stores can become uncomputable.
"""
from src.clo_common.enums import FheOp, FheType
from src.clo_fhe.access_control import AccessControl
from src.clo_fhe.backend import FheBackend
from src.clo_fhe.types import Ciphertext, EncryptedInput


class FheOps:
    def __init__(self, backend: FheBackend, acl: AccessControl, principal: str) -> None:
        self.backend = backend
        self.acl = acl
        self.principal = principal

    # --- grants -----------------------------------------------------------

    def _use(self, *operands: Ciphertext) -> None:
        for operand in operands:
            self.acl.require(operand.handle, self.principal)

    def _own(self, value: Ciphertext) -> Ciphertext:
        self.acl.grant(value.handle, self.principal)
        return value

    def _apply(self, op: FheOp, *operands: Ciphertext) -> Ciphertext:
        self._use(*operands)
        return self._own(self.backend.apply(op, *operands))

    # --- inputs -----------------------------------------------------------

    def ingest(self, value: EncryptedInput) -> Ciphertext:
        """Turn client input into an engine-owned handle.

        Raises InvalidCiphertextInput from the backend on bad encodings.
        """
        return self._own(self.backend.ingest(value))

    def encrypt(self, value: int, fhe_type: FheType) -> Ciphertext:
        """Trivial encryption of a public value so it can meet private ones."""
        return self._own(self.backend.trivial_encrypt(value, fhe_type))

    def true(self) -> Ciphertext:
        return self.encrypt(1, FheType.EBOOL)

    def false(self) -> Ciphertext:
        return self.encrypt(0, FheType.EBOOL)

    def cast(self, value: Ciphertext, fhe_type: FheType) -> Ciphertext:
        self._use(value)
        return self._own(self.backend.cast(value, fhe_type))

    # --- arithmetic -------------------------------------------------------

    def add(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.ADD, a, b)

    def sub(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        """Wrapping subtraction. Use sub_clamped wherever b may exceed a."""
        return self._apply(FheOp.SUB, a, b)

    def sub_clamped(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        """max(a - b, 0) without ever wrapping around."""
        fits = self.gte(a, b)
        return self.select(fits, self.sub(a, b), self.encrypt(0, a.fhe_type))

    def mul(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.MUL, a, b)

    def div(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.DIV, a, b)

    def min(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.MIN, a, b)

    def max(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.MAX, a, b)

    # --- comparison / logic ----------------------------------------------

    def gte(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.GTE, a, b)

    def lte(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.LTE, a, b)

    def eq(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.EQ, a, b)

    def and_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.AND, a, b)

    def or_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.OR, a, b)

    def not_(self, a: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.NOT, a)

    def select(self, cond: Ciphertext, if_true: Ciphertext, if_false: Ciphertext) -> Ciphertext:
        return self._apply(FheOp.SELECT, cond, if_true, if_false)
