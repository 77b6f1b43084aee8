"""FheBackend Protocol — interface contract for the homomorphic coprocessor.

The coprocessor is an opaque capability: it computes on ciphertext handles
and, on request, publishes plaintexts asynchronously. Nothing in this
package depends on how the scheme works.
"""
from typing import Protocol

from src.clo_common.enums import FheOp, FheType
from src.clo_fhe.types import Ciphertext, EncryptedInput


class InvalidCiphertextInput(ValueError):
    """Raised by ``ingest`` when client input cannot be turned into a handle."""


class FheBackend(Protocol):
    def ingest(self, value: EncryptedInput) -> Ciphertext: ...

    def trivial_encrypt(self, value: int, fhe_type: FheType) -> Ciphertext: ...

    def apply(self, op: FheOp, *operands: Ciphertext) -> Ciphertext: ...

    def cast(self, value: Ciphertext, fhe_type: FheType) -> Ciphertext: ...

    def request_decryption(self, handle: int) -> None: ...

    def decryption_result(self, handle: int) -> int | None:
        """Published plaintext for ``handle``, or None while still pending."""
        ...

    def verify_plaintext(self, handle: int, value: int) -> bool: ...
