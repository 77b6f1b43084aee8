"""Ciphertext value types — pure dataclasses, no backend dependency."""
from dataclasses import dataclass

from src.clo_common.enums import FheType


@dataclass(frozen=True)
class Ciphertext:
    """Opaque handle to an encrypted value held by the coprocessor.

    The handle reveals nothing about the plaintext; who may decrypt it is
    decided by the access-control grants attached to ``handle``.
    """

    handle: int
    fhe_type: FheType

    def __str__(self) -> str:
        return f"{self.fhe_type.value}:{self.handle:#x}"


@dataclass(frozen=True)
class EncryptedInput:
    """Client-side encrypted value, as submitted with an order.

    ``fhe_type`` is the width the client declares; the backend checks it
    against what is actually encoded in ``data``.
    """

    data: bytes
    fhe_type: FheType
