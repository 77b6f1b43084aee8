"""Structural validation of order placement.

Checks shape only: presence and declared width of every encrypted field,
plus non-empty public identifiers. Plaintext values are opaque here.
"""
from src.clo_common.errors import MalformedOrderError
from src.clo_order.domain.models import ENCRYPTED_FIELD_TYPES, EncryptedOrderInputs


def check_order_shape(owner: str, pool: str, inputs: EncryptedOrderInputs) -> None:
    """Raise MalformedOrderError on the first structural defect."""
    if not owner or not owner.strip():
        raise MalformedOrderError("owner is required")
    if not pool or not pool.strip():
        raise MalformedOrderError("pool is required")
    for name, value in inputs.items():
        if value is None:
            raise MalformedOrderError(f"missing encrypted field '{name}'")
        expected = ENCRYPTED_FIELD_TYPES[name]
        if value.fhe_type is not expected:
            raise MalformedOrderError(
                f"field '{name}' must be {expected.value}, got {value.fhe_type.value}"
            )
        if not value.data:
            raise MalformedOrderError(f"field '{name}' carries no ciphertext")
