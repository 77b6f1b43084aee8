"""Partial fill ledger.

Tracks, per order, the encrypted remaining size together with the running
filled size and VWAP numerator/denominator. Each fill is clamped so the
remaining size can never wrap, and the order deactivates itself when the
remaining size reaches zero.
"""
import copy
import logging
from dataclasses import dataclass, field

from src.clo_common.enums import FheType, OrderField
from src.clo_common.errors import OrderNotFoundError
from src.clo_execution.engine.order_book import EncryptedOrderBook
from src.clo_fhe.decryption import DecryptionOracle
from src.clo_fhe.ops import FheOps
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import FillRecord, Order

logger = logging.getLogger(__name__)


@dataclass
class FillAccount:
    order_id: int
    owner: str
    filled_size: Ciphertext
    vwap_numerator: Ciphertext
    vwap_denominator: Ciphertext
    fills: list[FillRecord] = field(default_factory=list)
    # "remaining == 0" from the latest fill while its decryption is pending
    exhausted_signal: Ciphertext | None = None

    def encrypted_fields(self) -> dict[OrderField, Ciphertext]:
        return {
            OrderField.FILLED_SIZE: self.filled_size,
            OrderField.VWAP_NUMERATOR: self.vwap_numerator,
            OrderField.VWAP_DENOMINATOR: self.vwap_denominator,
        }


class PartialFillLedger:
    def __init__(self, fhe: FheOps, oracle: DecryptionOracle, book: EncryptedOrderBook) -> None:
        self._fhe = fhe
        self._oracle = oracle
        self._book = book
        self._accounts: dict[int, FillAccount] = {}

    def open_account(self, order: Order) -> FillAccount:
        zero = self._fhe.encrypt(0, FheType.EUINT128)
        account = FillAccount(
            order_id=order.id,
            owner=order.owner,
            filled_size=zero,
            vwap_numerator=zero,
            vwap_denominator=zero,
        )
        self._fhe.acl.grant(zero.handle, order.owner)
        self._accounts[order.id] = account
        return account

    def account(self, order_id: int) -> FillAccount:
        account = self._accounts.get(order_id)
        if account is None:
            raise OrderNotFoundError(order_id)
        return account

    def fills(self, order_id: int) -> list[FillRecord]:
        return list(self.account(order_id).fills)

    def record_fill(
        self, order_id: int, fill_size: Ciphertext, fill_price: Ciphertext, timestamp: int
    ) -> tuple[FillRecord, bool | None]:
        """Apply one execution; returns the record and the exhausted signal.

        The signal is the revealed ``remaining == 0`` flag, or None while
        its decryption is pending (kept on the account for a later check).
        """
        order = self._book.get(order_id)
        account = self.account(order_id)
        fhe = self._fhe

        order.remaining_size = fhe.sub_clamped(order.remaining_size, fill_size)
        account.filled_size = fhe.add(account.filled_size, fill_size)
        account.vwap_numerator = fhe.add(account.vwap_numerator, fhe.mul(fill_size, fill_price))
        account.vwap_denominator = fhe.add(account.vwap_denominator, fill_size)

        record = FillRecord(
            order_id=order_id,
            sequence=len(account.fills) + 1,
            size=fill_size,
            price=fill_price,
            timestamp=timestamp,
        )
        account.fills.append(record)

        exhausted = fhe.eq(order.remaining_size, fhe.encrypt(0, FheType.EUINT128))
        order.is_active = fhe.select(exhausted, fhe.false(), order.is_active)

        fhe.acl.grant_all(
            [
                fill_size,
                fill_price,
                order.remaining_size,
                order.is_active,
                account.filled_size,
                account.vwap_numerator,
                account.vwap_denominator,
            ],
            order.owner,
        )

        signal = self._oracle.reveal_flag(exhausted)
        account.exhausted_signal = exhausted if signal is None else None
        return record, signal

    def check_exhausted(self, order_id: int) -> bool | None:
        """Retry a pending exhausted signal; None if none is pending or still decrypting."""
        account = self.account(order_id)
        if account.exhausted_signal is None:
            return None
        signal = self._oracle.reveal_flag(account.exhausted_signal)
        if signal is not None:
            account.exhausted_signal = None
        return signal

    def average_price(self, order_id: int) -> Ciphertext:
        """numerator / max(denominator, 1), granted to the owner."""
        account = self.account(order_id)
        one = self._fhe.encrypt(1, FheType.EUINT128)
        average = self._fhe.div(account.vwap_numerator, self._fhe.max(account.vwap_denominator, one))
        self._fhe.acl.grant(average.handle, account.owner)
        return average

    def snapshot(self) -> dict[int, FillAccount]:
        return copy.deepcopy(self._accounts)

    def restore(self, state: dict[int, FillAccount]) -> None:
        self._accounts = state
