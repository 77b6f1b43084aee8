"""Trigger and fill-size computation over ciphertexts.

Every function here issues the same sequence of homomorphic operations
whatever the encrypted inputs hold: there is no Python branch on a secret,
only ``select``. The caller learns nothing until it reveals the final fill.
"""
from dataclasses import dataclass

from src.clo_common.enums import FheType, OrderDirection
from src.clo_fhe.ops import FheOps
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import Order


@dataclass(frozen=True)
class FillDecision:
    """Ciphertexts produced for one order in one price update."""

    is_sell: Ciphertext
    triggered: Ciphertext
    eligible: Ciphertext
    fill: Ciphertext  # EUINT128, zero when not eligible


def is_sell_side(fhe: FheOps, direction: Ciphertext) -> Ciphertext:
    return fhe.eq(direction, fhe.encrypt(OrderDirection.SELL.code, FheType.EUINT8))


def trigger_condition(
    fhe: FheOps, is_sell: Ciphertext, trigger_price: Ciphertext, current_price: Ciphertext
) -> Ciphertext:
    """Sell triggers at price >= trigger, buy at price <= trigger.

    Both comparisons are always evaluated; the encrypted side picks one.
    """
    at_or_above = fhe.gte(current_price, trigger_price)
    at_or_below = fhe.lte(current_price, trigger_price)
    return fhe.select(is_sell, at_or_above, at_or_below)


def side_liquidity(
    fhe: FheOps, is_sell: Ciphertext, buy_liquidity: Ciphertext, sell_liquidity: Ciphertext
) -> Ciphertext:
    return fhe.select(is_sell, sell_liquidity, buy_liquidity)


def compute_fill(
    fhe: FheOps,
    order: Order,
    current_price: Ciphertext,
    buy_liquidity: Ciphertext,
    sell_liquidity: Ciphertext,
) -> FillDecision:
    """Size the fill for one order against the liquidity left on its side.

    fill = candidate if triggered AND active AND
           ((partial allowed AND candidate >= min fill) OR candidate == remaining)
    else 0, where candidate = min(remaining, side liquidity).

    The ``candidate == remaining`` arm makes all-or-nothing orders fill only
    in full, and lets a partial order take a tail smaller than its minimum.
    """
    is_sell = is_sell_side(fhe, order.direction)
    triggered = trigger_condition(fhe, is_sell, order.trigger_price, current_price)
    available = side_liquidity(fhe, is_sell, buy_liquidity, sell_liquidity)
    candidate = fhe.min(order.remaining_size, available)

    meets_minimum = fhe.and_(order.partial_fill_allowed, fhe.gte(candidate, order.min_fill_size))
    is_full = fhe.eq(candidate, order.remaining_size)
    size_ok = fhe.or_(meets_minimum, is_full)

    eligible = fhe.and_(fhe.and_(triggered, order.is_active), size_ok)
    fill = fhe.select(eligible, candidate, fhe.encrypt(0, FheType.EUINT128))
    return FillDecision(is_sell=is_sell, triggered=triggered, eligible=eligible, fill=fill)


def consume_liquidity(
    fhe: FheOps,
    is_sell: Ciphertext,
    fill: Ciphertext,
    buy_liquidity: Ciphertext,
    sell_liquidity: Ciphertext,
) -> tuple[Ciphertext, Ciphertext]:
    """Subtract a fill from whichever side it used, without revealing the side."""
    zero = fhe.encrypt(0, FheType.EUINT128)
    sell_used = fhe.select(is_sell, fill, zero)
    buy_used = fhe.select(is_sell, zero, fill)
    return (
        fhe.sub_clamped(buy_liquidity, buy_used),
        fhe.sub_clamped(sell_liquidity, sell_used),
    )
