"""Collateral quotes in exact integer fixed-point arithmetic.

The required native collateral (wei) for a borrow satisfies::

    collateral * price * ltv >= amount_usd18 * 10^18 * 100

where ``amount_usd18`` is the borrow amount rescaled to 18 decimals and
``price`` is the oracle's native/USD price with 18 decimals. The quotient
is rounded up so rounding can never under-collateralize a loan. No floats
are involved anywhere.
"""
from __future__ import annotations

import logging

from ..errors import InputError
from ..interfaces.chain import ChainReader
from ..models import BorrowQuote
from ..validation import parse_positive_decimal
from .state_cache import StateCache

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 18
ONE_NATIVE = 10**18
DEFAULT_MAX_LTV_PERCENT = 75


def ceil_div(numerator: int, denominator: int) -> int:
    quotient, remainder = divmod(numerator, denominator)
    if remainder:
        quotient += 1
    return quotient


def required_collateral(
    amount: int,
    price: int,
    max_ltv_percent: int = DEFAULT_MAX_LTV_PERCENT,
    borrow_decimals: int = 6,
) -> int:
    """Minimum collateral in wei to borrow ``amount`` smallest units.

    Args:
        amount: borrow amount in the borrowed token's smallest unit.
        price: native/USD price with 18 decimals.
        max_ltv_percent: maximum loan-to-value, in whole percent.
        borrow_decimals: decimals of the borrowed token (6 for USDT).
    """
    if amount <= 0:
        raise InputError("amount must be positive")
    if price <= 0:
        raise InputError("oracle returned non-positive price")
    if not 1 <= max_ltv_percent <= 100:
        raise InputError(f"max LTV percent out of range: {max_ltv_percent}")
    if not 0 <= borrow_decimals <= PRICE_DECIMALS:
        raise InputError(f"borrow decimals out of range: {borrow_decimals}")

    amount_usd = amount * 10 ** (PRICE_DECIMALS - borrow_decimals)
    numerator = amount_usd * ONE_NATIVE * 100
    denominator = price * max_ltv_percent
    return ceil_div(numerator, denominator)


class QuoteEngine:
    """Computes borrow quotes, preferring the cached oracle price."""

    def __init__(
        self,
        reader: ChainReader,
        cache: StateCache | None = None,
        max_ltv_percent: int = DEFAULT_MAX_LTV_PERCENT,
        borrow_decimals: int = 6,
    ) -> None:
        self._reader = reader
        self._cache = cache
        self.max_ltv_percent = max_ltv_percent
        self.borrow_decimals = borrow_decimals

    async def _native_price(self) -> int:
        if self._cache is not None:
            price, found = self._cache.get_native_price()
            if found:
                return price
        logger.debug("Native price not cached, reading oracle")
        return await self._reader.get_native_price()

    async def quote_borrow_collateral(self, amount: str) -> BorrowQuote:
        """Quote collateral for a decimal-string borrow amount."""
        amt = parse_positive_decimal(amount, "amount")
        price = await self._native_price()

        collateral = required_collateral(
            amt, price, self.max_ltv_percent, self.borrow_decimals
        )
        return BorrowQuote(
            borrow_amount=str(amt),
            collateral_wei=str(collateral),
            native_usd_price=str(price),
            max_ltv_percent=str(self.max_ltv_percent),
        )
