"""Unsigned transaction payloads for frontend wallets.

Nothing here holds keys, estimates gas or submits anything; each call is
returned as ``{to, data, value}`` for the wallet to sign.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .. import codec
from ..errors import ConfigError, InputError
from ..interfaces.chain import ChainReader
from ..models import (
    BorrowTx,
    DepositTx,
    LiquidateTx,
    MintTx,
    RepayTx,
    TxCall,
    WithdrawTx,
)
from ..validation import parse_address, parse_decimal, parse_positive_decimal, parse_uint

logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Builds approve-then-action bundles against the pool and its token."""

    def __init__(
        self,
        reader: ChainReader,
        pool_address: str,
        token_address: str,
        quote_validity_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        try:
            self.pool = parse_address(pool_address, "lending_pool")
            self.token = parse_address(token_address, "token")
        except InputError as e:
            raise ConfigError(str(e)) from e
        self._reader = reader
        self._validity = quote_validity_seconds
        self._clock = clock

    def _call(self, to: str, fn: codec.ContractFunction, *args: object, value: int = 0) -> TxCall:
        return TxCall(to=to, data=codec.to_hex(codec.encode_call(fn, *args)), value=str(value))

    def _approve(self, amount: int) -> TxCall:
        return self._call(self.token, codec.APPROVE, self.pool, amount)

    # ------------------------------------------------------------------
    # Lender side
    # ------------------------------------------------------------------

    def build_deposit(self, amount: str) -> DepositTx:
        """approve(pool, amount) + deposit(amount)."""
        amt = parse_positive_decimal(amount, "amount")
        return DepositTx(
            approve=self._approve(amt),
            deposit=self._call(self.pool, codec.DEPOSIT, amt),
        )

    def build_withdraw(self, shares: str) -> WithdrawTx:
        """withdraw(shares): burns fTokens, no approval needed."""
        amt = parse_positive_decimal(shares, "amount")
        return WithdrawTx(withdraw=self._call(self.pool, codec.WITHDRAW, amt))

    # ------------------------------------------------------------------
    # Borrower side
    # ------------------------------------------------------------------

    def build_borrow(self, amount: str, duration: int | str, collateral_wei: str) -> BorrowTx:
        """borrow(amount, duration) carrying the collateral as call value.

        The collateral is taken as given (usually from a quote); it is not
        recomputed here.
        """
        amt = parse_positive_decimal(amount, "amount")
        dur = parse_uint(duration, "duration")
        collateral = parse_decimal(collateral_wei, "collateralWei")
        return BorrowTx(
            borrow=self._call(self.pool, codec.BORROW, amt, dur, value=collateral)
        )

    async def _read_repayment(self, loan_id: int) -> tuple[int, int]:
        # Always a fresh read: the approval must match the loan right now.
        loan = await self._reader.get_loan(loan_id)
        if not loan.is_active:
            raise InputError(f"loan {loan_id} is not active")
        quoted_at = int(self._clock())
        amount = parse_decimal(loan.repayment_amount, "repaymentAmount")
        return amount, quoted_at

    async def build_repay(self, loan_id: int | str) -> RepayTx:
        """approve(pool, repaymentAmount) + repay(loanId)."""
        loan_id = parse_uint(loan_id, "loanId")
        amount, quoted_at = await self._read_repayment(loan_id)
        logger.info("Built repay for loan %d (repayment %d)", loan_id, amount)
        return RepayTx(
            loan_id=loan_id,
            approve=self._approve(amount),
            repay=self._call(self.pool, codec.REPAY, loan_id),
            repayment_amount=str(amount),
            quoted_at=quoted_at,
            valid_until=quoted_at + self._validity,
        )

    async def build_liquidate(self, loan_id: int | str) -> LiquidateTx:
        """approve(pool, repaymentAmount) + liquidate(loanId)."""
        loan_id = parse_uint(loan_id, "loanId")
        amount, quoted_at = await self._read_repayment(loan_id)
        logger.info("Built liquidate for loan %d (repayment %d)", loan_id, amount)
        return LiquidateTx(
            loan_id=loan_id,
            approve=self._approve(amount),
            liquidate=self._call(self.pool, codec.LIQUIDATE, loan_id),
            repayment_amount=str(amount),
            quoted_at=quoted_at,
            valid_until=quoted_at + self._validity,
        )

    async def recheck(self, bundle: RepayTx | LiquidateTx) -> bool:
        """Re-read the loan; True if it is still open and the approved amount is current."""
        loan = await self._reader.get_loan(bundle.loan_id)
        if not loan.is_active:
            logger.info("Loan %d closed since it was quoted", bundle.loan_id)
            return False
        if loan.repayment_amount != bundle.repayment_amount:
            logger.info(
                "Loan %d repayment moved from %s to %s",
                bundle.loan_id,
                bundle.repayment_amount,
                loan.repayment_amount,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Testnet faucet
    # ------------------------------------------------------------------

    def build_mint(self, to: str, amount: str) -> MintTx:
        """mint(to, amount) on the mock token; only its owner can send it."""
        recipient = parse_address(to, "to")
        amt = parse_positive_decimal(amount, "amount")
        return MintTx(mint=self._call(self.token, codec.MINT, recipient, amt))
