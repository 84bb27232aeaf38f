"""Data models. All frozen (immutable).

Amounts are decimal strings of arbitrary-precision integers so nothing
is rounded on the way to the frontend.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PoolState:
    """Aggregate metrics returned by ``getPoolState()``."""

    total_assets: str
    total_borrowed: str
    available_liquidity: str
    exchange_rate: str
    total_ftoken_supply: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAssets": self.total_assets,
            "totalBorrowed": self.total_borrowed,
            "availableLiquidity": self.available_liquidity,
            "exchangeRate": self.exchange_rate,
            "totalFTokenSupply": self.total_ftoken_supply,
        }


@dataclass(frozen=True)
class Loan:
    """A single on-chain loan, read-only from this service's side."""

    id: int
    borrower: str
    collateral_amount: str
    principal: str
    repayment_amount: str
    start_time: int
    duration: int
    is_active: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "borrower": self.borrower,
            "collateralAmount": self.collateral_amount,
            "principal": self.principal,
            "repaymentAmount": self.repayment_amount,
            "startTime": self.start_time,
            "duration": self.duration,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class LoanHealth:
    ltv: str
    is_liquidatable: bool

    def to_dict(self) -> dict[str, Any]:
        return {"ltv": self.ltv, "isLiquidatable": self.is_liquidatable}


@dataclass(frozen=True)
class UserPosition:
    address: str
    loan_ids: tuple[int, ...]
    total_principal: str
    total_repayment: str
    total_collateral: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "loanIds": list(self.loan_ids),
            "totalPrincipal": self.total_principal,
            "totalRepayment": self.total_repayment,
            "totalCollateral": self.total_collateral,
        }


@dataclass(frozen=True)
class LenderPosition:
    """LP share balance and its underlying value.

    ``net_deposited`` and ``interest`` need off-chain deposit tracking that
    does not exist yet; they stay ``None`` (rendered as null) rather than
    reporting a made-up figure.
    """

    address: str
    ftoken_balance: str
    exchange_rate: str
    underlying_balance: str
    net_deposited: str | None = None
    interest: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "fTokenBalance": self.ftoken_balance,
            "exchangeRate": self.exchange_rate,
            "underlyingBalance": self.underlying_balance,
            "netDeposited": self.net_deposited,
            "interest": self.interest,
        }


@dataclass(frozen=True)
class BorrowQuote:
    """Collateral quote with every integer that went into it."""

    borrow_amount: str
    collateral_wei: str
    native_usd_price: str
    max_ltv_percent: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "borrowAmount": self.borrow_amount,
            "collateralWei": self.collateral_wei,
            "nativeUsdPrice": self.native_usd_price,
            "maxLtvPercent": self.max_ltv_percent,
        }


# ---------------------------------------------------------------------------
# Unsigned transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TxCall:
    """One unsigned call: recipient, call data, native value."""

    to: str
    data: str
    value: str = "0"

    def to_dict(self) -> dict[str, Any]:
        return {"to": self.to, "data": self.data, "value": self.value}


@dataclass(frozen=True)
class DepositTx:
    approve: TxCall
    deposit: TxCall

    @property
    def calls(self) -> tuple[TxCall, ...]:
        return (self.approve, self.deposit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "approve": self.approve.to_dict(),
            "deposit": self.deposit.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
        }


@dataclass(frozen=True)
class WithdrawTx:
    withdraw: TxCall

    @property
    def calls(self) -> tuple[TxCall, ...]:
        return (self.withdraw,)

    def to_dict(self) -> dict[str, Any]:
        return {
            "withdraw": self.withdraw.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
        }


@dataclass(frozen=True)
class BorrowTx:
    borrow: TxCall

    @property
    def calls(self) -> tuple[TxCall, ...]:
        return (self.borrow,)

    def to_dict(self) -> dict[str, Any]:
        return {
            "borrow": self.borrow.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
        }


@dataclass(frozen=True)
class RepayTx:
    """approve + repay, sized from the loan read at ``quoted_at``.

    The approved amount can go stale once the loan accrues on-chain;
    ``valid_until`` bounds how long the frontend should trust it.
    """

    loan_id: int
    approve: TxCall
    repay: TxCall
    repayment_amount: str
    quoted_at: int
    valid_until: int

    @property
    def calls(self) -> tuple[TxCall, ...]:
        return (self.approve, self.repay)

    def to_dict(self) -> dict[str, Any]:
        return {
            "loanId": self.loan_id,
            "approve": self.approve.to_dict(),
            "repay": self.repay.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
            "repaymentAmount": self.repayment_amount,
            "quotedAt": self.quoted_at,
            "validUntil": self.valid_until,
        }


@dataclass(frozen=True)
class LiquidateTx:
    """approve + liquidate, sized like :class:`RepayTx`."""

    loan_id: int
    approve: TxCall
    liquidate: TxCall
    repayment_amount: str
    quoted_at: int
    valid_until: int

    @property
    def calls(self) -> tuple[TxCall, ...]:
        return (self.approve, self.liquidate)

    def to_dict(self) -> dict[str, Any]:
        return {
            "loanId": self.loan_id,
            "approve": self.approve.to_dict(),
            "liquidate": self.liquidate.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
            "repaymentAmount": self.repayment_amount,
            "quotedAt": self.quoted_at,
            "validUntil": self.valid_until,
        }


@dataclass(frozen=True)
class MintTx:
    mint: TxCall

    @property
    def calls(self) -> tuple[TxCall, ...]:
        return (self.mint,)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint.to_dict(),
            "calls": [c.to_dict() for c in self.calls],
        }
