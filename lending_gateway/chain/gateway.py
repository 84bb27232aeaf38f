"""Typed read operations against the lending pool and the price oracle."""
from __future__ import annotations

import logging
import re

from .. import codec
from ..config import ChainConfig
from ..errors import ConfigError, OracleNotConfiguredError
from ..models import LenderPosition, Loan, LoanHealth, PoolState, UserPosition
from ..validation import parse_address, parse_uint
from .rpc import JsonRpcClient

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")

# getPrice(address(0)) returns the native asset's USD price
NATIVE_ASSET = "0x" + "00" * 20


class ChainGateway:
    """Read-only gateway over two fixed contracts.

    Holds nothing mutable besides the addresses and the transport, so one
    instance can serve concurrent callers. Nothing is retried.
    """

    def __init__(self, config: ChainConfig, rpc: JsonRpcClient | None = None) -> None:
        if not config.rpc_url and rpc is None:
            raise ConfigError("missing rpc_url in chain config")
        if not _ADDRESS_RE.match(config.lending_pool):
            raise ConfigError(f"missing or invalid lending_pool address: '{config.lending_pool}'")
        if config.price_oracle and not _ADDRESS_RE.match(config.price_oracle):
            raise ConfigError(f"invalid price_oracle address: '{config.price_oracle}'")

        self.rpc = rpc or JsonRpcClient(config.rpc_url, config.rpc_timeout)
        self.lending_pool = parse_address(config.lending_pool, "lending_pool")
        self.oracle = (
            parse_address(config.price_oracle, "price_oracle")
            if config.price_oracle
            else None
        )
        if self.oracle is None:
            logger.warning("No price oracle configured; price reads will fail")

    @property
    def has_oracle(self) -> bool:
        return self.oracle is not None

    async def _call(self, fn: codec.ContractFunction, *args: object, to: str | None = None) -> tuple:
        data = codec.encode_call(fn, *args)
        out = await self.rpc.eth_call(to or self.lending_pool, data)
        return codec.decode_output(fn, out)

    # ------------------------------------------------------------------
    # Pool
    # ------------------------------------------------------------------

    async def get_pool_state(self) -> PoolState:
        words = await self._call(codec.GET_POOL_STATE)
        return PoolState(*(str(w) for w in words))

    async def get_user_position(self, address: str) -> UserPosition:
        addr = parse_address(address)
        loan_ids, principal, repayment, collateral = await self._call(
            codec.GET_USER_POSITION, addr
        )
        return UserPosition(
            address=addr,
            loan_ids=tuple(loan_ids),
            total_principal=str(principal),
            total_repayment=str(repayment),
            total_collateral=str(collateral),
        )

    async def get_lender_position(self, address: str) -> LenderPosition:
        addr = parse_address(address)
        balance, rate, underlying = await self._call(codec.GET_LENDER_POSITION, addr)
        return LenderPosition(
            address=addr,
            ftoken_balance=str(balance),
            exchange_rate=str(rate),
            underlying_balance=str(underlying),
        )

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    async def get_user_loan_ids(self, address: str) -> list[int]:
        addr = parse_address(address)
        (loan_ids,) = await self._call(codec.GET_USER_LOANS, addr)
        return loan_ids

    async def list_user_loans(self, address: str) -> list[Loan]:
        """Fetch the user's loan ids, then each loan in turn (N+1 reads)."""
        loans: list[Loan] = []
        for loan_id in await self.get_user_loan_ids(address):
            loans.append(await self.get_loan(loan_id))
        return loans

    async def get_loan(self, loan_id: int) -> Loan:
        loan_id = parse_uint(loan_id, "loanId")
        (
            borrower,
            collateral,
            principal,
            repayment,
            start_time,
            duration,
            is_active,
        ) = await self._call(codec.LOANS, loan_id)
        return Loan(
            id=loan_id,
            borrower=borrower,
            collateral_amount=str(collateral),
            principal=str(principal),
            repayment_amount=str(repayment),
            start_time=start_time,
            duration=duration,
            is_active=is_active,
        )

    async def get_loan_health(self, loan_id: int) -> LoanHealth:
        loan_id = parse_uint(loan_id, "loanId")
        ltv, liquidatable = await self._call(codec.GET_LOAN_HEALTH, loan_id)
        return LoanHealth(ltv=str(ltv), is_liquidatable=liquidatable)

    # ------------------------------------------------------------------
    # Oracle
    # ------------------------------------------------------------------

    async def get_native_price(self) -> int:
        """Native asset USD price with 18 decimals, e.g. 2000e18 for $2000."""
        if self.oracle is None:
            raise OracleNotConfiguredError("oracle address not configured")
        (price,) = await self._call(codec.GET_PRICE, NATIVE_ASSET, to=self.oracle)
        return price
