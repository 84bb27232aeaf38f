"""Loan reads; always live, never cached."""
from __future__ import annotations

from ..interfaces.chain import ChainReader
from ..models import Loan, LoanHealth
from ..validation import parse_address, parse_uint


class LoanService:
    def __init__(self, reader: ChainReader) -> None:
        self._reader = reader

    async def list_user_loans(self, address: str) -> list[Loan]:
        return await self._reader.list_user_loans(parse_address(address))

    async def get_loan(self, loan_id: int | str) -> Loan:
        return await self._reader.get_loan(parse_uint(loan_id, "loanId"))

    async def get_loan_health(self, loan_id: int | str) -> LoanHealth:
        return await self._reader.get_loan_health(parse_uint(loan_id, "loanId"))
