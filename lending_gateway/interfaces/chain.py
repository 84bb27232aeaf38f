"""Chain reader protocol: typed read access to the lending pool."""
from typing import Protocol

from ..models import LenderPosition, Loan, LoanHealth, PoolState, UserPosition


class ChainReader(Protocol):
    """Abstract interface for read-only protocol state."""

    @property
    def has_oracle(self) -> bool: ...

    async def get_pool_state(self) -> PoolState: ...

    async def get_user_position(self, address: str) -> UserPosition: ...

    async def list_user_loans(self, address: str) -> list[Loan]: ...

    async def get_loan(self, loan_id: int) -> Loan: ...

    async def get_loan_health(self, loan_id: int) -> LoanHealth: ...

    async def get_lender_position(self, address: str) -> LenderPosition: ...

    async def get_native_price(self) -> int: ...
