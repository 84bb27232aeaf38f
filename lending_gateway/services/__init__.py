"""Service modules"""
from .loan_service import LoanService
from .pool_service import PoolService
from .quote import QuoteEngine, required_collateral
from .refresher import StateRefresher
from .state_cache import StateCache
from .tx_builder import TransactionBuilder

__all__ = [
    "LoanService",
    "PoolService",
    "QuoteEngine",
    "StateCache",
    "StateRefresher",
    "TransactionBuilder",
    "required_collateral",
]
