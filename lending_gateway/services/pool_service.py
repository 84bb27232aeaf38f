"""Pool and position reads, served from the cache where possible."""
from __future__ import annotations

import logging

from ..interfaces.chain import ChainReader
from ..models import LenderPosition, PoolState, UserPosition
from ..validation import parse_address
from .state_cache import StateCache

logger = logging.getLogger(__name__)


class PoolService:
    """Pool-level reads. Only the refresher writes the cache."""

    def __init__(self, reader: ChainReader, cache: StateCache | None = None) -> None:
        self._reader = reader
        self._cache = cache

    async def get_pool_state(self) -> PoolState:
        if self._cache is not None:
            state, found = self._cache.get_pool_state()
            if found:
                return state
        logger.debug("Pool state not cached, reading chain")
        return await self._reader.get_pool_state()

    async def get_user_position(self, address: str) -> UserPosition:
        return await self._reader.get_user_position(parse_address(address))

    async def get_lender_position(self, address: str) -> LenderPosition:
        return await self._reader.get_lender_position(parse_address(address))
