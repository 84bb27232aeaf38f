"""In-memory cache of the latest pool state and native price."""
from __future__ import annotations

import dataclasses
import threading

from ..models import PoolState


class StateCache:
    """Latest-value store written by the refresher, read by request handlers.

    Each field has its own lock so a price update never blocks pool-state
    readers and vice versa. A reader sees either the old or the new value
    of a field, never a mix.
    """

    def __init__(self) -> None:
        self._pool_lock = threading.Lock()
        self._pool_state: PoolState | None = None
        self._price_lock = threading.Lock()
        self._native_price: int | None = None

    def set_pool_state(self, state: PoolState | None) -> None:
        with self._pool_lock:
            self._pool_state = dataclasses.replace(state) if state is not None else None

    def get_pool_state(self) -> tuple[PoolState | None, bool]:
        """Return ``(copy, True)`` or ``(None, False)`` before the first set."""
        with self._pool_lock:
            if self._pool_state is None:
                return None, False
            return dataclasses.replace(self._pool_state), True

    def set_native_price(self, price: int | None) -> None:
        with self._price_lock:
            self._native_price = int(price) if price is not None else None

    def get_native_price(self) -> tuple[int | None, bool]:
        with self._price_lock:
            if self._native_price is None:
                return None, False
            return self._native_price, True
