"""
Cache Protocol (Abstract Interface)
Contract the settings synchronizer relies on
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, Union


class ICacheProvider(Protocol):
    """
    Abstract cache provider interface.

    Cache is used ONLY for optimization - never as source of truth.
    Implementations must not raise on transport failure; they return None.
    """

    async def get(self, key: str) -> Optional[Any]:
        """
        Retrieve value from cache by key.

        Returns:
            Decoded value, or None if missing/unavailable
        """
        ...

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> Optional[bool]:
        """
        Set a value in cache. Entries without `ex` never expire.

        Returns:
            True if written, False if skipped by nx, None on failure
        """
        ...

    async def delete(self, keys: Union[str, Sequence[str]]) -> Optional[int]:
        """
        Delete keys from cache.

        Returns:
            Number of keys removed, or None on failure
        """
        ...
