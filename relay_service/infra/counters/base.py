"""Protocol for the shared expiring key-value store.

Circuit breakers and rate limiters keep all of their state in a
``KeyedExpiringStore``. Every key carries its own TTL; when a key expires the
owning component recreates it lazily on next access.

Two primitives are atomic in every backend:

- ``set`` overwrites a value and its TTL in a single operation.
- ``increment`` bumps an integer counter, creating it at 1 with the given TTL
  when absent. An existing TTL is kept unless ``refresh_ttl`` is set, in
  which case every increment re-arms it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

CounterValue: TypeAlias = str | int | float | None


@runtime_checkable
class KeyedExpiringStore(Protocol):
    """Async key-value store with per-key expiry."""

    async def get_or_init(
        self,
        key: str,
        ttl: int | None,
        initializer: Callable[[], CounterValue],
    ) -> CounterValue:
        """Return the live value for ``key`` or store ``initializer()``.

        A ``ttl`` of ``None`` returns the initialized value without storing it.
        """
        ...

    async def get(self, key: str) -> CounterValue:
        """Return the live value for ``key`` or ``None``."""
        ...

    async def set(self, key: str, value: CounterValue, ttl: int) -> None:
        """Overwrite ``key`` with ``value`` expiring after ``ttl`` seconds."""
        ...

    async def increment(self, key: str, ttl: int, *, refresh_ttl: bool = False) -> int:
        """Atomically increment ``key`` and return the new count.

        With ``refresh_ttl`` the key expires ``ttl`` seconds after this
        increment; otherwise only a newly created key gets the TTL.
        """
        ...

    async def delete(self, *keys: str) -> int:
        """Delete ``keys`` and return how many existed."""
        ...

    async def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires; ``None`` when absent or persistent."""
        ...


__all__ = ["CounterValue", "KeyedExpiringStore"]
