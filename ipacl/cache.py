"""Memoized evaluation of access decisions."""

from __future__ import annotations

import threading
from typing import Callable, Hashable

from .exceptions import InvalidAddressError, InvalidResourceError
from .resolver import PolicyResolver
from .types import Verdict


class DecisionCache:
    """Unbounded, thread-safe memo of boolean decisions.

    Values are computed outside the lock, so concurrent misses on the same
    key may compute twice; the first stored value is the one returned.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, bool] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, key: Hashable, compute: Callable[[], bool]) -> bool:
        try:
            value = self._entries[key]
        except KeyError:
            pass
        else:
            with self._lock:
                self.hits += 1
            return value
        value = compute()
        with self._lock:
            self.misses += 1
            return self._entries.setdefault(key, value)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class Evaluator:
    """The callable returned by :meth:`Registry.build`.

    ``evaluate(path, address)`` answers whether ``address`` may access
    ``path``; answers are cached per (path, address) pair.
    Non-string arguments raise :class:`InvalidResourceError` (path) or
    :class:`InvalidAddressError` (address) before the cache is consulted.
    """

    def __init__(self, resolver: PolicyResolver, cache: DecisionCache | None = None) -> None:
        self.resolver = resolver
        self.cache = cache if cache is not None else DecisionCache()

    def __call__(self, path: str, address: str) -> bool:
        _check_arguments(path, address)
        return self.cache.get_or_compute((path, address), lambda: self.resolver.resolve(path, address))

    def explain(self, path: str, address: str) -> Verdict:
        _check_arguments(path, address)
        return self.resolver.explain(path, address)


def _check_arguments(path: object, address: object) -> None:
    if not isinstance(path, str):
        raise InvalidResourceError(message="Path has to be a string", details={"resource": repr(path)})
    if not isinstance(address, str):
        raise InvalidAddressError(message=f"Invalid address: {address!r}", details={"address": repr(address)})
