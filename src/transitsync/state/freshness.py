"""Refresh cadence policy.

Pure timestamp bookkeeping: the gate answers "is this domain stale?" and
records refreshes. It never performs I/O itself.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from enum import StrEnum


class DataDomain(StrEnum):
    NEARBY = "nearby"
    REALTIME = "realtime"


#: Default freshness windows in seconds.
DEFAULT_WINDOWS: dict[DataDomain, float] = {
    DataDomain.NEARBY: 60.0,
    DataDomain.REALTIME: 30.0,
}


class FreshnessGate:
    """Per-domain last-refreshed timestamps with fixed expiry windows.

    A domain is stale when it was never refreshed, or when strictly more
    than its window has elapsed since the last refresh.
    """

    def __init__(
        self,
        windows: Mapping[DataDomain, float] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._windows: dict[DataDomain, float] = dict(DEFAULT_WINDOWS)
        if windows:
            self._windows.update(windows)
        self._clock = clock
        self._last_refreshed: dict[DataDomain, float] = {}

    def window(self, domain: DataDomain) -> float:
        return self._windows[domain]

    def is_stale(self, domain: DataDomain, now: float | None = None) -> bool:
        last = self._last_refreshed.get(domain)
        if last is None:
            return True
        current = self._clock() if now is None else now
        return current - last > self._windows[domain]

    def mark_refreshed(self, domain: DataDomain, now: float | None = None) -> None:
        self._last_refreshed[domain] = self._clock() if now is None else now

    def invalidate(self, domain: DataDomain) -> None:
        """Forget the last refresh so the next check reports stale."""
        self._last_refreshed.pop(domain, None)

    def age(self, domain: DataDomain, now: float | None = None) -> float | None:
        """Seconds since the last refresh, or ``None`` if never refreshed."""
        last = self._last_refreshed.get(domain)
        if last is None:
            return None
        current = self._clock() if now is None else now
        return current - last
