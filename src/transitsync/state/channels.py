"""Observable state channels published to the presentation layer.

The controller is the single writer; any number of readers may subscribe.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from transitsync.models.departures import StopRecord, WaitingTimeEntry
from transitsync.models.favorites import FavoriteRoute, PinnedArrival
from transitsync.models.location import LocationFix
from transitsync.models.search import SearchResult

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateChannel(Generic[T]):
    """A current value plus change notifications.

    With ``notify_always`` every publish reaches subscribers, even when the
    value equals the current one. Message channels use it so a repeated
    toast or error is announced again.
    """

    def __init__(self, name: str, initial: T, *, notify_always: bool = False) -> None:
        self.name = name
        self.notify_always = notify_always
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def publish(self, value: T) -> bool:
        """Replace the value and notify subscribers.

        Returns ``False`` without notifying when the value is unchanged,
        unless the channel was created with ``notify_always``.
        """
        if not self.notify_always and value == self._value:
            return False
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                _logger.debug("Subscriber of %s failed", self.name, exc_info=True)
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*; returns a handle that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers.remove(callback)

        return _unsubscribe


def _channel(name: str, initial: T, *, notify_always: bool = False) -> StateChannel[T]:
    return StateChannel(name, initial, notify_always=notify_always)


@dataclass
class SyncState:
    """Every channel the controller publishes."""

    current_location: StateChannel[LocationFix | None] = field(
        default_factory=lambda: _channel("current_location", None)
    )
    nearby_stops: StateChannel[tuple[StopRecord, ...]] = field(default_factory=lambda: _channel("nearby_stops", ()))
    waiting_times: StateChannel[tuple[WaitingTimeEntry, ...]] = field(
        default_factory=lambda: _channel("waiting_times", ())
    )
    pinned_arrivals: StateChannel[tuple[PinnedArrival, ...]] = field(
        default_factory=lambda: _channel("pinned_arrivals", ())
    )
    favorite_routes: StateChannel[tuple[FavoriteRoute, ...]] = field(
        default_factory=lambda: _channel("favorite_routes", ())
    )
    search_results: StateChannel[tuple[SearchResult, ...]] = field(
        default_factory=lambda: _channel("search_results", ())
    )
    search_query: StateChannel[str] = field(default_factory=lambda: _channel("search_query", ""))
    search_open: StateChannel[bool] = field(default_factory=lambda: _channel("search_open", False))
    is_searching: StateChannel[bool] = field(default_factory=lambda: _channel("is_searching", False))
    is_loading_departures: StateChannel[bool] = field(
        default_factory=lambda: _channel("is_loading_departures", False)
    )
    error_message: StateChannel[str | None] = field(
        default_factory=lambda: _channel("error_message", None, notify_always=True)
    )
    toast_message: StateChannel[str | None] = field(
        default_factory=lambda: _channel("toast_message", None, notify_always=True)
    )
