"""Location stream bridge.

Wraps a callback-based location provider into a scoped subscription:
``start()`` registers the platform callback, ``stop()`` (or leaving the
``async with`` block) unregisters it on every exit path.

Raw fixes are processed one at a time. A fix is accepted when there is no
previous accepted fix or when it lies more than ``threshold_m`` away from
it; accepted fixes get an address from the reverse geocoder and are emitted
as :class:`LocationFix`. A failed address lookup never drops a fix: the
configured fallback address is used instead.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from transitsync.exceptions import LocationPermissionError
from transitsync.geo import haversine_distance_m
from transitsync.models.location import Coordinates, LocationFix
from transitsync.providers import LocationProvider, ReverseGeocoder, Unsubscribe

_logger = logging.getLogger(__name__)

#: Default minimum displacement between accepted fixes.
DEFAULT_THRESHOLD_M = 60.0
DEFAULT_FALLBACK_ADDRESS = "Posizione corrente"

_END = object()


class LocationObserver:
    """Filter a continuous location source by minimum displacement."""

    def __init__(
        self,
        provider: LocationProvider,
        geocoder: ReverseGeocoder,
        *,
        threshold_m: float = DEFAULT_THRESHOLD_M,
        fallback_address: str = DEFAULT_FALLBACK_ADDRESS,
        on_fix: Callable[[LocationFix], None] | None = None,
    ) -> None:
        self._provider = provider
        self._geocoder = geocoder
        self._threshold_m = threshold_m
        self._fallback_address = fallback_address
        self._on_fix = on_fix
        self._last_accepted: Coordinates | None = None
        self._last_fix: LocationFix | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._raw: asyncio.Queue[Coordinates | object] | None = None
        self._accepted: asyncio.Queue[LocationFix | object] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._error: Exception | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocationObserver:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None

    def has_permission(self) -> bool:
        return self._provider.has_permission()

    def start(self) -> None:
        """Subscribe to the provider. Idempotent while running."""
        if self.is_running:
            return
        if not self._provider.has_permission():
            raise LocationPermissionError("Location permission not granted")
        self._loop = asyncio.get_running_loop()
        self._raw = asyncio.Queue()
        self._accepted = asyncio.Queue()
        self._error = None
        self._worker = self._loop.create_task(self._process(self._raw))
        try:
            self._unsubscribe = self._provider.subscribe(self._on_raw_fix, self._on_raw_error)
        except Exception:
            self._worker.cancel()
            self._worker = None
            self._raw = None
            raise
        _logger.debug("Location updates started")

    async def stop(self) -> None:
        """Unsubscribe and end the accepted-fix stream."""
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            try:
                unsubscribe()
            except Exception:
                _logger.debug("Location unsubscribe failed", exc_info=True)
            _logger.debug("Location updates stopped")
        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        self._raw = None
        self._accepted.put_nowait(_END)

    # ------------------------------------------------------------------
    # Provider callbacks (may run on a platform thread)
    # ------------------------------------------------------------------

    def _on_raw_fix(self, coordinates: Coordinates) -> None:
        loop, queue = self._loop, self._raw
        if loop is None or queue is None:
            return
        loop.call_soon_threadsafe(queue.put_nowait, coordinates)

    def _on_raw_error(self, error: Exception) -> None:
        loop = self._loop
        if loop is None:
            return
        loop.call_soon_threadsafe(self._fail, error)

    def _fail(self, error: Exception) -> None:
        _logger.warning("Location stream failed: %s", error)
        self._error = error
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            try:
                unsubscribe()
            except Exception:
                _logger.debug("Location unsubscribe failed", exc_info=True)
        if self._raw is not None:
            self._raw.put_nowait(_END)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _process(self, queue: asyncio.Queue[Coordinates | object]) -> None:
        while True:
            item = await queue.get()
            if item is _END or not isinstance(item, Coordinates):
                self._accepted.put_nowait(_END)
                return
            fix = await self.offer(item)
            if fix is not None:
                self._accepted.put_nowait(fix)

    def should_accept(self, coordinates: Coordinates) -> bool:
        last = self._last_accepted
        if last is None:
            return True
        return haversine_distance_m(last, coordinates) > self._threshold_m

    async def offer(self, coordinates: Coordinates) -> LocationFix | None:
        """Run one raw fix through the displacement filter.

        Returns the emitted fix, or ``None`` when the fix was discarded.
        """
        if not self.should_accept(coordinates):
            _logger.debug("Discarding fix within %.0f m of the last accepted one", self._threshold_m)
            return None
        self._last_accepted = coordinates
        fix = LocationFix(address=await self.resolve_address(coordinates), coordinates=coordinates)
        self._emit(fix)
        return fix

    def _emit(self, fix: LocationFix) -> None:
        self._last_fix = fix
        if self._on_fix is None:
            return
        try:
            self._on_fix(fix)
        except Exception:
            _logger.debug("on_fix callback failed", exc_info=True)

    async def resolve_address(self, coordinates: Coordinates) -> str:
        """Reverse geocode, falling back to the configured address."""
        try:
            address = await self._geocoder.resolve_address(coordinates)
        except Exception as exc:
            _logger.warning("Reverse geocoding failed for %s,%s: %s", coordinates.lat, coordinates.lng, exc)
            return self._fallback_address
        if not address:
            return self._fallback_address
        return address

    # ------------------------------------------------------------------
    # Public accessors
    # ------------------------------------------------------------------

    @property
    def last_fix(self) -> LocationFix | None:
        return self._last_fix

    async def get_current_fix(self) -> LocationFix | None:
        """One-shot resolution, independent of the continuous stream."""
        if not self._provider.has_permission():
            return None
        coordinates = await self._provider.get_current_fix()
        if coordinates is None:
            return None
        self._last_accepted = coordinates
        fix = LocationFix(address=await self.resolve_address(coordinates), coordinates=coordinates)
        self._last_fix = fix
        return fix

    async def fixes(self) -> AsyncIterator[LocationFix]:
        """Iterate accepted fixes until the observer stops.

        Re-raises the provider error if the stream ended because of one.
        """
        while True:
            item = await self._accepted.get()
            if item is _END or not isinstance(item, LocationFix):
                break
            yield item
        if self._error is not None:
            raise self._error
