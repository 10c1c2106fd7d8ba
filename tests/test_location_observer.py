from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from transitsync.exceptions import GeocodingError, LocationPermissionError
from transitsync.geo import haversine_distance_m
from transitsync.location import LocationObserver
from transitsync.models.location import Coordinates, LocationFix

ORIGIN = Coordinates(lat=45.0703, lng=7.6869)
# One meter of latitude is about 1 / 111_195 degrees.
_DEG_PER_M = 1 / 111_195


def _north_of(base: Coordinates, meters: float) -> Coordinates:
    return Coordinates(lat=base.lat + meters * _DEG_PER_M, lng=base.lng)


class _FakeProvider:
    def __init__(self, *, permission: bool = True, current: Coordinates | None = None) -> None:
        self.permission = permission
        self.current = current
        self.on_fix: Callable[[Coordinates], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None
        self.subscriptions = 0
        self.unsubscriptions = 0

    def has_permission(self) -> bool:
        return self.permission

    async def get_current_fix(self) -> Coordinates | None:
        return self.current

    def subscribe(
        self,
        on_fix: Callable[[Coordinates], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        self.subscriptions += 1
        self.on_fix = on_fix
        self.on_error = on_error

        def _unsubscribe() -> None:
            self.unsubscriptions += 1
            self.on_fix = None

        return _unsubscribe

    def push(self, coordinates: Coordinates) -> None:
        assert self.on_fix is not None
        self.on_fix(coordinates)


class _FakeGeocoder:
    def __init__(self, address: str | None = "Via Roma 1", *, fail: bool = False) -> None:
        self.address = address
        self.fail = fail
        self.calls = 0

    async def resolve_address(self, coordinates: Coordinates) -> str | None:
        self.calls += 1
        if self.fail:
            raise GeocodingError("service unavailable")
        return self.address


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_haversine_distance_known_offset() -> None:
    assert haversine_distance_m(ORIGIN, ORIGIN) == 0.0
    assert haversine_distance_m(ORIGIN, _north_of(ORIGIN, 100)) == pytest.approx(100, rel=1e-3)


@pytest.mark.asyncio
async def test_fixes_ten_meters_apart_emit_once() -> None:
    observer = LocationObserver(_FakeProvider(), _FakeGeocoder())

    first = await observer.offer(ORIGIN)
    second = await observer.offer(_north_of(ORIGIN, 10))

    assert first is not None
    assert second is None


@pytest.mark.asyncio
async def test_fixes_hundred_meters_apart_emit_twice() -> None:
    emitted: list[LocationFix] = []
    observer = LocationObserver(_FakeProvider(), _FakeGeocoder(), on_fix=emitted.append)

    await observer.offer(ORIGIN)
    await observer.offer(_north_of(ORIGIN, 100))

    assert len(emitted) == 2
    assert emitted[1].coordinates == _north_of(ORIGIN, 100)


@pytest.mark.asyncio
async def test_failing_on_fix_callback_is_absorbed() -> None:
    received: list[LocationFix] = []

    def _on_fix(fix: LocationFix) -> None:
        received.append(fix)
        if len(received) == 1:
            raise RuntimeError("listener bug")

    observer = LocationObserver(_FakeProvider(), _FakeGeocoder(), on_fix=_on_fix)

    first = await observer.offer(ORIGIN)
    second = await observer.offer(_north_of(ORIGIN, 100))

    assert first is not None and second is not None
    assert received == [first, second]
    assert observer.last_fix == second


@pytest.mark.asyncio
async def test_threshold_measured_from_last_accepted_fix() -> None:
    emitted: list[LocationFix] = []
    observer = LocationObserver(_FakeProvider(), _FakeGeocoder(), on_fix=emitted.append)

    # Small steps accumulate: 40 m, 80 m (accepted, > 60 from origin), 120 m (40 m from last accepted).
    for meters in (0, 40, 80, 120):
        await observer.offer(_north_of(ORIGIN, meters))

    assert len(emitted) == 2


@pytest.mark.asyncio
async def test_geocoding_failure_uses_fallback_address() -> None:
    emitted: list[LocationFix] = []
    observer = LocationObserver(
        _FakeProvider(),
        _FakeGeocoder(fail=True),
        fallback_address="Posizione corrente",
        on_fix=emitted.append,
    )

    fix = await observer.offer(ORIGIN)

    assert fix is not None
    assert fix.address == "Posizione corrente"
    assert emitted == [fix]


@pytest.mark.asyncio
async def test_empty_address_uses_fallback() -> None:
    observer = LocationObserver(_FakeProvider(), _FakeGeocoder(address=""), fallback_address="Qui")
    fix = await observer.offer(ORIGIN)
    assert fix is not None and fix.address == "Qui"


@pytest.mark.asyncio
async def test_stream_filters_and_unsubscribes_on_exit() -> None:
    provider = _FakeProvider()
    async with LocationObserver(provider, _FakeGeocoder()) as observer:
        assert provider.subscriptions == 1
        provider.push(ORIGIN)
        provider.push(_north_of(ORIGIN, 10))
        provider.push(_north_of(ORIGIN, 100))
        await _drain()
        assert observer.last_fix is not None
        assert observer.last_fix.coordinates == _north_of(ORIGIN, 100)

    assert provider.unsubscriptions == 1
    assert not observer.is_running
    received = [fix async for fix in observer.fixes()]
    assert [fix.coordinates for fix in received] == [ORIGIN, _north_of(ORIGIN, 100)]


@pytest.mark.asyncio
async def test_unsubscribes_when_block_raises() -> None:
    provider = _FakeProvider()

    with pytest.raises(RuntimeError):
        async with LocationObserver(provider, _FakeGeocoder()):
            raise RuntimeError("boom")

    assert provider.unsubscriptions == 1


@pytest.mark.asyncio
async def test_provider_error_ends_stream_and_releases_subscription() -> None:
    provider = _FakeProvider()
    observer = LocationObserver(provider, _FakeGeocoder())
    observer.start()
    provider.push(ORIGIN)
    await _drain()
    assert provider.on_error is not None
    provider.on_error(LocationPermissionError("revoked"))
    await _drain()

    received: list[LocationFix] = []
    with pytest.raises(LocationPermissionError):
        async for fix in observer.fixes():
            received.append(fix)

    assert len(received) == 1
    assert provider.unsubscriptions == 1
    await observer.stop()
    assert provider.unsubscriptions == 1


@pytest.mark.asyncio
async def test_start_without_permission_raises() -> None:
    provider = _FakeProvider(permission=False)
    observer = LocationObserver(provider, _FakeGeocoder())

    with pytest.raises(LocationPermissionError):
        observer.start()

    assert provider.subscriptions == 0


@pytest.mark.asyncio
async def test_get_current_fix_one_shot() -> None:
    provider = _FakeProvider(current=ORIGIN)
    observer = LocationObserver(provider, _FakeGeocoder(address="Piazza Castello"))

    fix = await observer.get_current_fix()

    assert fix == LocationFix(address="Piazza Castello", coordinates=ORIGIN)
    # The one-shot fix becomes the reference for the displacement filter.
    assert not observer.should_accept(_north_of(ORIGIN, 30))


@pytest.mark.asyncio
async def test_get_current_fix_without_permission_or_position() -> None:
    denied = LocationObserver(_FakeProvider(permission=False, current=ORIGIN), _FakeGeocoder())
    no_position = LocationObserver(_FakeProvider(current=None), _FakeGeocoder())

    assert await denied.get_current_fix() is None
    assert await no_position.get_current_fix() is None
