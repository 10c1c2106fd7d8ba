from __future__ import annotations

import pytest

from transitsync.config import ServiceArea, SyncConfig
from transitsync.exceptions import TransitConfigError
from transitsync.models.location import Coordinates


def test_defaults() -> None:
    config = SyncConfig()
    assert config.radius_meters == 800
    assert config.nearby_ttl == 60.0
    assert config.realtime_ttl == 30.0
    assert config.location_threshold_m == 60.0
    assert config.favorites_path is None
    assert config.service_area.contains(config.default_location)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSITSYNC_BASE_URL", "https://example.test/")
    monkeypatch.setenv("TRANSITSYNC_RADIUS_METERS", "500")
    monkeypatch.setenv("TRANSITSYNC_NEARBY_TTL", "90.5")
    monkeypatch.setenv("TRANSITSYNC_FAVORITES_PATH", "/tmp/favorites.json")
    monkeypatch.setenv("TRANSITSYNC_API_TRACE_ENABLED", "yes")

    config = SyncConfig.from_env()

    assert config.base_url == "https://example.test"
    assert config.radius_meters == 500
    assert config.nearby_ttl == 90.5
    assert config.favorites_path == "/tmp/favorites.json"
    assert config.api_trace_enabled is True


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSITSYNC_RADIUS_METERS", "500")
    monkeypatch.setenv("TRANSITSYNC_API_TRACE_ENABLED", "1")

    config = SyncConfig.from_env(radius_meters=1200, api_trace_enabled=False)

    assert config.radius_meters == 1200
    assert config.api_trace_enabled is False


def test_invalid_numeric_env_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSITSYNC_LOOK_AHEAD_MINUTES", "soon")
    with pytest.raises(TransitConfigError):
        SyncConfig.from_env()


def test_unknown_bool_keeps_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSITSYNC_API_TRACE_ENABLED", "maybe")
    assert SyncConfig.from_env().api_trace_enabled is False


@pytest.mark.parametrize(
    "kwargs",
    [{"radius_meters": 0}, {"look_ahead_minutes": -1}, {"nearby_ttl": -5.0}, {"location_threshold_m": -1.0}],
)
def test_invalid_values_rejected(kwargs: dict[str, float]) -> None:
    with pytest.raises(TransitConfigError):
        SyncConfig(**kwargs)  # type: ignore[arg-type]


def test_service_area_bounds_inclusive() -> None:
    area = ServiceArea(north=1.0, south=0.0, east=1.0, west=0.0)
    assert area.contains(Coordinates(lat=1.0, lng=0.0))
    assert not area.contains(Coordinates(lat=1.01, lng=0.5))
    assert not area.contains(Coordinates(lat=0.5, lng=-0.01))
