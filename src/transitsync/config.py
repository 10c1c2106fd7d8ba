"""Client configuration for transitsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from transitsync._constants import BASE_URL
from transitsync.exceptions import TransitConfigError
from transitsync.models.location import Coordinates


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ServiceArea:
    """Inclusive lat/lng bounding box of the served network.

    Defaults to the Turin metropolitan area.
    """

    north: float = 45.1307
    south: float = 45.0158
    east: float = 7.7717
    west: float = 7.5883

    def contains(self, coordinates: Coordinates) -> bool:
        return self.south <= coordinates.lat <= self.north and self.west <= coordinates.lng <= self.east


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Transit API base URL (no trailing slash).
    radius_meters : int
        Search radius for nearby departures.
    look_ahead_minutes : int
        How far ahead the server should look for departures.
    nearby_ttl : float
        Freshness window, in seconds, of the ``nearby`` data domain.
    realtime_ttl : float
        Freshness window, in seconds, of the ``realtime`` data domain.
    location_threshold_m : float
        Minimum displacement before a new location fix is accepted.
    fallback_address : str
        Address used when reverse geocoding fails.
    location_unavailable_message : str
        Error message published when no position can be resolved.
    permission_denied_message : str
        Error message published when location permission is denied.
    network_error_message : str
        Error message published when a departures fetch fails.
    request_timeout : float
        Total HTTP timeout in seconds.
    service_area : ServiceArea
        Bounding box used for autocomplete bias and area checks.
    default_location : Coordinates
        Position published when location permission is denied.
    default_location_address : str
        Address paired with ``default_location``.
    favorites_path : str or None
        JSON file backing favorites. ``None`` keeps them in memory.
    api_trace_enabled : bool
        Enable transport-level request/response tracing callback.
    """

    base_url: str = BASE_URL
    radius_meters: int = 800
    look_ahead_minutes: int = 60
    nearby_ttl: float = 60.0
    realtime_ttl: float = 30.0
    location_threshold_m: float = 60.0
    fallback_address: str = "Posizione corrente"
    location_unavailable_message: str = "Posizione non disponibile"
    permission_denied_message: str = "Permesso di localizzazione negato"
    network_error_message: str = "Impossibile caricare le partenze"
    request_timeout: float = 30.0
    service_area: ServiceArea = dataclasses.field(default_factory=ServiceArea)
    default_location: Coordinates = dataclasses.field(
        default_factory=lambda: Coordinates(lat=45.07102258187123, lng=7.685422860157677)
    )
    default_location_address: str = "Piazza Castello, Torino"
    favorites_path: str | None = None
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.radius_meters <= 0:
            raise TransitConfigError(f"radius_meters must be positive, got {self.radius_meters}")
        if self.look_ahead_minutes <= 0:
            raise TransitConfigError(f"look_ahead_minutes must be positive, got {self.look_ahead_minutes}")
        if self.nearby_ttl < 0 or self.realtime_ttl < 0:
            raise TransitConfigError("freshness windows must not be negative")
        if self.location_threshold_m < 0:
            raise TransitConfigError("location_threshold_m must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads optional ``TRANSITSYNC_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SyncConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TRANSITSYNC_BASE_URL": "base_url",
            "TRANSITSYNC_FALLBACK_ADDRESS": "fallback_address",
            "TRANSITSYNC_FAVORITES_PATH": "favorites_path",
        }
        _ENV_INT_MAP = {
            "TRANSITSYNC_RADIUS_METERS": "radius_meters",
            "TRANSITSYNC_LOOK_AHEAD_MINUTES": "look_ahead_minutes",
        }
        _ENV_FLOAT_MAP = {
            "TRANSITSYNC_NEARBY_TTL": "nearby_ttl",
            "TRANSITSYNC_REALTIME_TTL": "realtime_ttl",
            "TRANSITSYNC_LOCATION_THRESHOLD_M": "location_threshold_m",
            "TRANSITSYNC_REQUEST_TIMEOUT": "request_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
        except ValueError as exc:
            raise TransitConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("TRANSITSYNC_API_TRACE_ENABLED"),
                False,
            )

        if "base_url" in config_kwargs:
            config_kwargs["base_url"] = config_kwargs["base_url"].rstrip("/")

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
