"""Position models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from transitsync.models._base import TransitBaseModel


class Coordinates(TransitBaseModel):
    """A WGS84 position in degrees."""

    lat: float = Field(validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(validation_alias=AliasChoices("lng", "lon", "longitude"))


class LocationFix(TransitBaseModel):
    """A resolved position plus its human-readable address.

    Each new fix replaces the previous one entirely.
    """

    address: str
    coordinates: Coordinates
    is_manual: bool = False
