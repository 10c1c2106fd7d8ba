"""Base model for transit payloads and persisted records.

Every transitsync model inherits from :class:`TransitBaseModel` which
provides:

* ``frozen=True`` so published records can be shared between channels
  and callers without copying.
* ``populate_by_name=True`` so both the wire key (``trip_headsign``) and the
  attribute name (``destination_label``) validate.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used instead of failing validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class TransitBaseModel(BaseModel):
    """Base for transit API and persistence models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Drop explicit nulls so field defaults apply."""
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
