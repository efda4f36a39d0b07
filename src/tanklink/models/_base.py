"""Base model for inbound gateway messages.

Every inbound model inherits from :class:`TankLinkBaseModel` which
provides:

* ``populate_by_name`` so both firmware keys and field names validate.
* A ``model_validator(mode="before")`` that strips firmware placeholder
  values (``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tanklink.ingestion.normalize import is_sentinel


class TankLinkBaseModel(BaseModel):
    """Base for models parsed from gateway payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholder_values(cls, values: Any) -> Any:
        """Strip placeholder values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if not is_sentinel(value)}
        # A firmware "raw" key is payload data, never the captured dict.
        cleaned["raw"] = dict(values)
        return cleaned
