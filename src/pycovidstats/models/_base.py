"""Base model for upstream feed payloads.

Every feed model inherits from :class:`FeedBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase feed keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips sentinel
  values (``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Sentinel strings upstream feeds use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


def is_number(value: Any) -> bool:
    """Return ``True`` for int/float values (booleans excluded, NaN excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and not math.isnan(value)


class FeedBaseModel(BaseModel):
    """Base for upstream feed models.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * sentinel values (``""``, ``"--"``, NaN) → dropped so
      the field default is used instead
    * Stashes the original feed dict in ``raw``
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """Feed keys renamed before validation (``{"feedKey": "aliasKey"}``)."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original feed dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        """Strip sentinel values and apply key aliases on *values*."""
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_feed_values(cls, values: Any) -> Any:
        """Strip sentinel values, apply key aliases, and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)

        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        cleaned = FeedBaseModel._clean_dict(original, aliases)

        # Only auto-stash raw when not explicitly provided.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned

    def to_leaves(self) -> dict[str, Any]:
        """Dump the populated fields keyed by their feed (camelCase) name."""
        return self.model_dump(by_alias=True, exclude={"raw"}, exclude_none=True)
