"""
NIP-01 subscription filters.

Filters are a tagged union with two variants that serialize identically on
the wire:

* [Filter][nostrkit.models.filter.Filter] -- a structured pydantic model with
  the standard query dimensions (ids, authors, kinds, since, until, limit)
  and single-letter tag queries.
* Any ``Mapping[str, Sequence[str]]`` -- an escape hatch for forward
  compatibility with filter keys this model does not know about.

The relay pool treats both as opaque and only calls
[serialize_filter()][nostrkit.models.filter.serialize_filter].

Examples:
    ```python
    Filter(kinds=[1], authors=[pubkey], limit=20).to_dict()
    # {'authors': ['...'], 'kinds': [1], 'limit': 20}

    Filter(tags={"t": ["python"]}).to_dict()
    # {'#t': ['python']}

    serialize_filter({"#d": ["bookmarks"]})
    # {'#d': ['bookmarks']}
    ```
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import EVENT_KIND_MAX


class Filter(BaseModel):
    """Structured NIP-01 filter.

    All fields are optional; unset fields are omitted from the wire form.

    Attributes:
        ids: Event ids (lowercase hex).
        authors: Author public keys (lowercase hex).
        kinds: Event kinds.
        since: Lower bound on ``created_at`` (inclusive).
        until: Upper bound on ``created_at`` (inclusive).
        limit: Maximum number of stored events the relay should return.
        tags: Single-letter tag queries, serialized as ``#<letter>`` keys.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ids: list[str] | None = None
    authors: list[str] | None = None
    kinds: list[int] | None = None
    since: int | None = Field(default=None, ge=0)
    until: int | None = Field(default=None, ge=0)
    limit: int | None = Field(default=None, ge=0)
    tags: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("kinds")
    @classmethod
    def validate_kinds(cls, v: list[int] | None) -> list[int] | None:
        """Ensure every kind is within the NIP-01 range."""
        if v is not None:
            for kind in v:
                if not 0 <= kind <= EVENT_KIND_MAX:
                    raise ValueError(f"kind {kind} out of range 0..{EVENT_KIND_MAX}")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tag_names(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Ensure tag query names are single letters."""
        for name in v:
            if len(name) != 1 or not name.isalpha():
                raise ValueError(f"tag query name must be a single letter, got {name!r}")
        return v

    @model_validator(mode="after")
    def validate_time_range(self) -> Filter:
        """Ensure since <= until when both are set."""
        if self.since is not None and self.until is not None and self.since > self.until:
            raise ValueError(f"since ({self.since}) must be <= until ({self.until})")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form of this filter."""
        data: dict[str, Any] = self.model_dump(exclude_none=True, exclude={"tags"})
        for name, values in self.tags.items():
            data[f"#{name}"] = list(values)
        return data


RawFilter: TypeAlias = Mapping[str, Sequence[str] | Sequence[int] | int]
FilterLike: TypeAlias = Filter | RawFilter


def serialize_filter(value: FilterLike) -> dict[str, Any]:
    """Return the wire dict for either filter variant.

    Raises:
        TypeError: If *value* is neither a ``Filter`` nor a mapping.
    """
    if isinstance(value, Filter):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {
            str(k): list(v) if isinstance(v, Sequence) and not isinstance(v, str) else v
            for k, v in value.items()
        }
    raise TypeError(f"filter must be a Filter or a mapping, got {type(value).__name__}")
