"""Parsing of repeated ``--tag name=value`` arguments into a TagSet."""

from __future__ import annotations

import logging
import re
from functools import reduce
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

from errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

TAG_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
TAG_VALUE_PATTERN = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

TagPolicy = Literal["skip", "fail"]

# Fields the pipeline itself sets on metric tags and log events.
RESERVED_TAG_NAMES = frozenset(
    {
        "service",
        "tenant",
        "host",
        "role",
        "region",
        "instance_id",
        "instance_type",
        "availability_zone",
        "message",
        "timestamp",
        "source_type",
        "PRIORITY",
        "tags",
    }
)


class TagSet(BaseModel):
    """Ordered, immutable mapping of tag name to tag value."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[tuple[str, str], ...] = ()

    def with_tag(self, name: str, value: str) -> TagSet:
        """Return a copy with ``name`` set; an existing name keeps its position."""
        if name in self.names():
            entries = tuple(
                (key, value if key == name else current)
                for key, current in self.entries
            )
        else:
            entries = (*self.entries, (name, value))
        return TagSet(entries=entries)

    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.entries)

    def get(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.entries:
            if key == name:
                return value
        return default

    def as_dict(self) -> dict[str, str]:
        return dict(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def parse_tag(raw: str) -> tuple[str, str]:
    """Split a single ``name=value`` argument.

    Raises:
        ValueError: If the argument has no ``=``, either side does not
            match the tag grammar, or the name is reserved.
    """
    name, sep, value = raw.partition("=")
    if not sep:
        msg = f"tag '{raw}' is not of the form name=value"
        raise ValueError(msg)
    if not TAG_NAME_PATTERN.match(name):
        msg = f"tag name '{name}' must match {TAG_NAME_PATTERN.pattern}"
        raise ValueError(msg)
    if name in RESERVED_TAG_NAMES:
        msg = f"tag name '{name}' is reserved"
        raise ValueError(msg)
    if not TAG_VALUE_PATTERN.match(value):
        msg = f"tag value '{value}' must match {TAG_VALUE_PATTERN.pattern}"
        raise ValueError(msg)
    return name, value


def parse_tags(raw_tags: Iterable[str], *, policy: TagPolicy = "skip") -> TagSet:
    """Fold raw tag arguments into a TagSet.

    With ``policy="skip"`` malformed arguments are logged and dropped; with
    ``policy="fail"`` the first malformed argument raises ``ValidationError``.
    """

    def _fold(tags: TagSet, raw: str) -> TagSet:
        try:
            name, value = parse_tag(raw)
        except ValueError as exc:
            if policy == "fail":
                raise ValidationError(str(exc)) from exc
            logger.warning("skipping malformed tag: %s", exc)
            return tags
        return tags.with_tag(name, value)

    return reduce(_fold, raw_tags, TagSet())


__all__ = [
    "RESERVED_TAG_NAMES",
    "TAG_NAME_PATTERN",
    "TAG_VALUE_PATTERN",
    "TagPolicy",
    "TagSet",
    "parse_tag",
    "parse_tags",
]
