from __future__ import annotations

import logging

import pytest

from errors import ValidationError
from flags.tags import RESERVED_TAG_NAMES, TagSet, parse_tag, parse_tags
from host.environment import IDENTITY_FIELDS


def test_parse_tag_splits_name_and_value() -> None:
    assert parse_tag("foo=bar") == ("foo", "bar")


def test_parse_tag_value_may_contain_colons() -> None:
    assert parse_tag("zone=eu:west_1") == ("zone", "eu:west_1")


@pytest.mark.parametrize(
    "raw",
    [
        "1foo=bar",
        "foo",
        "=bar",
        "foo=",
        "foo-bar=baz",
        "foo=1bar",
        "foo=bar baz",
    ],
)
def test_parse_tag_rejects_malformed(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_tag(raw)


def test_parse_tags_builds_mapping() -> None:
    tags = parse_tags(["foo=bar", "team=infra"])

    assert tags.as_dict() == {"foo": "bar", "team": "infra"}
    assert tags.names() == ("foo", "team")
    assert len(tags) == 2


def test_parse_tags_skips_malformed_without_affecting_others(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="flags.tags"):
        tags = parse_tags(["foo=bar", "1foo=bar", "team=infra"])

    assert tags.as_dict() == {"foo": "bar", "team": "infra"}
    assert "skipping malformed tag" in caplog.text
    assert "1foo" in caplog.text


def test_parse_tags_fail_policy_raises() -> None:
    with pytest.raises(ValidationError, match="1foo"):
        parse_tags(["foo=bar", "1foo=bar"], policy="fail")


def test_later_duplicate_replaces_value_in_place() -> None:
    tags = parse_tags(["a=one", "b=two", "a=three"])

    assert tags.entries == (("a", "three"), ("b", "two"))


def test_tag_set_is_immutable() -> None:
    tags = TagSet()
    updated = tags.with_tag("foo", "bar")

    assert len(tags) == 0
    assert updated.get("foo") == "bar"
    assert updated.get("missing", "fallback") == "fallback"


@pytest.mark.parametrize(
    "name",
    ["service", "tenant", "host", "role", "region", "message", "timestamp", "PRIORITY"],
)
def test_reserved_tag_names_rejected(name: str) -> None:
    with pytest.raises(ValueError, match="reserved"):
        parse_tag(f"{name}=web")


def test_reserved_tag_names_follow_policy() -> None:
    tags = parse_tags(["service=web", "team=infra", "message=x"])
    assert tags.as_dict() == {"team": "infra"}

    with pytest.raises(ValidationError, match="reserved"):
        parse_tags(["team=infra", "PRIORITY=x"], policy="fail")


def test_identity_fields_are_reserved() -> None:
    assert set(IDENTITY_FIELDS) <= RESERVED_TAG_NAMES
