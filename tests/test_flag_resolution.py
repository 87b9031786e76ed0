from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from flags.config import (
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SCRAPE_INTERVAL,
    INTEGRATION_NAMES,
    Role,
    resolve_flags,
)


def _resolve(**overrides: Any):
    kwargs: dict[str, Any] = {
        "role": "server",
        "secrets_bucket_name": "b",
        "cloudwatch_group_name": "g",
        "amp_workspace_id": "w",
    }
    kwargs.update(overrides)
    return resolve_flags(**kwargs)


def test_defaults_applied() -> None:
    config = _resolve()

    assert config.role is Role.SERVER
    assert config.metrics_scrape_interval == DEFAULT_SCRAPE_INTERVAL
    assert config.logs_sample_rate == DEFAULT_SAMPLE_RATE
    assert len(config.tags) == 0
    assert config.enabled_integrations == []
    assert config.service_discovery is False
    assert [t.name for t in config.integrations] == list(INTEGRATION_NAMES)


def test_numeric_strings_are_converted() -> None:
    config = _resolve(metrics_scrape_interval="60", logs_sample_rate="5")

    assert config.metrics_scrape_interval == 60
    assert config.logs_sample_rate == 5


@pytest.mark.parametrize("role", ["client", "bastion"])
def test_every_role_accepted(role: str) -> None:
    assert _resolve(role=role).role.value == role


def test_unknown_role_rejected() -> None:
    with pytest.raises(ValidationError, match="role"):
        _resolve(role="worker")


@pytest.mark.parametrize(
    "field",
    ["secrets_bucket_name", "cloudwatch_group_name", "amp_workspace_id"],
)
def test_empty_required_string_rejected(field: str) -> None:
    with pytest.raises(ValidationError, match=field.replace("_", "-")):
        _resolve(**{field: "   "})


@pytest.mark.parametrize("value", ["abc", "0", "-5", "1.5"])
def test_bad_sample_rate_rejected(value: str) -> None:
    with pytest.raises(ValidationError, match="logs-sample-rate"):
        _resolve(logs_sample_rate=value)


def test_bad_scrape_interval_rejected() -> None:
    with pytest.raises(ValidationError, match="metrics-scrape-interval"):
        _resolve(metrics_scrape_interval="soon")


def test_enabled_integrations_follow_declaration_order() -> None:
    config = _resolve(enable={"vault": True, "consul": True, "kresd": False})

    assert config.enabled_integrations == ["consul", "vault"]
    assert config.is_enabled("consul")
    assert not config.is_enabled("kresd")


def test_unknown_integration_rejected() -> None:
    with pytest.raises(ValidationError, match="unknown integration"):
        _resolve(enable={"postgres": True})


def test_tags_resolved_with_policy() -> None:
    config = _resolve(tags=["foo=bar", "1foo=bar"])
    assert config.tags.as_dict() == {"foo": "bar"}

    with pytest.raises(ValidationError):
        _resolve(tags=["foo=bar", "1foo=bar"], tag_policy="fail")


def test_config_is_frozen() -> None:
    config = _resolve()

    with pytest.raises(PydanticValidationError):
        config.logs_sample_rate = 3  # type: ignore[misc]
