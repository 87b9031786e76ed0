from __future__ import annotations

import io
import logging
from typing import Any

import pytest
from botocore.exceptions import ClientError

from errors import FetchError
from flags.config import resolve_flags
from secretstore.fetch import (
    S3SecretFetcher,
    SecretRef,
    fetch_secrets,
    required_secrets,
)


class _FakeS3Client:
    def __init__(self, objects: dict[tuple[str, str], bytes]) -> None:
        self.objects = objects
        self.calls: list[tuple[str, str]] = []

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append((Bucket, Key))
        if (Bucket, Key) not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
            )
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}


def _ref(name: str = "consul-token") -> SecretRef:
    return SecretRef(
        bucket="secrets", region="eu-west-1", role="server", key_suffix=name
    )


def _config(**enable: bool):
    return resolve_flags(
        role="client",
        secrets_bucket_name="secrets",
        cloudwatch_group_name="g",
        amp_workspace_id="w",
        enable=enable,
    )


def test_secret_ref_layout() -> None:
    ref = _ref()

    assert ref.key == "eu-west-1/server/telemetry/consul-token"
    assert ref.uri() == "s3://secrets/eu-west-1/server/telemetry/consul-token"


def test_fetch_returns_stripped_value() -> None:
    client = _FakeS3Client({("secrets", _ref().key): b"s3cr3t\n"})
    fetcher = S3SecretFetcher(region="eu-west-1", client=client)

    assert fetcher.fetch(_ref()) == "s3cr3t"
    assert client.calls == [("secrets", "eu-west-1/server/telemetry/consul-token")]


def test_fetch_missing_object_raises() -> None:
    fetcher = S3SecretFetcher(region="eu-west-1", client=_FakeS3Client({}))

    with pytest.raises(FetchError, match="s3://secrets/"):
        fetcher.fetch(_ref())


@pytest.mark.parametrize(
    ("body", "message"),
    [
        (b"   \n", "empty"),
        (b"line-one\nline-two", "multiple lines"),
        (b"\xff\xfe", "UTF-8"),
    ],
)
def test_fetch_rejects_unusable_values(body: bytes, message: str) -> None:
    client = _FakeS3Client({("secrets", _ref().key): body})
    fetcher = S3SecretFetcher(region="eu-west-1", client=client)

    with pytest.raises(FetchError, match=message):
        fetcher.fetch(_ref())


def test_required_secrets_follow_enabled_integrations() -> None:
    config = _config(vault=True, kresd=True, consul=True)

    assert [(s.name, s.env_var) for s in required_secrets(config)] == [
        ("consul-token", "CONSUL_HTTP_TOKEN"),
        ("vault-token", "VAULT_TOKEN"),
    ]


def test_fetch_secrets_keys_by_role_and_region(
    caplog: pytest.LogCaptureFixture,
) -> None:
    config = _config(nomad=True)
    key = "us-east-1/client/telemetry/nomad-token"
    client = _FakeS3Client({("secrets", key): b"nomad-secret"})
    fetcher = S3SecretFetcher(region="us-east-1", client=client)

    with caplog.at_level(logging.INFO, logger="secretstore.fetch"):
        values = fetch_secrets(config, region="us-east-1", fetcher=fetcher)

    assert values == {"NOMAD_TOKEN": "nomad-secret"}
    assert f"s3://secrets/{key}" in caplog.text
    assert "nomad-secret" not in caplog.text


def test_no_integrations_means_no_fetches() -> None:
    client = _FakeS3Client({})
    fetcher = S3SecretFetcher(region="us-east-1", client=client)

    assert fetch_secrets(_config(), region="us-east-1", fetcher=fetcher) == {}
    assert client.calls == []
