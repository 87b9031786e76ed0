"""Per-role secrets from S3.

Secrets live at ``<region>/<role>/telemetry/<name>`` in the secrets bucket.
Each one is fetched once, synchronously; any failure aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field

from errors import FetchError
from pipeline.catalogue import INTEGRATIONS

if TYPE_CHECKING:
    from flags.config import GeneratorConfig

logger = logging.getLogger(__name__)

SECRET_KEY_TEMPLATE = "{region}/{role}/telemetry/{name}"


class SecretRef(BaseModel):
    """Location of one secret in the object store."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(min_length=1)
    region: str = Field(min_length=1)
    role: str = Field(min_length=1)
    key_suffix: str = Field(min_length=1)

    @property
    def key(self) -> str:
        return SECRET_KEY_TEMPLATE.format(
            region=self.region, role=self.role, name=self.key_suffix
        )

    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class RequiredSecret:
    name: str
    env_var: str


class SecretFetcher(Protocol):
    def fetch(self, ref: SecretRef) -> str: ...


class S3SecretFetcher:
    """Fetch secrets with one ``GetObject`` call each and no retries."""

    def __init__(
        self,
        *,
        region: str,
        timeout_seconds: float = 10.0,
        endpoint_url: str | None = None,
        client: Any = None,
    ) -> None:
        self._region = region
        self._timeout = timeout_seconds
        self._endpoint_url = endpoint_url
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            config = Config(
                connect_timeout=self._timeout,
                read_timeout=self._timeout,
                retries={"total_max_attempts": 1, "mode": "standard"},
            )
            self._client = boto3.client(
                "s3",
                region_name=self._region,
                endpoint_url=self._endpoint_url,
                config=config,
            )
        return self._client

    def fetch(self, ref: SecretRef) -> str:
        try:
            response = self._get_client().get_object(Bucket=ref.bucket, Key=ref.key)
            body = response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            msg = f"failed to fetch {ref.uri()}: {exc}"
            raise FetchError(msg) from exc

        try:
            value = body.decode("utf-8").strip()
        except UnicodeDecodeError as exc:
            msg = f"secret {ref.uri()} is not valid UTF-8"
            raise FetchError(msg) from exc

        if not value:
            msg = f"secret {ref.uri()} is empty"
            raise FetchError(msg)
        if "\n" in value or "\r" in value:
            msg = f"secret {ref.uri()} spans multiple lines"
            raise FetchError(msg)
        return value


def required_secrets(config: GeneratorConfig) -> list[RequiredSecret]:
    """Secrets needed by the enabled integrations, in declaration order."""
    required = []
    for name in config.enabled_integrations:
        spec = INTEGRATIONS[name]
        if spec.token_secret and spec.token_env:
            required.append(
                RequiredSecret(name=spec.token_secret, env_var=spec.token_env)
            )
    return required


def fetch_secrets(
    config: GeneratorConfig, *, region: str, fetcher: SecretFetcher
) -> dict[str, str]:
    """Fetch every required secret, keyed by the variable it is exported as."""
    values: dict[str, str] = {}
    for secret in required_secrets(config):
        ref = SecretRef(
            bucket=config.secrets_bucket_name,
            region=region,
            role=config.role.value,
            key_suffix=secret.name,
        )
        logger.info("fetching secret %s", ref.uri())
        values[secret.env_var] = fetcher.fetch(ref)
    return values


__all__ = [
    "SECRET_KEY_TEMPLATE",
    "RequiredSecret",
    "S3SecretFetcher",
    "SecretFetcher",
    "SecretRef",
    "fetch_secrets",
    "required_secrets",
]
