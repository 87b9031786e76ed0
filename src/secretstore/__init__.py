"""Secret retrieval from the object store."""

from secretstore.fetch import (
    S3SecretFetcher,
    SecretFetcher,
    SecretRef,
    fetch_secrets,
    required_secrets,
)

__all__ = [
    "S3SecretFetcher",
    "SecretFetcher",
    "SecretRef",
    "fetch_secrets",
    "required_secrets",
]
