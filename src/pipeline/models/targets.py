"""Scrape target model for prometheus_scrape sources."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pipeline.models.blocks import BLOCK_NAME_PATTERN


class ScrapeTarget(BaseModel):
    """An HTTP endpoint polled for metrics in the Prometheus text format."""

    model_config = ConfigDict(frozen=True)

    source_name: str = Field(pattern=BLOCK_NAME_PATTERN)
    endpoint: str = Field(pattern=r"^https?://")
    scrape_interval_seconds: int = Field(gt=0)
    token_env: str | None = Field(
        default=None,
        description="Environment variable holding the bearer token",
    )


__all__ = ["ScrapeTarget"]
