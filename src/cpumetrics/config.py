"""Configuration for cpumetrics."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class CollectionStrategy(Enum):
    """Where the collector reads tick counters from."""

    AUTO = "auto"
    PSUTIL = "psutil"
    PROCFS = "procfs"


@dataclass(slots=True, frozen=True)
class MetricOpts:
    """Which representations are emitted for each CPU counter."""

    ticks: bool = False
    percentages: bool = True
    normalized_percentages: bool = False
    precision: int = 2

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "MetricOpts":
        """
        Build options from a user supplied mapping.

        Accepts both ``normalizedPercentages`` and ``normalized_percentages``.
        Missing keys keep the class defaults; unknown keys are ignored.
        """
        defaults = cls()
        normalized = options.get(
            "normalizedPercentages",
            options.get("normalized_percentages", defaults.normalized_percentages),
        )
        return cls(
            ticks=bool(options.get("ticks", defaults.ticks)),
            percentages=bool(options.get("percentages", defaults.percentages)),
            normalized_percentages=bool(normalized),
            precision=int(options.get("precision", defaults.precision)),
        )


class Settings(BaseSettings):
    """Process-level settings, read from ``CPUMETRICS_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="CPUMETRICS_", env_file=".env", extra="ignore")

    poll_rate: float = 2.0
    strategy: CollectionStrategy = CollectionStrategy.AUTO
    per_core: bool = True
    ticks: bool = False
    percentages: bool = True
    normalized_percentages: bool = True
    precision: int = 2
    proc_root: str = "/proc"
    log_level: str = "WARNING"

    def metric_opts(self) -> MetricOpts:
        """Output switches as engine options."""
        return MetricOpts(
            ticks=self.ticks,
            percentages=self.percentages,
            normalized_percentages=self.normalized_percentages,
            precision=self.precision,
        )
