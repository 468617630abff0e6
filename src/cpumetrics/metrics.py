"""Delta computation and rendering of CPU utilization metrics."""

import math
from dataclasses import dataclass, field
from typing import Any

from cpumetrics.config import MetricOpts
from cpumetrics.errors import StaleSampleError
from cpumetrics.models import CATEGORIES, CPU, CPUInfo


def put(event: dict[str, Any], key: str, value: Any) -> None:
    """Store ``value`` under a dotted ``key``, creating nested dicts as needed."""
    *parents, leaf = key.split(".")
    node = event
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[leaf] = value


def flatten(event: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Collapse a nested event into a single level of dotted keys."""
    flat: dict[str, Any] = {}
    for key, value in event.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten(value, path))
        else:
            flat[path] = value
    return flat


def round_half_up(value: float, precision: int) -> float:
    """Round to ``precision`` decimals, with ties going up."""
    scale = 10**precision
    return math.floor(value * scale + 0.5) / scale


def _share(previous: int | None, current: int | None, time_delta: int, num_cpu: int) -> float:
    """Unrounded share of the window spent in one counter, scaled by ``num_cpu``."""
    cpu_delta = (current or 0) - (previous or 0)
    return cpu_delta / time_delta * num_cpu


@dataclass(slots=True, frozen=True)
class Metrics:
    """
    A pair of consecutive samples for one view (all CPUs or a single core).

    Built by the Monitor on every fetch and rendered once with ``format``.
    """

    previous: CPU
    current: CPU
    count: int = 0
    cpu_info: CPUInfo = field(default_factory=CPUInfo)
    is_totals: bool = False

    @property
    def cpu_count(self) -> int:
        """Number of cores seen in the sample this view was built from."""
        return self.count

    def format(self, opts: MetricOpts) -> dict[str, Any]:
        """
        Render the metrics as a nested event.

        Args:
            opts: Switches selecting ticks, percentages and normalized
                percentages, plus the rounding precision.

        Raises:
            StaleSampleError: If the current sample does not cover more
                ticks than the previous one.
        """
        time_delta = self.current.total() - self.previous.total()
        if time_delta <= 0:
            raise StaleSampleError(
                f"previous sample is newer than current sample (tick delta {time_delta})"
            )
        norm_cpu = self.count if self.is_totals else 1

        event: dict[str, Any] = {}
        if opts.percentages:
            put(event, "total.pct", round_half_up(self._total(time_delta, norm_cpu), opts.precision))
        if opts.normalized_percentages:
            put(event, "total.norm.pct", round_half_up(self._total(time_delta, 1), opts.precision))

        for key, attr in CATEGORIES:
            current = getattr(self.current, attr)
            # Counters the platform does not expose are left out entirely
            if current is None:
                continue
            previous = getattr(self.previous, attr)
            event[key] = self._fill(opts, previous, current, time_delta, norm_cpu)

        if not self.is_totals and not self.cpu_info.is_empty():
            info = self.cpu_info
            event["model_number"] = info.model_number
            event["model_name"] = info.model_name
            event["mhz"] = info.mhz
            event["core_id"] = info.core_id
            event["physical_id"] = info.physical_id

        return event

    def _total(self, time_delta: int, num_cpu: int) -> float:
        """Busy share of the window: ``num_cpu`` minus idle and iowait."""
        idle = _share(self.previous.idle, self.current.idle, time_delta, num_cpu)
        # iowait counts as idle time, not busy time
        if self.current.iowait is not None:
            idle += _share(self.previous.iowait, self.current.iowait, time_delta, num_cpu)
        return num_cpu - idle

    @staticmethod
    def _fill(
        opts: MetricOpts,
        previous: int | None,
        current: int,
        time_delta: int,
        num_cpu: int,
    ) -> dict[str, Any]:
        metric: dict[str, Any] = {}
        if opts.ticks:
            put(metric, "ticks", current)
        if opts.percentages:
            pct = _share(previous, current, time_delta, num_cpu)
            put(metric, "pct", round_half_up(pct, opts.precision))
        if opts.normalized_percentages:
            norm_pct = _share(previous, current, time_delta, 1)
            put(metric, "norm.pct", round_half_up(norm_pct, opts.precision))
        return metric
