"""Shared fixtures for cpumetrics tests."""

import pytest

from cpumetrics.models import CPU, CPUInfo, CPUSample


class FakeCollector:
    """Collector returning prepared samples in order, or raising prepared errors."""

    def __init__(self, *samples: CPUSample | Exception) -> None:
        self._samples = list(samples)
        self.calls = 0

    def push(self, sample: CPUSample | Exception) -> None:
        self._samples.append(sample)

    def collect(self) -> CPUSample:
        self.calls += 1
        item = self._samples.pop(0) if len(self._samples) > 1 else self._samples[0]
        if isinstance(item, Exception):
            raise item
        return item


class TickingCollector:
    """Collector whose counters grow by a fixed amount on every call."""

    def __init__(self, cores: int = 2, with_info: bool = False) -> None:
        self._cores = cores
        self._with_info = with_info
        self.calls = 0

    def collect(self) -> CPUSample:
        self.calls += 1
        n = self.calls
        cores = [
            CPU(user=10 * n, system=5 * n, idle=80 * n, iowait=5 * n) for _ in range(self._cores)
        ]
        totals = CPU(
            user=10 * n * self._cores,
            system=5 * n * self._cores,
            idle=80 * n * self._cores,
            iowait=5 * n * self._cores,
        )
        info = []
        if self._with_info:
            info = [
                CPUInfo(model_name="Test CPU", model_number="42", mhz=2400.0, core_id=i)
                for i in range(self._cores)
            ]
        return CPUSample(totals=totals, cores=cores, core_info=info)


@pytest.fixture
def ticking_collector() -> TickingCollector:
    """A two-core collector with steadily increasing counters."""
    return TickingCollector(cores=2)
