"""Stateful CPU sampling for cpumetrics."""

from pathlib import Path

from cpumetrics.collector import Collector, new_collector
from cpumetrics.config import CollectionStrategy
from cpumetrics.errors import CollectionError
from cpumetrics.metrics import Metrics
from cpumetrics.models import CPU, CPUInfo, CPUSample


class Monitor:
    """
    Keeps the most recent CPU sample and diffs each new one against it.

    A Monitor is not thread-safe. Give every polling loop its own instance,
    or serialize access from the outside.
    """

    def __init__(
        self,
        collector: Collector | None = None,
        strategy: CollectionStrategy = CollectionStrategy.AUTO,
        proc_root: str | Path = "/proc",
    ) -> None:
        """
        Initialize the Monitor.

        Args:
            collector: Source of samples. Built from ``strategy`` if omitted.
            strategy: Collection strategy used when no collector is given.
            proc_root: Proc filesystem root used when no collector is given.
        """
        self._collector = collector if collector is not None else new_collector(strategy, proc_root)
        self.last_sample = CPUSample()

    @property
    def collector(self) -> Collector:
        """Get the collector samples are taken from."""
        return self._collector

    def fetch_totals(self) -> Metrics:
        """
        Collect a new sample and return aggregate metrics for all CPUs.

        Overwrites the stored sample.

        Raises:
            CollectionError: If the collector fails. The stored sample is
                left untouched.
        """
        sample = self._collect()
        previous = self.last_sample.totals
        self.last_sample = sample
        return Metrics(
            previous=previous,
            current=sample.totals,
            count=len(sample.cores),
            is_totals=True,
        )

    def fetch_per_core(self) -> list[Metrics]:
        """
        Collect a new sample and return one Metrics per core, in core order.

        A core missing from the previous sample is diffed against an empty
        baseline. Overwrites the stored sample.

        Raises:
            CollectionError: If the collector fails. The stored sample is
                left untouched.
        """
        sample = self._collect()
        last_cores = self.last_sample.cores

        core_metrics: list[Metrics] = []
        for i, current in enumerate(sample.cores):
            # Core count can change between samples
            previous = last_cores[i] if i < len(last_cores) else CPU()
            info = sample.core_info[i] if sample.core_info else CPUInfo()
            core_metrics.append(Metrics(previous=previous, current=current, count=1, cpu_info=info))

        self.last_sample = sample
        return core_metrics

    def _collect(self) -> CPUSample:
        try:
            return self._collector.collect()
        except Exception as err:
            raise CollectionError(f"error fetching CPU metrics: {err}") from err
