"""Background polling loop for cpumetrics."""

import logging
import threading
import time
from dataclasses import dataclass, field
from queue import Queue
from typing import Any

from cpumetrics.collector import Collector, new_collector
from cpumetrics.config import CollectionStrategy, MetricOpts
from cpumetrics.errors import CollectionError, StaleSampleError
from cpumetrics.monitor import Monitor

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CPUEvent:
    """Rendered CPU metrics for one polling cycle."""

    timestamp: float
    cpu_count: int
    totals: dict[str, Any] | None = None
    cores: list[dict[str, Any]] = field(default_factory=list)


class CPUSampler:
    """
    Periodically samples CPU usage and pushes rendered events to a Queue.

    Totals and per-core views each get their own Monitor, so each view is
    diffed against its own previous sample. Collection failures and stale
    samples are logged and the cycle is skipped; the loop keeps running.

    Each cycle calls the collector once per view, so the totals and the cores
    come from two snapshots taken moments apart. While cores are being
    hotplugged, ``CPUEvent.cpu_count`` (from the totals snapshot) may differ
    from ``len(CPUEvent.cores)``.
    """

    def __init__(
        self,
        update_queue: Queue[CPUEvent],
        opts: MetricOpts | None = None,
        poll_rate: float = 2.0,
        per_core: bool = True,
        collector: Collector | None = None,
        strategy: CollectionStrategy = CollectionStrategy.AUTO,
    ) -> None:
        """
        Initialize the CPUSampler.

        Args:
            update_queue: Thread-safe queue to push events to.
            opts: Output switches used to render each event.
            poll_rate: How often to sample (in seconds). Default 2.0s.
            per_core: Whether to render per-core metrics as well.
            collector: Source of samples, shared by both views.
            strategy: Collection strategy used when no collector is given.
        """
        self._queue = update_queue
        if opts is None:
            opts = MetricOpts(percentages=True, normalized_percentages=True)
        self._opts = opts
        self._poll_rate = max(0.1, poll_rate)
        self._per_core = per_core
        collector = collector if collector is not None else new_collector(strategy)
        self._totals_monitor = Monitor(collector)
        self._cores_monitor = Monitor(collector)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def opts(self) -> MetricOpts:
        """Get the output switches."""
        return self._opts

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="CPUSampler",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            event = self.sample()
            if event is not None:
                self._queue.put(event)

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)

    def sample(self) -> CPUEvent | None:
        """
        Run one sampling cycle.

        Returns None when the collector failed. A view whose sample is stale
        is left empty in the returned event.
        """
        try:
            totals = self._totals_monitor.fetch_totals()
            cores = self._cores_monitor.fetch_per_core() if self._per_core else []
        except CollectionError:
            logger.warning("CPU sample collection failed", exc_info=True)
            return None

        event = CPUEvent(timestamp=time.time(), cpu_count=totals.cpu_count)
        try:
            event.totals = totals.format(self._opts)
        except StaleSampleError as err:
            logger.debug("skipping CPU totals: %s", err)

        for index, core in enumerate(cores):
            try:
                event.cores.append(core.format(self._opts))
            except StaleSampleError as err:
                logger.debug("skipping core %d: %s", index, err)
                event.cores.append({})
        return event
