"""cpumetrics - Textual CPU utilization viewer."""

import logging
from enum import Enum
from queue import Empty, Queue
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from cpumetrics.collector import new_collector
from cpumetrics.config import MetricOpts, Settings
from cpumetrics.sampler import CPUEvent, CPUSampler

logger = logging.getLogger(__name__)


class SortKey(Enum):
    """Sort keys for the core table."""

    CORE = "core"
    TOTAL = "total"
    USER = "user"
    SYSTEM = "system"


def read_pct(event: dict[str, Any], name: str, normalized: bool = False) -> float | None:
    """
    Read a percentage out of a rendered event.

    Falls back to the other representation when the preferred one was not
    emitted. Returns None if the counter is absent.
    """
    metric = event.get(name)
    if not isinstance(metric, dict):
        return None
    norm = metric.get("norm", {}).get("pct")
    pct = metric.get("pct")
    if normalized:
        return norm if norm is not None else pct
    return pct if pct is not None else norm


def format_pct(value: float | None) -> str:
    """Format a 0-1 share as a percentage string."""
    if value is None:
        return "    -"
    return f"{value * 100:5.1f}"


def configure_logging(level: str = "WARNING") -> None:
    """Set up root logging for the command line entry point."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class HeaderStats(Static):
    """Header widget showing aggregate CPU usage."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 4;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._totals: dict[str, Any] = {}
        self._cpu_count: int = 0
        self._normalized: bool = False

    @property
    def normalized(self) -> bool:
        """Whether totals are shown normalized to a single core."""
        return self._normalized

    def toggle_normalized(self) -> bool:
        """Switch between core-scaled and single-core totals."""
        self._normalized = not self._normalized
        self._refresh_display()
        return self._normalized

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Static(self._get_cpu_info(), id="cpu-info")

    def update_stats(self, event: CPUEvent) -> None:
        """Update the statistics from a CPU event."""
        if event.totals is None:
            return
        self._totals = event.totals
        self._cpu_count = event.cpu_count
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        try:
            cpu_info = self.query_one("#cpu-info", Static)
            cpu_info.update(self._get_cpu_info())
        except Exception:
            pass  # Widget not mounted yet

    def _get_cpu_info(self) -> str:
        """Get aggregate CPU display."""
        if not self._totals:
            return "Loading CPU info..."
        total = read_pct(self._totals, "total", self._normalized)
        scale = 1 if self._normalized else max(self._cpu_count, 1)
        share = (total or 0.0) / scale
        bar_len = min(int(share * 20), 20)
        bar = "[green]█[/green]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)
        mode = "norm" if self._normalized else f"{self._cpu_count} cores"
        parts = [
            f"{name} {format_pct(read_pct(self._totals, name, self._normalized))}%"
            for name in ("user", "system", "idle", "iowait")
            if name in self._totals
        ]
        # Use escaped brackets for the bar container
        return f"CPU \\[{bar}] {format_pct(total)}% ({mode})\n" + "  ".join(parts)


class CoreTable(Container):
    """Container for the per-core data table."""

    DEFAULT_CSS = """
    CoreTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize CoreTable."""
        super().__init__(*args, **kwargs)
        self._sort_key: SortKey = SortKey.CORE
        self._sort_reverse: bool = False

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        next_index = (current_index + 1) % len(keys)
        self._sort_key = keys[next_index]
        # Busiest first for usage columns
        self._sort_reverse = self._sort_key is not SortKey.CORE
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the core table."""
        yield DataTable(id="core-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#core-table", DataTable)
        table.cursor_type = "row"

        table.add_column("CPU", key="core", width=5)
        table.add_column("TOTAL%", key="total", width=8)
        table.add_column("USR%", key="user", width=7)
        table.add_column("SYS%", key="system", width=7)
        table.add_column("IDLE%", key="idle", width=7)
        table.add_column("WAIT%", key="iowait", width=7)
        table.add_column("MHz", key="mhz", width=8)
        table.add_column("Model", key="model")

    def update_cores(self, cores: list[dict[str, Any]]) -> None:
        """
        Update the core table with new data.

        Rows are rebuilt in sorted order; cores that disappeared are dropped.
        """
        table = self.query_one("#core-table", DataTable)
        rows = self._sort_cores(list(enumerate(cores)))
        table.clear()
        for index, core in rows:
            table.add_row(*self._row(index, core), key=str(index))

    def _sort_cores(self, cores: list[tuple[int, dict[str, Any]]]) -> list[tuple[int, dict[str, Any]]]:
        """Sort cores based on the current sort key."""
        if self._sort_key is SortKey.CORE:
            return sorted(cores, key=lambda item: item[0], reverse=self._sort_reverse)
        name = self._sort_key.value
        return sorted(
            cores,
            key=lambda item: read_pct(item[1], name) or 0.0,
            reverse=self._sort_reverse,
        )

    @staticmethod
    def _row(index: int, core: dict[str, Any]) -> tuple[str, ...]:
        mhz = core.get("mhz")
        return (
            str(index),
            format_pct(read_pct(core, "total")),
            format_pct(read_pct(core, "user")),
            format_pct(read_pct(core, "system")),
            format_pct(read_pct(core, "idle")),
            format_pct(read_pct(core, "iowait")),
            f"{mhz:7.0f}" if mhz else "-",
            str(core.get("model_name", ""))[:40],
        )


class CPUMetricsApp(App):
    """Main cpumetrics application."""

    TITLE = "cpumetrics"
    SUB_TITLE = "CPU Utilization"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 4;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("n", "normalize", "Normalize"),
    ]

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the CPUMetricsApp."""
        super().__init__()
        settings = settings if settings is not None else Settings()
        opts = settings.metric_opts()
        # Both representations are needed to toggle the header view
        opts = MetricOpts(
            ticks=opts.ticks,
            percentages=True,
            normalized_percentages=True,
            precision=max(opts.precision, 3),
        )
        self._update_queue: Queue[CPUEvent] = Queue()
        self._sampler = CPUSampler(
            self._update_queue,
            opts=opts,
            poll_rate=settings.poll_rate,
            per_core=settings.per_core,
            collector=new_collector(settings.strategy, settings.proc_root),
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield CoreTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the sampler when the app is mounted."""
        self._sampler.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Check the queue for CPU events and refresh the UI."""
        # Drain the queue to get the most recent event
        event = None
        while True:
            try:
                event = self._update_queue.get_nowait()
            except Empty:
                break

        if event is not None:
            self._update_ui(event)

    def _update_ui(self, event: CPUEvent) -> None:
        """Update the UI with the new CPU event."""
        try:
            header = self.query_one("#header-stats", HeaderStats)
            header.update_stats(event)
            core_table = self.query_one(CoreTable)
            core_table.update_cores(event.cores)
        except Exception:
            # The viewer must never crash on a refresh
            logger.debug("failed to refresh the UI", exc_info=True)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        core_table = self.query_one(CoreTable)
        new_sort_key = core_table.cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_normalize(self) -> None:
        """Toggle normalized totals in the header."""
        header = self.query_one("#header-stats", HeaderStats)
        normalized = header.toggle_normalized()
        self.notify("Totals: normalized" if normalized else "Totals: per core count")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._sampler.stop()
        self.exit()


def main() -> None:
    """Entry point for cpumetrics application."""
    settings = Settings()
    configure_logging(settings.log_level)
    app = CPUMetricsApp(settings)
    app.run()


if __name__ == "__main__":
    main()
