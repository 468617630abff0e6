"""Collectors producing raw CPU tick samples."""

import logging
from pathlib import Path
from typing import Protocol, TypeVar

import psutil

from cpumetrics.config import CollectionStrategy
from cpumetrics.models import CPU, CPUInfo, CPUSample

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Column order of the cpu lines in /proc/stat
PROC_STAT_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")

# psutil reports seconds; keep millisecond resolution as integer ticks
TICKS_PER_SECOND = 1000


class Collector(Protocol):
    """Anything that can take a point-in-time CPU sample."""

    def collect(self) -> CPUSample: ...


class PsutilCollector:
    """
    Collector backed by psutil.

    Works on every platform psutil supports. Counters a platform does not
    report are left as None. psutil only lists online cores, so core indexes
    shift when a core goes offline; use ProcfsCollector where that matters.
    """

    def collect(self) -> CPUSample:
        """Read total and per-core CPU times."""
        totals = self._to_cpu(psutil.cpu_times())
        cores = [self._to_cpu(times) for times in psutil.cpu_times(percpu=True)]
        return CPUSample(totals=totals, cores=cores, core_info=self._core_info(len(cores)))

    @staticmethod
    def _to_cpu(times) -> CPU:
        def ticks(*names: str) -> int | None:
            for name in names:
                value = getattr(times, name, None)
                if value is not None:
                    return int(value * TICKS_PER_SECOND)
            return None

        return CPU(
            user=ticks("user"),
            system=ticks("system"),
            idle=ticks("idle"),
            nice=ticks("nice"),
            irq=ticks("irq", "interrupt"),  # Windows calls it interrupt
            iowait=ticks("iowait"),
            softirq=ticks("softirq"),
            steal=ticks("steal"),
        )

    @staticmethod
    def _core_info(core_count: int) -> list[CPUInfo]:
        """Per-core clock speed, when psutil reports one reading per core."""
        try:
            freqs = psutil.cpu_freq(percpu=True) or []
        except (NotImplementedError, OSError):
            # Not every platform exposes frequencies
            return []
        if len(freqs) != core_count:
            return []
        return [CPUInfo(mhz=float(freq.current)) for freq in freqs]


class ProcfsCollector:
    """Collector reading ``/proc/stat`` and ``/proc/cpuinfo`` directly (Linux)."""

    def __init__(self, proc_root: str | Path = "/proc") -> None:
        """
        Initialize the ProcfsCollector.

        Args:
            proc_root: Mount point of the proc filesystem. Point it at a host
                mount when running inside a container.
        """
        self._proc_root = Path(proc_root)

    @property
    def proc_root(self) -> Path:
        """Get the proc filesystem root."""
        return self._proc_root

    def collect(self) -> CPUSample:
        """Parse the kernel tick table and CPU descriptions."""
        stat = (self._proc_root / "stat").read_text(encoding="utf-8")
        totals, cores = parse_proc_stat(stat)

        info: list[CPUInfo] = []
        cpuinfo_path = self._proc_root / "cpuinfo"
        if cpuinfo_path.exists():
            info = parse_proc_cpuinfo(cpuinfo_path.read_text(encoding="utf-8"))
            if len(info) != len(cores):
                logger.debug(
                    "cpuinfo lists %d processors but stat lists %d, dropping core info",
                    len(info),
                    len(cores),
                )
                info = []

        return CPUSample(totals=totals, cores=cores, core_info=info)


def parse_proc_stat(content: str) -> tuple[CPU, list[CPU]]:
    """
    Parse the ``cpu`` lines of ``/proc/stat``.

    Returns the aggregate line and the per-core lines, each core at the
    position given by its ``cpuN`` label. Offline cores below the highest
    online one are empty CPU placeholders, so a core keeps its index when
    another goes offline.

    Raises:
        ValueError: If there is no aggregate ``cpu`` line or a column is
            not an integer.
    """
    totals: CPU | None = None
    cores: dict[int, CPU] = {}
    for line in content.splitlines():
        if not line.startswith("cpu"):
            continue
        label, *columns = line.split()
        values = [int(column) for column in columns[: len(PROC_STAT_FIELDS)]]
        # Older kernels print fewer columns; the rest stay unknown
        cpu = CPU(**dict(zip(PROC_STAT_FIELDS, values)))
        if label == "cpu":
            totals = cpu
        else:
            cores[int(label[len("cpu") :])] = cpu
    if totals is None:
        raise ValueError("no aggregate cpu line found in /proc/stat")
    return totals, _by_index(cores, CPU())


def parse_proc_cpuinfo(content: str) -> list[CPUInfo]:
    """
    Parse ``/proc/cpuinfo`` into one CPUInfo per ``processor`` stanza.

    Each record sits at the position of its processor number; gaps left by
    offline processors hold an empty CPUInfo.
    """
    info: dict[int, CPUInfo] = {}
    for stanza in content.split("\n\n"):
        fields: dict[str, str] = {}
        for line in stanza.splitlines():
            key, sep, value = line.partition(":")
            if sep:
                fields[key.strip()] = value.strip()
        if "processor" not in fields:
            continue
        try:
            processor = int(fields["processor"])
        except ValueError:
            processor = len(info)
        info[processor] = CPUInfo(
            model_name=fields.get("model name", ""),
            model_number=fields.get("model", ""),
            mhz=_to_float(fields.get("cpu MHz")),
            physical_id=_to_int(fields.get("physical id")),
            core_id=_to_int(fields.get("core id")),
        )
    return _by_index(info, CPUInfo())


def _by_index(items: dict[int, T], empty: T) -> list[T]:
    """List ``items`` by index, filling missing indexes with ``empty``."""
    if not items:
        return []
    return [items.get(index, empty) for index in range(max(items) + 1)]


def _to_float(value: str | None) -> float:
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def _to_int(value: str | None) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def new_collector(
    strategy: CollectionStrategy = CollectionStrategy.AUTO,
    proc_root: str | Path = "/proc",
) -> Collector:
    """
    Create the collector for a collection strategy.

    ``AUTO`` reads the proc filesystem when ``<proc_root>/stat`` exists and
    falls back to psutil otherwise.
    """
    if strategy is CollectionStrategy.PROCFS:
        return ProcfsCollector(proc_root)
    if strategy is CollectionStrategy.AUTO and (Path(proc_root) / "stat").exists():
        return ProcfsCollector(proc_root)
    return PsutilCollector()
