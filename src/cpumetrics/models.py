"""Data models for cpumetrics."""

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class CPU:
    """
    Immutable tick counters for one CPU, or for all CPUs combined.

    Values are cumulative ticks since boot. A field is None when the
    platform does not expose that counter, which is not the same as zero.
    """

    user: int | None = None
    system: int | None = None
    idle: int | None = None
    nice: int | None = None  # Linux, Darwin, BSD
    irq: int | None = None  # Linux, Windows
    iowait: int | None = None  # Linux
    softirq: int | None = None  # Linux
    steal: int | None = None  # Linux

    def total(self) -> int:
        """Sum of all counters the platform reports."""
        values = (getattr(self, attr) for _, attr in CATEGORIES)
        return sum(value for value in values if value is not None)


# Output key and CPU attribute, in output order
CATEGORIES: tuple[tuple[str, str], ...] = (
    ("user", "user"),
    ("system", "system"),
    ("idle", "idle"),
    ("nice", "nice"),
    ("irq", "irq"),
    ("iowait", "iowait"),
    ("softirq", "softirq"),
    ("steal", "steal"),
)


@dataclass(slots=True, frozen=True)
class CPUInfo:
    """Descriptive attributes of one core. Zero values mean unknown."""

    model_name: str = ""
    model_number: str = ""
    mhz: float = 0.0
    physical_id: int = 0
    core_id: int = 0

    def is_empty(self) -> bool:
        """Check if no attribute is known."""
        return self == CPUInfo()


@dataclass(slots=True, frozen=True)
class CPUSample:
    """
    Point-in-time reading of the totals and every core.

    Cores and core info are copied into tuples, so a collector reusing its
    own lists cannot change a stored sample.
    """

    totals: CPU = field(default_factory=CPU)
    cores: tuple[CPU, ...] = ()
    core_info: tuple[CPUInfo, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "cores", tuple(self.cores))
        object.__setattr__(self, "core_info", tuple(self.core_info))
        if self.core_info and len(self.core_info) != len(self.cores):
            raise ValueError(
                f"core_info has {len(self.core_info)} entries but there are {len(self.cores)} cores"
            )
