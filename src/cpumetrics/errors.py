"""Exceptions raised by cpumetrics."""


class CPUMetricsError(Exception):
    """Base class for all cpumetrics errors."""


class CollectionError(CPUMetricsError):
    """The collector failed to produce a sample."""


class StaleSampleError(CPUMetricsError):
    """The current sample is not newer than the previous one."""
