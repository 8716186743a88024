"""Data models for uimonitor."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class SystemTimes:
    """Cumulative system-wide CPU time counters."""

    idle: float
    kernel: float  # Includes idle time
    user: float


@dataclass(slots=True, frozen=True)
class ProcessTimes:
    """Cumulative CPU time counters of a single process."""

    kernel: float
    user: float

    @property
    def total(self) -> float:
        """Kernel plus user time."""
        return self.kernel + self.user


@dataclass(slots=True, frozen=True)
class MemoryStatus:
    """Raw physical memory reading as reported by the provider."""

    total_bytes: int
    available_bytes: int
    percent: float


@dataclass(slots=True, frozen=True)
class MemorySnapshot:
    """Point-in-time physical memory usage."""

    total_bytes: int
    used_bytes: int
    free_bytes: int
    usage_percent: float


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable per-cycle record of a process."""

    pid: int
    name: str
    cpu_usage_percent: float  # Share of the system-wide time delta
    memory_bytes: int  # Resident set size


@dataclass(slots=True, frozen=True)
class MemoryUsage:
    """Memory figures published to the display."""

    percent: int
    used_bytes: int
    total_bytes: int


@dataclass(slots=True, frozen=True)
class DashboardSnapshot:
    """Everything the display needs to render one frame."""

    cpu_usage_percent: int
    memory: MemoryUsage
    processes: tuple[ProcessRecord, ...]
