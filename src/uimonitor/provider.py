"""Time accounting providers for uimonitor.

A provider is the only place that talks to the operating system. Every call
can fail independently and signals failure by raising ``ProviderError``; the
samplers decide per call site what a failure means.
"""

from abc import ABC, abstractmethod

import psutil

from uimonitor.models import MemoryStatus, ProcessTimes, SystemTimes


# Fields psutil reports that are already counted in user/nice on Linux.
_GUEST_FIELDS = ("guest", "guest_nice")
_USER_FIELDS = ("user", "nice")
_IDLE_FIELDS = ("idle", "iowait")


class ProviderError(Exception):
    """A single provider call could not produce a value."""


class ProcessAccessDenied(ProviderError):
    """The process exists but may not be queried."""


class TimeAccountingProvider(ABC):
    """Source of cumulative CPU counters, the process list and memory status."""

    @abstractmethod
    def read_system_times(self) -> SystemTimes:
        """Return the system-wide idle, kernel and user counters."""

    @abstractmethod
    def enumerate_processes(self) -> list[tuple[int, str]]:
        """Return ``(pid, name)`` for every running process."""

    @abstractmethod
    def read_process_times(self, pid: int) -> ProcessTimes:
        """Return the kernel and user counters of one process."""

    @abstractmethod
    def read_process_memory(self, pid: int) -> int:
        """Return the resident memory of one process in bytes."""

    @abstractmethod
    def read_memory_status(self) -> MemoryStatus:
        """Return total and available physical memory."""


def _system_times_from_psutil(times) -> SystemTimes:
    """
    Fold a psutil ``scputimes`` tuple into idle/kernel/user counters.

    Kernel is everything that is not user time, idle included, so that
    kernel + user is the total elapsed CPU time across all cores.
    """
    fields = times._asdict()
    total = sum(value for key, value in fields.items() if key not in _GUEST_FIELDS)
    user = sum(fields.get(key, 0.0) for key in _USER_FIELDS)
    idle = sum(fields.get(key, 0.0) for key in _IDLE_FIELDS)
    return SystemTimes(idle=idle, kernel=total - user, user=user)


class PsutilProvider(TimeAccountingProvider):
    """Provider backed by psutil."""

    def read_system_times(self) -> SystemTimes:
        try:
            return _system_times_from_psutil(psutil.cpu_times())
        except (psutil.Error, OSError) as exc:
            raise ProviderError(f"cannot read system times: {exc}") from exc

    def enumerate_processes(self) -> list[tuple[int, str]]:
        try:
            return [
                (proc.info["pid"], proc.info.get("name") or "")
                for proc in psutil.process_iter(attrs=["pid", "name"])
            ]
        except (psutil.Error, OSError) as exc:
            raise ProviderError(f"cannot enumerate processes: {exc}") from exc

    def read_process_times(self, pid: int) -> ProcessTimes:
        try:
            times = psutil.Process(pid).cpu_times()
        except psutil.AccessDenied as exc:
            raise ProcessAccessDenied(f"access denied to pid {pid}") from exc
        except (psutil.Error, OSError) as exc:
            raise ProviderError(f"cannot read times of pid {pid}: {exc}") from exc
        return ProcessTimes(kernel=times.system, user=times.user)

    def read_process_memory(self, pid: int) -> int:
        try:
            return psutil.Process(pid).memory_info().rss
        except psutil.AccessDenied as exc:
            raise ProcessAccessDenied(f"access denied to pid {pid}") from exc
        except (psutil.Error, OSError) as exc:
            raise ProviderError(f"cannot read memory of pid {pid}: {exc}") from exc

    def read_memory_status(self) -> MemoryStatus:
        try:
            mem = psutil.virtual_memory()
        except (psutil.Error, OSError) as exc:
            raise ProviderError(f"cannot read memory status: {exc}") from exc
        return MemoryStatus(
            total_bytes=mem.total,
            available_bytes=mem.available,
            percent=mem.percent,
        )
