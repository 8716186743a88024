"""Stateful samplers that turn cumulative OS counters into usage figures.

Each sampler owns its previous-cycle state and never shares it with the
others. A failed provider call leaves the last computed value in place.
"""

import logging

from uimonitor.models import MemorySnapshot, ProcessRecord, ProcessTimes, SystemTimes
from uimonitor.provider import ProviderError, TimeAccountingProvider

logger = logging.getLogger(__name__)


def usage_from_deltas(idle_delta: float, kernel_delta: float, user_delta: float) -> float:
    """Busy share of a sampling interval, where kernel time includes idle time."""
    total = kernel_delta + user_delta
    if total <= 0:
        return 0.0
    usage = (total - idle_delta) / total * 100.0
    return min(max(usage, 0.0), 100.0)


class GlobalCpuSampler:
    """Global CPU utilization from consecutive system time readings."""

    def __init__(self, provider: TimeAccountingProvider) -> None:
        self._provider = provider
        self._usage_percent: float = 0.0
        self._prev: SystemTimes | None = None
        # Seed the baseline so the first update measures a real interval.
        try:
            self._prev = provider.read_system_times()
        except ProviderError as exc:
            logger.debug("Initial system time read failed: %s", exc)

    def update(self) -> None:
        """Recompute the usage percentage against the previous reading."""
        try:
            current = self._provider.read_system_times()
        except ProviderError as exc:
            logger.debug("System time read failed, keeping %.1f%%: %s", self._usage_percent, exc)
            return

        prev = self._prev
        self._prev = current
        if prev is None:
            return

        self._usage_percent = usage_from_deltas(
            current.idle - prev.idle,
            current.kernel - prev.kernel,
            current.user - prev.user,
        )

    def get_global_usage(self) -> float:
        """Return the last computed global CPU usage (0.0 - 100.0)."""
        return self._usage_percent


class MemorySampler:
    """Physical memory usage. Holds no history between reads."""

    def __init__(self, provider: TimeAccountingProvider) -> None:
        self._provider = provider
        self._snapshot = MemorySnapshot(
            total_bytes=0, used_bytes=0, free_bytes=0, usage_percent=0.0
        )
        self.update()

    def update(self) -> None:
        """Replace the snapshot with a fresh reading."""
        try:
            status = self._provider.read_memory_status()
        except ProviderError as exc:
            logger.debug("Memory status read failed, keeping previous: %s", exc)
            return

        total = status.total_bytes
        available = min(status.available_bytes, total)
        self._snapshot = MemorySnapshot(
            total_bytes=total,
            used_bytes=total - available,
            free_bytes=available,
            # Reported as-is by the provider.
            usage_percent=status.percent,
        )

    @property
    def snapshot(self) -> MemorySnapshot:
        """Last successful memory reading."""
        return self._snapshot

    def get_memory_usage_percentage(self) -> float:
        """Return the memory usage percentage as reported by the provider."""
        return self._snapshot.usage_percent

    def get_total_memory(self) -> int:
        """Return total physical memory in bytes."""
        return self._snapshot.total_bytes

    def get_used_memory(self) -> int:
        """Return used physical memory in bytes."""
        return self._snapshot.used_bytes

    def get_free_memory(self) -> int:
        """Return available physical memory in bytes."""
        return self._snapshot.free_bytes


class ProcessSampler:
    """
    Per-process CPU and memory usage.

    CPU usage of a process is its kernel + user time delta divided by the
    system-wide kernel + user delta over the same interval. A pid seen for
    the first time reports 0% until the next cycle provides a baseline.
    History for pids that disappear from the enumeration is dropped every
    cycle, so a pid that comes back later starts over from 0%.
    """

    def __init__(self, provider: TimeAccountingProvider) -> None:
        self._provider = provider
        self._history: dict[int, ProcessTimes] = {}
        self._processes: tuple[ProcessRecord, ...] = ()
        self._prev_sys: SystemTimes | None = None
        # Seed the system baseline so the first cycle does not spike.
        try:
            self._prev_sys = provider.read_system_times()
        except ProviderError as exc:
            logger.debug("Initial system time read failed: %s", exc)

    @property
    def history_pids(self) -> frozenset[int]:
        """Pids that currently have a CPU time baseline."""
        return frozenset(self._history)

    def update(self) -> None:
        """Enumerate processes and publish a freshly sorted list."""
        try:
            sys_times = self._provider.read_system_times()
        except ProviderError as exc:
            logger.debug("System time read failed, skipping process cycle: %s", exc)
            return

        prev_sys = self._prev_sys
        self._prev_sys = sys_times
        if prev_sys is None:
            sys_total_delta = 0.0
        else:
            sys_total_delta = (sys_times.kernel - prev_sys.kernel) + (sys_times.user - prev_sys.user)

        try:
            entries = self._provider.enumerate_processes()
        except ProviderError as exc:
            logger.debug("Process enumeration failed, keeping previous list: %s", exc)
            return

        records: list[ProcessRecord] = []
        seen: set[int] = set()
        for pid, name in entries:
            seen.add(pid)
            records.append(
                ProcessRecord(
                    pid=pid,
                    name=name,
                    cpu_usage_percent=self._cpu_usage(pid, sys_total_delta),
                    memory_bytes=self._memory(pid),
                )
            )

        for pid in self._history.keys() - seen:
            del self._history[pid]

        # list.sort is stable: equal usage keeps enumeration order.
        records.sort(key=lambda r: r.cpu_usage_percent, reverse=True)
        self._processes = tuple(records)

    def _cpu_usage(self, pid: int, sys_total_delta: float) -> float:
        try:
            times = self._provider.read_process_times(pid)
        except ProviderError as exc:
            logger.debug("No CPU times for pid %d: %s", pid, exc)
            return 0.0

        prev = self._history.get(pid)
        self._history[pid] = times
        if prev is None or sys_total_delta <= 0:
            return 0.0

        proc_delta = times.total - prev.total
        return max(proc_delta, 0.0) / sys_total_delta * 100.0

    def _memory(self, pid: int) -> int:
        try:
            return self._provider.read_process_memory(pid)
        except ProviderError as exc:
            logger.debug("No memory info for pid %d: %s", pid, exc)
            return 0

    def get_processes(self) -> tuple[ProcessRecord, ...]:
        """Return the last published list, sorted by CPU usage descending."""
        return self._processes
