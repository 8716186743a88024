"""State shared between the sampling thread and the display."""

import threading

from uimonitor.models import DashboardSnapshot, MemoryUsage, ProcessRecord


class SharedState:
    """
    Latest published metrics.

    Scalars are assigned one attribute at a time and are each consistent on
    their own; a reader may briefly see this cycle's CPU figure next to the
    previous cycle's memory figure. The process list is swapped as a whole
    under a lock, so readers never observe a partially built list.
    """

    def __init__(self) -> None:
        self.cpu_usage_percent: int = 0
        self.memory_percent: int = 0
        self.memory_used: int = 0
        self.memory_total: int = 0
        self._process_lock = threading.Lock()
        self._processes: tuple[ProcessRecord, ...] = ()

    def publish(
        self,
        cpu_usage_percent: float,
        memory_percent: float,
        memory_used: int,
        memory_total: int,
        processes: tuple[ProcessRecord, ...],
    ) -> None:
        """Replace every published value with the results of one cycle."""
        self.cpu_usage_percent = int(cpu_usage_percent)
        self.memory_percent = int(memory_percent)
        self.memory_used = memory_used
        self.memory_total = memory_total
        with self._process_lock:
            self._processes = tuple(processes)

    @property
    def processes(self) -> tuple[ProcessRecord, ...]:
        """Current process list, sorted by CPU usage descending."""
        with self._process_lock:
            return self._processes

    def snapshot(self) -> DashboardSnapshot:
        """Read everything the display needs for one frame."""
        return DashboardSnapshot(
            cpu_usage_percent=self.cpu_usage_percent,
            memory=MemoryUsage(
                percent=self.memory_percent,
                used_bytes=self.memory_used,
                total_bytes=self.memory_total,
            ),
            processes=self.processes,
        )
