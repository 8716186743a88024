"""Shared fixtures for uimonitor tests."""

import pytest

from uimonitor.models import MemoryStatus, ProcessTimes, SystemTimes
from uimonitor.provider import ProviderError, TimeAccountingProvider


def _value_or_raise(value):
    if isinstance(value, Exception):
        raise value
    return value


class FakeProvider(TimeAccountingProvider):
    """
    Scripted provider.

    Tests assign readings (or ProviderError instances to simulate failure)
    to the public attributes between sampler updates.
    """

    def __init__(self) -> None:
        self.system_times: SystemTimes | Exception = SystemTimes(idle=0.0, kernel=0.0, user=0.0)
        self.processes: list[tuple[int, str]] | Exception = []
        self.process_times: dict[int, ProcessTimes | Exception] = {}
        self.process_memory: dict[int, int | Exception] = {}
        self.memory_status: MemoryStatus | Exception = MemoryStatus(
            total_bytes=16 * 1024**3,
            available_bytes=12 * 1024**3,
            percent=25.0,
        )
        self.system_reads = 0

    def read_system_times(self) -> SystemTimes:
        self.system_reads += 1
        return _value_or_raise(self.system_times)

    def enumerate_processes(self) -> list[tuple[int, str]]:
        return list(_value_or_raise(self.processes))

    def read_process_times(self, pid: int) -> ProcessTimes:
        return _value_or_raise(self.process_times.get(pid, ProviderError(f"no pid {pid}")))

    def read_process_memory(self, pid: int) -> int:
        return _value_or_raise(self.process_memory.get(pid, ProviderError(f"no pid {pid}")))

    def read_memory_status(self) -> MemoryStatus:
        return _value_or_raise(self.memory_status)


@pytest.fixture
def provider() -> FakeProvider:
    """A scripted provider with idle counters and no processes."""
    return FakeProvider()
