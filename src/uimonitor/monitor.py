"""Sampling loop for uimonitor."""

import logging
import threading
from collections.abc import Callable

from uimonitor.provider import PsutilProvider, TimeAccountingProvider
from uimonitor.sampler import GlobalCpuSampler, MemorySampler, ProcessSampler
from uimonitor.state import SharedState

logger = logging.getLogger(__name__)

DEFAULT_POLL_RATE = 1.0


class SystemMonitor:
    """
    Drives the CPU, memory and process samplers on a fixed interval.

    Runs in a separate daemon thread. After every cycle the results are
    published to the shared state, and only then is ``on_update`` called
    so the display can schedule a redraw. The monitor never waits for the
    display: each publish simply overwrites the previous one.
    """

    def __init__(
        self,
        state: SharedState,
        provider: TimeAccountingProvider | None = None,
        on_update: Callable[[], None] | None = None,
        poll_rate: float = DEFAULT_POLL_RATE,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            state: Shared state to publish results to.
            provider: Source of OS counters. Defaults to psutil.
            on_update: Called after each publish, from the monitor thread.
            poll_rate: Seconds between cycles.
        """
        self._state = state
        self._provider = provider if provider is not None else PsutilProvider()
        self._on_update = on_update
        self._poll_rate = poll_rate
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self.cpu_sampler = GlobalCpuSampler(self._provider)
        self.memory_sampler = MemorySampler(self._provider)
        self.process_sampler = ProcessSampler(self._provider)
        # Memory totals are known from construction; show them before the first cycle.
        self._publish()

    @property
    def poll_rate(self) -> float:
        """Get the poll rate."""
        return self._poll_rate

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()
        logger.info("System monitor started (poll rate %.2fs)", self._poll_rate)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("System monitor stopped")

    def run_once(self) -> None:
        """Sample, publish and notify once on the calling thread."""
        self.cpu_sampler.update()
        self.memory_sampler.update()
        self.process_sampler.update()
        self._publish()

        if self._on_update is not None:
            self._on_update()

    def _publish(self) -> None:
        memory = self.memory_sampler.snapshot
        self._state.publish(
            cpu_usage_percent=self.cpu_sampler.get_global_usage(),
            memory_percent=memory.usage_percent,
            memory_used=memory.used_bytes,
            memory_total=memory.total_bytes,
            processes=self.process_sampler.get_processes(),
        )

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                # Keep sampling; the display keeps the last published data.
                logger.exception("Sampling cycle failed")

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)
