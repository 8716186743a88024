"""uimonitor - Main Textual application."""

import argparse
import logging
from enum import Enum

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.widgets import DataTable, Footer, Static

from uimonitor.models import DashboardSnapshot, MemoryUsage, ProcessRecord
from uimonitor.monitor import SystemMonitor
from uimonitor.provider import TimeAccountingProvider
from uimonitor.state import SharedState

logger = logging.getLogger(__name__)

BAR_WIDTH = 40
MAX_ROWS = 50


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    NAME = "name"


class SnapshotReady(Message):
    """Posted by the monitor thread once fresh data is published."""


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    value = float(size)
    for unit in ["B", "KB", "MB", "GB"]:
        if value < 1024:
            return f"{value:.1f} {unit}"
        value = value / 1024
    return f"{value:.1f} TB"


def render_bar(percent: int, color: str) -> str:
    """Render a gauge bar for a 0-100 percentage."""
    filled = min(max(percent, 0), 100) * BAR_WIDTH // 100
    bar = f"[{color}]█[/{color}]" * filled + "[dim]░[/dim]" * (BAR_WIDTH - filled)
    # Escaped bracket so Rich does not read the container as markup
    return f"\\[{bar}]"


class HeaderStats(Static):
    """Header widget showing CPU and RAM gauges."""

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
        self._cpu_percent: int = 0
        self._memory = MemoryUsage(percent=0, used_bytes=0, total_bytes=0)

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Static(self._get_cpu_info(), id="cpu-info")
        yield Static(self._get_mem_info(), id="mem-info")

    def update_stats(self, snapshot: DashboardSnapshot) -> None:
        """Update the gauges from a dashboard snapshot."""
        self._cpu_percent = snapshot.cpu_usage_percent
        self._memory = snapshot.memory
        self._refresh_display()

    def _refresh_display(self) -> None:
        try:
            self.query_one("#cpu-info", Static).update(self._get_cpu_info())
            self.query_one("#mem-info", Static).update(self._get_mem_info())
        except Exception:
            pass  # Widget not mounted yet

    def _get_cpu_info(self) -> str:
        return f"CPU Usage: {render_bar(self._cpu_percent, 'green')} {self._cpu_percent:3d}%"

    def _get_mem_info(self) -> str:
        memory = self._memory
        if memory.total_bytes == 0:
            return "Loading memory info..."
        used = format_bytes(memory.used_bytes)
        total = format_bytes(memory.total_bytes)
        return f"RAM Usage: {render_bar(memory.percent, 'cyan')} {used}/{total}"


class ProcessTable(Container):
    """Container for the top processes table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()
        self._sort_key: SortKey = SortKey.CPU
        self._sort_reverse: bool = True  # Default: descending for CPU

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        next_index = (keys.index(self._sort_key) + 1) % len(keys)
        self._sort_key = keys[next_index]
        self._sort_reverse = self._sort_key in (SortKey.CPU, SortKey.MEM)
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield Static("[b]Top Processes[/b]", id="process-title")
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=8)
        table.add_column("Name", key="name")
        table.add_column("CPU %", key="cpu", width=8)
        table.add_column("Memory", key="mem", width=12)

    def update_processes(self, processes: tuple[ProcessRecord, ...] | list[ProcessRecord]) -> None:
        """
        Replace the table rows with the given processes.

        Rows are rebuilt in display order and keyed by pid; only the first
        MAX_ROWS are shown. The cursor stays on the selected process while
        it remains visible.
        """
        table = self.query_one("#process-table", DataTable)
        visible = self._sort_processes(processes)[:MAX_ROWS]
        selected_pid = self.selected_pid

        table.clear()
        pids: set[int] = set()
        for proc in visible:
            if proc.pid in pids:
                continue  # Row keys must be unique
            pids.add(proc.pid)
            table.add_row(
                str(proc.pid),
                proc.name,
                f"{proc.cpu_usage_percent:.1f}",
                format_bytes(proc.memory_bytes),
                key=str(proc.pid),
            )
        self._current_pids = pids

        if selected_pid is not None and selected_pid in pids:
            table.move_cursor(row=table.get_row_index(str(selected_pid)))

    @property
    def selected_pid(self) -> int | None:
        """Pid of the row under the cursor, or None if the table is empty."""
        table = self.query_one("#process-table", DataTable)
        if not self._current_pids or table.row_count == 0:
            return None
        row_key = table.coordinate_to_cell_key(table.cursor_coordinate).row_key
        return int(row_key.value)

    def _sort_processes(self, processes) -> list[ProcessRecord]:
        """Sort processes based on the current sort key."""
        if self._sort_key is SortKey.CPU:
            # Already published in CPU order; keep the monitor's tie order.
            return list(processes)
        key_func = {
            SortKey.MEM: lambda p: p.memory_bytes,
            SortKey.PID: lambda p: p.pid,
            SortKey.NAME: lambda p: p.name.lower(),
        }
        return sorted(processes, key=key_func[self._sort_key], reverse=self._sort_reverse)


class UIMonitorApp(App):
    """Main uimonitor application."""

    TITLE = "UIMonitor"
    SUB_TITLE = "System Resource Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
    }

    #process-title {
        padding-left: 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, provider: TimeAccountingProvider | None = None) -> None:
        """Initialize the UIMonitorApp."""
        super().__init__()
        self._state = SharedState()
        self._monitor = SystemMonitor(
            self._state,
            provider=provider,
            on_update=self._notify_snapshot_ready,
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Show the initial figures right away, then start sampling."""
        self._update_ui(self._state.snapshot())
        self._monitor.start()

    def _notify_snapshot_ready(self) -> None:
        # Called from the monitor thread; post_message is thread-safe.
        self.post_message(SnapshotReady())

    def on_snapshot_ready(self, message: SnapshotReady) -> None:
        """Redraw with the latest published data."""
        self._update_ui(self._state.snapshot())

    def _update_ui(self, snapshot: DashboardSnapshot) -> None:
        """Update the widgets with a dashboard snapshot."""
        try:
            self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        except Exception:
            logger.debug("Header refresh failed", exc_info=True)

        try:
            self.query_one(ProcessTable).update_processes(snapshot.processes)
        except Exception:
            logger.debug("Process table refresh failed", exc_info=True)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        try:
            process_table = self.query_one(ProcessTable)
            new_sort_key = process_table.cycle_sort()
            process_table.update_processes(self._state.processes)
            self.notify(f"Sort: {new_sort_key.value.upper()}")
        except Exception:
            logger.debug("Sort failed", exc_info=True)

    def stop_monitor(self) -> None:
        """Stop the sampling thread and wait for it to finish."""
        self._monitor.stop()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self.stop_monitor()
        self.exit()


def configure_logging(log_file: str | None, level: str) -> None:
    """Send logs to a file; the terminal belongs to the dashboard."""
    root = logging.getLogger()
    if log_file is None:
        root.addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=log_file,
        level=getattr(logging, level),
        format="%(asctime)s - %(levelname)s - [%(threadName)s] %(name)s - %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line options."""
    parser = argparse.ArgumentParser(
        prog="uimonitor",
        description="Live CPU, memory and process dashboard.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Write logs to this file (default: no logging).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level used with --log-file (default: INFO).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry point for uimonitor application."""
    args = parse_args(argv)
    configure_logging(args.log_file, args.log_level)
    app = UIMonitorApp()
    try:
        app.run()
    finally:
        app.stop_monitor()


if __name__ == "__main__":
    main()
