"""Tests for uimonitor application."""

import logging

import pytest

from uimonitor.app import (
    MAX_ROWS,
    HeaderStats,
    ProcessTable,
    SortKey,
    UIMonitorApp,
    configure_logging,
    format_bytes,
    parse_args,
    render_bar,
)
from uimonitor.models import DashboardSnapshot, MemoryUsage, ProcessRecord, ProcessTimes


def _record(pid: int, name: str, cpu: float, memory: int) -> ProcessRecord:
    return ProcessRecord(pid=pid, name=name, cpu_usage_percent=cpu, memory_bytes=memory)


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert format_bytes(500) == "500.0 B"


def test_format_bytes_kilobytes():
    """Test format_bytes with kilobyte values."""
    assert format_bytes(2048) == "2.0 KB"


def test_format_bytes_megabytes():
    """Test format_bytes with megabyte values."""
    assert format_bytes(1572864) == "1.5 MB"


def test_format_bytes_gigabytes():
    """Test format_bytes with gigabyte values."""
    assert format_bytes(1073741824) == "1.0 GB"


def test_format_bytes_terabytes():
    """Test format_bytes caps at terabytes."""
    assert format_bytes(3 * 1024**4) == "3.0 TB"


def test_render_bar_clamps():
    """Test gauge bars never overflow their width."""
    assert render_bar(150, "green").count("█") == render_bar(100, "green").count("█")
    assert "█" not in render_bar(0, "green")


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_members(self):
        """Test SortKey enum has all expected members in cycle order."""
        assert list(SortKey) == [SortKey.CPU, SortKey.MEM, SortKey.PID, SortKey.NAME]


class TestCommandLine:
    """Tests for argument parsing and logging setup."""

    def test_defaults(self):
        """Test logging is off by default."""
        args = parse_args([])
        assert args.log_file is None
        assert args.log_level == "INFO"

    def test_log_options(self, tmp_path):
        """Test log file and level options are accepted."""
        log_file = tmp_path / "uimonitor.log"
        args = parse_args(["--log-file", str(log_file), "--log-level", "DEBUG"])
        assert args.log_file == str(log_file)
        assert args.log_level == "DEBUG"

    def test_no_log_file_installs_null_handler(self):
        """Test nothing is written to the terminal without --log-file."""
        root = logging.getLogger()
        configure_logging(None, "INFO")
        try:
            assert any(isinstance(h, logging.NullHandler) for h in root.handlers)
        finally:
            for handler in [h for h in root.handlers if isinstance(h, logging.NullHandler)]:
                root.removeHandler(handler)


@pytest.mark.asyncio
async def test_app_creation(provider):
    """Test UIMonitorApp can be instantiated."""
    app = UIMonitorApp(provider=provider)
    assert app.title == "UIMonitor"
    assert app.sub_title == "System Resource Monitor"
    assert app._monitor is not None
    assert app._state is not None


@pytest.mark.asyncio
async def test_app_compose(provider):
    """Test UIMonitorApp composes correctly."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#header-stats") is not None
        assert pilot.app.query_one("#process-table") is not None


@pytest.mark.asyncio
async def test_memory_shown_on_mount(provider):
    """Test the RAM total is displayed before the first cycle completes."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        header = pilot.app.query_one("#header-stats", HeaderStats)
        assert header._memory.total_bytes == 16 * 1024**3


@pytest.mark.asyncio
async def test_app_quit_binding(provider):
    """Test that 'q' binding triggers quit and stops the monitor."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit
        assert not app._monitor.is_running


@pytest.mark.asyncio
async def test_app_sort_binding(provider):
    """Test that F6 binding cycles sort key."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        initial_sort = process_table.sort_key

        await pilot.press("f6")

        assert process_table.sort_key != initial_sort


@pytest.mark.asyncio
async def test_process_table_cycle_sort(provider):
    """Test ProcessTable sort key cycling."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        assert process_table.sort_key == SortKey.CPU
        assert process_table.cycle_sort() == SortKey.MEM
        assert process_table.cycle_sort() == SortKey.PID
        assert process_table.cycle_sort() == SortKey.NAME
        # Should wrap back to CPU
        assert process_table.cycle_sort() == SortKey.CPU


@pytest.mark.asyncio
async def test_process_table_update_processes(provider):
    """Test ProcessTable shows published processes in order."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table")

        process_table.update_processes(
            (_record(200, "busy", 20.0, 2048000), _record(100, "calm", 10.0, 1024000))
        )

        assert process_table._current_pids == {100, 200}
        assert table.row_count == 2
        assert table.get_row_at(0)[0] == "200"
        assert table.get_row_at(1)[0] == "100"


@pytest.mark.asyncio
async def test_process_table_removes_old_processes(provider):
    """Test ProcessTable drops processes that no longer exist."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        process_table.update_processes(
            [_record(100, "a", 10.0, 1), _record(200, "b", 20.0, 1)]
        )
        process_table.update_processes([_record(200, "b", 25.0, 1)])

        assert 100 not in process_table._current_pids
        assert 200 in process_table._current_pids


@pytest.mark.asyncio
async def test_process_table_keeps_cursor_on_refresh(provider):
    """Test a refresh does not reset the selected row."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table")
        records = [_record(pid, f"p{pid}", 100.0 - pid, 0) for pid in range(1, 11)]

        process_table.update_processes(records)
        table.move_cursor(row=5)
        process_table.update_processes(records)

        assert table.cursor_row == 5
        assert process_table.selected_pid == 6


@pytest.mark.asyncio
async def test_process_table_cursor_follows_process(provider):
    """Test the cursor stays on the selected pid when rows reorder."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table")

        process_table.update_processes(
            [_record(1, "a", 30.0, 0), _record(2, "b", 20.0, 0), _record(3, "c", 10.0, 0)]
        )
        table.move_cursor(row=2)
        assert process_table.selected_pid == 3

        process_table.update_processes(
            [_record(3, "c", 50.0, 0), _record(1, "a", 30.0, 0), _record(2, "b", 20.0, 0)]
        )

        assert table.cursor_row == 0
        assert process_table.selected_pid == 3


@pytest.mark.asyncio
async def test_process_table_limits_rows(provider):
    """Test only the top processes are displayed."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table")

        process_table.update_processes([_record(pid, "p", 0.0, 0) for pid in range(1, 200)])

        assert table.row_count == MAX_ROWS


@pytest.mark.asyncio
async def test_process_table_sort_by_memory(provider):
    """Test MEM sort orders rows by resident memory."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table")
        process_table.cycle_sort()

        process_table.update_processes(
            [_record(1, "small", 90.0, 10), _record(2, "large", 1.0, 10_000)]
        )

        assert table.get_row_at(0)[0] == "2"


@pytest.mark.asyncio
async def test_header_stats_update(provider):
    """Test that header stats can be updated."""
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        header = pilot.app.query_one("#header-stats", HeaderStats)

        header.update_stats(
            DashboardSnapshot(
                cpu_usage_percent=37,
                memory=MemoryUsage(percent=50, used_bytes=8 * 1024**3, total_bytes=16 * 1024**3),
                processes=(),
            )
        )

        assert header._cpu_percent == 37
        assert header._memory.percent == 50
        assert "8.0 GB/16.0 GB" in header._get_mem_info()


@pytest.mark.asyncio
async def test_app_receives_updates_from_monitor(provider):
    """Test that the app redraws when the monitor publishes a cycle."""
    provider.processes = [(321, "sampled")]
    provider.process_times = {321: ProcessTimes(kernel=0.0, user=0.0)}
    provider.process_memory = {321: 4096}
    app = UIMonitorApp(provider=provider)
    async with app.run_test() as pilot:
        await pilot.pause(1.5)

        assert app._monitor.is_running
        process_table = pilot.app.query_one(ProcessTable)
        assert process_table._current_pids == {321}
