"""Tests for the taskboard command line."""

import pytest
import structlog
from typer.testing import CliRunner

from taskboard import __version__
from taskboard.cli import app
from taskboard.persistence import FileBackedTaskManager

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo the CLI's logging configuration after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def board_file(tmp_path, monkeypatch):
    """Task file path with a fixed planning horizon."""
    monkeypatch.setenv("TASKBOARD_BASE_TIME", "2024-01-01T00:00:00")
    monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "WARNING")
    return tmp_path / "tasks.csv"


def invoke(*args):
    return runner.invoke(app, [*args])


class TestCreateCommands:
    """Test add-task, add-epic and add-subtask."""

    def test_add_task(self, board_file):
        """Test a task is created and saved."""
        result = invoke("add-task", "Write report", "-d", "Q1", "-f", str(board_file))

        assert result.exit_code == 0
        assert "Created task 1" in result.output

        board = FileBackedTaskManager.load_from_file(board_file)
        assert board.get_all_tasks()[0].name == "Write report"

    def test_add_scheduled_task(self, board_file):
        """Test start time and duration options."""
        result = invoke(
            "add-task", "Meeting", "--start", "2024-01-02 10:00", "--duration", "60",
            "-f", str(board_file),
        )
        assert result.exit_code == 0

        task = FileBackedTaskManager.load_from_file(board_file).get_all_tasks()[0]
        assert task.end_time.hour == 11

    def test_conflict_reports_error(self, board_file):
        """Test overlapping tasks exit with an error."""
        invoke("add-task", "A", "-s", "2024-01-02 10:00", "-m", "120", "-f", str(board_file))
        result = invoke("add-task", "B", "-s", "2024-01-02 11:00", "-m", "60", "-f", str(board_file))

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_add_subtask(self, board_file):
        """Test a subtask is attached to its epic."""
        invoke("add-epic", "Move", "-f", str(board_file))
        result = invoke("add-subtask", "1", "Pack", "-f", str(board_file))

        assert result.exit_code == 0
        assert "Created subtask 2 in epic 1" in result.output

    def test_add_subtask_unknown_epic(self, board_file):
        """Test an unknown epic is reported."""
        result = invoke("add-subtask", "7", "Pack", "-f", str(board_file))

        assert result.exit_code == 1
        assert "not found" in result.output


class TestViewCommands:
    """Test show, list, history and prioritized."""

    def test_show_records_history(self, board_file):
        """Test show persists the view in history."""
        invoke("add-task", "A", "-f", str(board_file))
        invoke("add-task", "B", "-f", str(board_file))

        invoke("show", "2", "-f", str(board_file))
        result = invoke("show", "1", "-f", str(board_file))
        assert result.exit_code == 0
        assert "A" in result.output

        board = FileBackedTaskManager.load_from_file(board_file)
        assert [e.id for e in board.get_history()] == [2, 1]

    def test_show_unknown(self, board_file):
        """Test showing a missing id exits with 1."""
        result = invoke("show", "5", "-f", str(board_file))
        assert result.exit_code == 1

    def test_list(self, board_file):
        """Test list shows every entity."""
        invoke("add-task", "Alpha", "-f", str(board_file))
        invoke("add-epic", "Beta", "-f", str(board_file))

        result = invoke("list", "-f", str(board_file))

        assert result.exit_code == 0
        assert "Alpha" in result.output
        assert "Beta" in result.output

    def test_prioritized(self, board_file):
        """Test prioritized lists scheduled items only."""
        invoke("add-task", "Later", "-s", "2024-01-03 09:00", "-m", "30", "-f", str(board_file))
        invoke("add-task", "Someday", "-f", str(board_file))

        result = invoke("prioritized", "-f", str(board_file))

        assert result.exit_code == 0
        assert "Later" in result.output
        assert "Someday" not in result.output


class TestChangeCommands:
    """Test set-status, schedule and delete."""

    def test_set_status_updates_epic(self, board_file):
        """Test finishing the only subtask finishes the epic."""
        invoke("add-epic", "E", "-f", str(board_file))
        invoke("add-subtask", "1", "S", "-f", str(board_file))

        result = invoke("set-status", "2", "DONE", "-f", str(board_file))
        assert result.exit_code == 0

        board = FileBackedTaskManager.load_from_file(board_file)
        assert board.get_epic(1).status.value == "DONE"

    def test_set_status_on_epic_refused(self, board_file):
        """Test epic status cannot be set directly."""
        invoke("add-epic", "E", "-f", str(board_file))
        result = invoke("set-status", "1", "DONE", "-f", str(board_file))

        assert result.exit_code == 1

    def test_schedule(self, board_file):
        """Test scheduling an existing task."""
        invoke("add-task", "T", "-f", str(board_file))
        result = invoke("schedule", "1", "-s", "2024-01-05 14:00", "-m", "45", "-f", str(board_file))

        assert result.exit_code == 0
        task = FileBackedTaskManager.load_from_file(board_file).get_all_tasks()[0]
        assert task.start_time.hour == 14
        assert task.duration.total_seconds() == 45 * 60

    def test_delete_epic_cascades(self, board_file):
        """Test deleting an epic also deletes its subtasks."""
        invoke("add-epic", "E", "-f", str(board_file))
        invoke("add-subtask", "1", "S", "-f", str(board_file))

        result = invoke("delete", "1", "-f", str(board_file))

        assert result.exit_code == 0
        board = FileBackedTaskManager.load_from_file(board_file)
        assert board.get_all_epics() == []
        assert board.get_all_subtasks() == []

    def test_delete_unknown_is_not_an_error(self, board_file):
        """Test deleting a missing id succeeds quietly."""
        result = invoke("delete", "9", "-f", str(board_file))
        assert result.exit_code == 0

    def test_write_commands_leave_history_alone(self, board_file):
        """Test set-status and schedule do not count as views."""
        invoke("add-task", "T", "-f", str(board_file))
        invoke("set-status", "1", "DONE", "-f", str(board_file))
        invoke("schedule", "1", "-s", "2024-01-05 14:00", "-m", "30", "-f", str(board_file))

        board = FileBackedTaskManager.load_from_file(board_file)
        assert board.get_all_tasks()[0].status.value == "DONE"
        assert board.get_history() == []


class TestSchedulingCommands:
    """Test free-slot, stats and version."""

    def test_free_slot(self, board_file):
        """Test the next free slot skips scheduled work."""
        invoke("add-task", "A", "-s", "2024-01-02 10:00", "-m", "120", "-f", str(board_file))
        result = invoke("free-slot", "30", "--after", "2024-01-02 10:00", "-f", str(board_file))

        assert result.exit_code == 0
        assert "2024-01-02 12:00" in result.output

    def test_stats(self, board_file):
        """Test statistics are printed."""
        invoke("add-task", "A", "-s", "2024-01-02 10:00", "-m", "60", "-f", str(board_file))
        result = invoke("stats", "-f", str(board_file))

        assert result.exit_code == 0
        assert "Occupied Slots" in result.output

    def test_version(self):
        """Test the version command."""
        result = invoke("version")

        assert result.exit_code == 0
        assert __version__ in result.output
