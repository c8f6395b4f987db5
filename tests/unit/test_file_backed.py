"""Tests for the CSV file-backed task manager."""

from datetime import datetime, timedelta

import pytest

from taskboard.exceptions import PersistenceError, TimeConflictError
from taskboard.models import Epic, Subtask, Task, TaskStatus
from taskboard.persistence import FileBackedTaskManager


@pytest.fixture
def data_file(tmp_path):
    """Path of a task file that does not exist yet."""
    return tmp_path / "board" / "tasks.csv"


class TestSaving:
    """Test that mutations reach the file."""

    def test_create_writes_file(self, data_file, settings):
        """Test the first mutation creates the file and its directory."""
        manager = FileBackedTaskManager(data_file, settings)
        manager.create_task("T", "")

        assert data_file.exists()
        assert "1,TASK,T,NEW" in data_file.read_text(encoding="utf-8")

    def test_no_temp_files_left(self, data_file, settings):
        """Test atomic writes clean up after themselves."""
        manager = FileBackedTaskManager(data_file, settings)
        manager.create_task("A", "")
        manager.create_task("B", "")

        assert [p.name for p in data_file.parent.iterdir()] == ["tasks.csv"]

    def test_delete_is_saved(self, data_file, settings):
        """Test deletions are persisted."""
        manager = FileBackedTaskManager(data_file, settings)
        task_id = manager.create_task("T", "")
        manager.delete_task(task_id)

        reloaded = FileBackedTaskManager.load_from_file(data_file, settings)
        assert reloaded.get_all_tasks() == []

    def test_rejected_change_not_saved(self, data_file, settings):
        """Test a rejected creation leaves the file unchanged."""
        manager = FileBackedTaskManager(data_file, settings)
        manager.create_task("A", "", start_time=datetime(2024, 1, 1, 10), duration=timedelta(hours=1))
        before = data_file.read_text(encoding="utf-8")

        with pytest.raises(TimeConflictError):
            manager.create_task("B", "", start_time=datetime(2024, 1, 1, 10), duration=timedelta(hours=1))

        assert data_file.read_text(encoding="utf-8") == before

    def test_save_failure_raises(self, tmp_path, settings):
        """Test an unwritable target surfaces as PersistenceError."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        manager = FileBackedTaskManager(blocker / "tasks.csv", settings)

        with pytest.raises(PersistenceError):
            manager.save()


class TestLoading:
    """Test loading from disk."""

    def test_missing_file_is_empty(self, data_file, settings):
        """Test a missing file yields an empty store."""
        manager = FileBackedTaskManager.load_from_file(data_file, settings)

        assert manager.get_all_tasks() == []
        assert not data_file.exists()

    def test_full_round_trip(self, data_file, settings):
        """Test entities, links, statuses, timing and history survive a reload."""
        manager = FileBackedTaskManager(data_file, settings)
        task_id = manager.create_task(
            "Report, final", 'Say "done"', start_time=datetime(2024, 2, 1, 9), duration=timedelta(minutes=30)
        )
        epic_id = manager.create_epic("Move", "")
        subtask_id = manager.create_subtask("Pack", "", epic_id)

        subtask = manager.get_subtask(subtask_id)
        subtask.status = TaskStatus.DONE
        manager.update_subtask(subtask)
        manager.get_epic(epic_id)
        manager.get_task(task_id)
        manager.save()

        reloaded = FileBackedTaskManager.load_from_file(data_file, settings)

        task = reloaded.get_all_tasks()[0]
        assert task.id == task_id
        assert task.name == "Report, final"
        assert task.description == 'Say "done"'
        assert task.start_time == datetime(2024, 2, 1, 9)
        assert task.duration == timedelta(minutes=30)

        epic = reloaded.get_all_epics()[0]
        assert epic.subtask_ids == [subtask_id]
        assert epic.status == TaskStatus.DONE

        assert reloaded.get_all_subtasks()[0].epic_id == epic_id
        assert [e.id for e in reloaded.get_history()] == [subtask_id, epic_id, task_id]

    def test_ids_continue_after_reload(self, data_file, settings):
        """Test new ids never collide with loaded ones."""
        manager = FileBackedTaskManager(data_file, settings)
        manager.create_task("A", "")
        manager.create_task("B", "")

        reloaded = FileBackedTaskManager.load_from_file(data_file, settings)
        assert reloaded.create_task("C", "") == 3

    def test_time_index_rebuilt(self, data_file, settings):
        """Test conflicts are still detected after a reload."""
        manager = FileBackedTaskManager(data_file, settings)
        manager.create_task("A", "", start_time=datetime(2024, 1, 1, 10), duration=timedelta(hours=2))

        reloaded = FileBackedTaskManager.load_from_file(data_file, settings)
        with pytest.raises(TimeConflictError):
            reloaded.create_task("B", "", start_time=datetime(2024, 1, 1, 11), duration=timedelta(hours=1))

    def test_malformed_rows_skipped(self, data_file, settings):
        """Test a partly corrupt file still loads its good rows."""
        data_file.parent.mkdir(parents=True)
        data_file.write_text(
            "id,type,name,status,description,epic,duration,startTime\n"
            "1,TASK,Good,NEW,,,0,\n"
            "garbage\n"
            "2,SUBTASK,Orphan,NEW,,9,0,\n"
            "\n"
            "1,x,2\n",
            encoding="utf-8",
        )

        manager = FileBackedTaskManager.load_from_file(data_file, settings)

        assert [t.name for t in manager.get_all_tasks()] == ["Good"]
        assert manager.get_all_subtasks() == []
        assert [e.id for e in manager.get_history()] == [1]

    def test_unreadable_file_raises(self, tmp_path, settings):
        """Test undecodable content surfaces as PersistenceError."""
        path = tmp_path / "tasks.csv"
        path.write_bytes(b"\xff\xfe\x00broken")

        with pytest.raises(PersistenceError):
            FileBackedTaskManager.load_from_file(path, settings)

    def test_reload_in_memory_types(self, data_file, settings):
        """Test reloaded entities have their concrete types."""
        manager = FileBackedTaskManager(data_file, settings)
        epic_id = manager.create_epic("E", "")
        manager.create_subtask("S", "", epic_id)
        manager.create_task("T", "")

        reloaded = FileBackedTaskManager.load_from_file(data_file, settings)
        entities, _ = reloaded.export_state()

        assert [type(e) for e in entities] == [Task, Epic, Subtask]
