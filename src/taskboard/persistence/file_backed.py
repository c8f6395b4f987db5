"""Task store that saves itself to a CSV file after every change."""

import csv
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from taskboard.exceptions import PersistenceError
from taskboard.models.config import TaskboardSettings
from taskboard.persistence.csv_format import read_csv, write_csv
from taskboard.store.manager import TaskManager

logger = structlog.get_logger(__name__)


class FileBackedTaskManager(TaskManager):
    """TaskManager persisted to a CSV file.

    Every state-changing operation rewrites the file. Writes go to a
    temporary file in the same directory which then replaces the target, so
    a crash mid-save never leaves a truncated file behind.
    """

    def __init__(
        self,
        path: Union[str, Path],
        settings: Optional[TaskboardSettings] = None,
    ) -> None:
        """Initialize an empty file-backed store.

        Args:
            path: CSV file to save to
            settings: Taskboard settings. If None, loads from environment.
        """
        self.path = Path(path)
        super().__init__(settings)

    @classmethod
    def load_from_file(
        cls,
        path: Union[str, Path],
        settings: Optional[TaskboardSettings] = None,
    ) -> "FileBackedTaskManager":
        """Load a store from a CSV file.

        Args:
            path: CSV file to load; a missing file yields an empty store
            settings: Taskboard settings. If None, loads from environment.

        Returns:
            FileBackedTaskManager bound to path

        Raises:
            PersistenceError: If the file exists but cannot be read
        """
        manager = cls(path, settings)
        if not manager.path.exists():
            return manager

        try:
            with open(manager.path, "r", encoding="utf-8", newline="") as f:
                entities, history_ids = read_csv(f)
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise PersistenceError(manager.path, "Could not load task file") from e

        manager.restore(entities, history_ids)
        logger.info("task_file_loaded", path=str(manager.path), entities=len(entities))
        return manager

    def save(self) -> None:
        """Write the current state to disk using atomic write.

        Raises:
            PersistenceError: If the file cannot be written
        """
        entities, history_ids = self.export_state()
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=directory, prefix=".tasks_", suffix=".csv.tmp"
            )
        except OSError as e:
            raise PersistenceError(self.path, "Could not save task file") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                write_csv(f, entities, history_ids)

            # Atomic rename
            os.replace(temp_path, self.path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise PersistenceError(self.path, "Could not save task file") from e

        logger.debug("task_file_saved", path=str(self.path), entities=len(entities))

    def _on_change(self) -> None:
        self.save()
