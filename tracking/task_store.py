"""
Local task store for Smart Study Planner.

Keeps the user's study tasks in a single named JSON store file. Every
mutation is committed to disk before returning; if the commit fails the
in-memory change is rolled back and PersistenceError is raised so the
caller decides whether to retry or tell the user.
"""

import json
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

import config
from core.errors import DecodeError, PersistenceError, ValidationError
from core.models import StudyTask
from core.storage import write_json_atomic

logger = logging.getLogger(__name__)

_STORE_VERSION = 1


class TaskStore:
    """Persistent, searchable collection of StudyTask objects (thread-safe)."""

    def __init__(self, store_file: Optional[Path] = None) -> None:
        self.store_file: Path = store_file or config.TASK_STORE_FILE
        self._lock = threading.Lock()
        self._tasks: Dict[str, StudyTask] = self._load_tasks()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_tasks(self) -> Dict[str, StudyTask]:
        if not self.store_file.exists():
            return {}
        try:
            with open(self.store_file, 'r') as f:
                data = json.load(f)
            tasks = {}
            for item in data.get("tasks", []):
                task = StudyTask.from_dict(item)
                tasks[task.id] = task
            logger.debug(f"Loaded {len(tasks)} tasks from {self.store_file}")
            return tasks
        except (json.JSONDecodeError, AttributeError, DecodeError, IOError, OSError) as e:
            logger.warning(f"Failed to load task store: {e}. Starting fresh.")
            return {}

    def _commit(self) -> None:
        """
        Write all tasks atomically.

        Raises:
            PersistenceError: If the store file could not be written.
        """
        payload = {
            "version": _STORE_VERSION,
            "tasks": [task.to_dict() for task in self._tasks.values()],
        }
        try:
            write_json_atomic(self.store_file, payload, prefix='study_tasks_')
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save task store: {e}")
            raise PersistenceError(f"Could not save tasks: {e}")

    def _mutate(self, apply: Callable[[], None], undo: Callable[[], None]) -> None:
        """Apply a change and commit it, undoing the change if the commit fails."""
        apply()
        try:
            self._commit()
        except PersistenceError:
            undo()
            raise

    def _stored(self, task: StudyTask) -> StudyTask:
        stored = self._tasks.get(task.id)
        if stored is None:
            raise ValidationError(f"Task {task.id} no longer exists")
        return stored

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_task(self, title: str, subject: str, deadline: datetime, priority: int,
                    notes: Optional[str] = None, user_id: str = "") -> StudyTask:
        """
        Create and persist a pending task.

        Args:
            title: Task title (non-blank).
            subject: Subject the task belongs to.
            deadline: When the task is due.
            priority: 1 (low) to 3 (high).
            notes: Optional free text.
            user_id: Owning user id.

        Raises:
            ValidationError: Blank title or priority out of range.
            PersistenceError: The store could not be written.
        """
        if not title.strip():
            raise ValidationError("Please enter a task title")
        if isinstance(priority, bool) or priority not in (
            config.PRIORITY_LOW, config.PRIORITY_MEDIUM, config.PRIORITY_HIGH
        ):
            raise ValidationError("Priority must be 1 (low), 2 (medium) or 3 (high)")

        task = StudyTask(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title.strip(),
            subject=subject.strip(),
            deadline=deadline,
            priority=priority,
            status=config.STATUS_PENDING,
            notes=notes,
            created_at=datetime.now(),
        )
        with self._lock:
            self._mutate(
                lambda: self._tasks.__setitem__(task.id, task),
                lambda: self._tasks.pop(task.id, None),
            )
        logger.info(f"Created task '{task.title}' due {task.deadline.isoformat()}")
        return task

    def fetch_tasks(self, completed: Optional[bool] = None) -> List[StudyTask]:
        """
        Return tasks ordered by ascending deadline.

        Args:
            completed: True/False to filter by completion, None for all.
        """
        with self._lock:
            tasks = list(self._tasks.values())
        if completed is not None:
            tasks = [t for t in tasks if t.is_completed == completed]
        return sorted(tasks, key=lambda t: t.deadline)

    def search_tasks(self, query: str) -> List[StudyTask]:
        """
        Case-insensitive substring search over title and subject.

        An empty query returns the same list as fetch_tasks().
        """
        needle = query.casefold()
        if not needle:
            return self.fetch_tasks()
        return [
            t for t in self.fetch_tasks()
            if needle in t.title.casefold() or needle in t.subject.casefold()
        ]

    def toggle_task_completion(self, task: StudyTask) -> StudyTask:
        """Flip a task between pending and completed, in place."""
        with self._lock:
            stored = self._stored(task)
            previous = stored.status
            flipped = (config.STATUS_PENDING if stored.is_completed
                       else config.STATUS_COMPLETED)

            def _set(status: str) -> None:
                stored.status = status
                task.status = status

            self._mutate(lambda: _set(flipped), lambda: _set(previous))
        return stored

    def update_task(self, task: StudyTask) -> StudyTask:
        """Persist edited fields of an existing task."""
        with self._lock:
            previous = replace(self._stored(task))
            updated = replace(task)
            self._mutate(
                lambda: self._tasks.__setitem__(task.id, updated),
                lambda: self._tasks.__setitem__(task.id, previous),
            )
        return updated

    def delete_task(self, task: StudyTask) -> None:
        """Remove a task permanently."""
        with self._lock:
            stored = self._stored(task)
            self._mutate(
                lambda: self._tasks.pop(task.id, None),
                lambda: self._tasks.__setitem__(task.id, stored),
            )
        logger.info(f"Deleted task '{stored.title}'")
