import threading
from typing import Dict, Iterable, List, Optional

from . import seed
from .models import utc_now
from .schemas.task import (
    Progress,
    ReconciliationEntry,
    SectionView,
    TaskRead,
    TaskSectionRead,
    TaskSectionWithTasks,
)


def compute_progress(completed: int, total: int) -> Progress:
    """Progress with the percentage rounded half up; 0% for an empty scope."""
    percent = (completed * 200 + total) // (total * 2) if total else 0
    return Progress(
        completed=completed,
        total=total,
        percent=percent,
        all_completed=total > 0 and completed == total,
    )


def group_tasks(sections: Iterable[TaskSectionRead], tasks: Iterable[TaskRead]) -> List[TaskSectionWithTasks]:
    """Attach each task to its section, keeping ``order_index`` order on both levels."""
    tasks = list(tasks)
    grouped = []
    for section in sorted(sections, key=lambda s: s.order_index):
        section_tasks = sorted(
            (task for task in tasks if task.section_id == section.id),
            key=lambda t: t.order_index,
        )
        grouped.append(
            TaskSectionWithTasks(
                id=section.id,
                title=section.title,
                order_index=section.order_index,
                tasks=section_tasks,
            )
        )
    return grouped


class TaskViewModel:
    """In-memory section/task tree that the checklist page renders."""

    def __init__(self):
        self.sections: List[TaskSectionWithTasks] = []

    def load(self, sections: List[TaskSectionWithTasks]) -> None:
        self.sections = sections

    def load_defaults(self) -> None:
        self.sections = seed.default_sections()

    def _all_tasks(self) -> List[TaskRead]:
        return [task for section in self.sections for task in section.tasks]

    def progress(self) -> Progress:
        tasks = self._all_tasks()
        return compute_progress(sum(1 for t in tasks if t.completed), len(tasks))

    def section_progress(self, section_id: str) -> Optional[Progress]:
        section = self.find_section(section_id)
        if section is None:
            return None
        return compute_progress(sum(1 for t in section.tasks if t.completed), len(section.tasks))

    def find_section(self, section_id: str) -> Optional[TaskSectionWithTasks]:
        return next((s for s in self.sections if s.id == section_id), None)

    def toggle(self, section_id: str, task_id: str) -> Optional[TaskRead]:
        """Flip ``completed`` locally. Returns the task, or None if not found."""
        section = self.find_section(section_id)
        if section is None:
            return None
        for task in section.tasks:
            if task.id == task_id:
                task.completed = not task.completed
                return task
        return None

    def set_completed(self, task_id: str, completed: bool) -> Optional[TaskRead]:
        for task in self._all_tasks():
            if task.id == task_id:
                task.completed = completed
                return task
        return None

    def render(self) -> List[SectionView]:
        return [
            SectionView(
                id=section.id,
                title=section.title,
                order_index=section.order_index,
                tasks=[task.model_copy() for task in section.tasks],
                progress=self.section_progress(section.id),
            )
            for section in self.sections
        ]


class ReconciliationLog:
    """Latest desired value and persistence outcome per toggled task.

    Makes local/remote divergence observable: an entry with ``last_error``
    set means the store still holds the previous value.
    """

    def __init__(self):
        self._entries: Dict[str, ReconciliationEntry] = {}
        self._lock = threading.Lock()

    def record(self, task_id: str, desired: bool) -> ReconciliationEntry:
        with self._lock:
            entry = ReconciliationEntry(task_id=task_id, desired=desired, updated_at=utc_now())
            self._entries[task_id] = entry
            return entry

    def mark_attempt(self, task_id: str, desired: bool, error: Optional[str] = None) -> None:
        with self._lock:
            entry = self._entries.get(task_id)
            # A newer toggle superseded this attempt.
            if entry is None or entry.desired != desired:
                return
            entry.attempted = True
            entry.last_error = error
            entry.updated_at = utc_now()

    def entries(self) -> List[ReconciliationEntry]:
        with self._lock:
            return [entry.model_copy() for entry in self._entries.values()]

    def failed(self) -> List[ReconciliationEntry]:
        return [entry for entry in self.entries() if entry.last_error is not None]

    def discard_unattempted(self) -> None:
        """Forget local-only flips once the view is reloaded from the store."""
        with self._lock:
            for task_id in [k for k, e in self._entries.items() if not e.attempted]:
                del self._entries[task_id]
