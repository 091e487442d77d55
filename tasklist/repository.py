import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from . import seed
from .database import StoreHandle
from .errors import PersistFailed, QueryFailed
from .models import Task, TaskSection, utc_now
from .schemas.task import TaskRead, TaskSectionRead

logger = logging.getLogger(__name__)


class TaskRepository:
    """Reads and writes section and task rows."""

    def __init__(self, store: StoreHandle):
        self.store = store

    def list_sections(self) -> List[TaskSectionRead]:
        try:
            with self.store.session() as session:
                rows = session.exec(select(TaskSection).order_by(TaskSection.order_index)).all()
                return [TaskSectionRead.model_validate(row) for row in rows]
        except SQLAlchemyError as exc:
            raise QueryFailed(f"Failed to load sections: {exc}") from exc

    def list_tasks(self, owner_id: Optional[int] = None) -> List[TaskRead]:
        """Tasks in global ``order_index`` order.

        ``owner_id=None`` reads the shared checklist; otherwise that user's copy.
        Callers group by ``section_id`` themselves.
        """
        query = select(Task)
        if owner_id is None:
            query = query.where(Task.user_id.is_(None))
        else:
            query = query.where(Task.user_id == owner_id)
        query = query.order_by(Task.order_index, Task.id)
        try:
            with self.store.session() as session:
                return [TaskRead.model_validate(row) for row in session.exec(query).all()]
        except SQLAlchemyError as exc:
            raise QueryFailed(f"Failed to load tasks: {exc}") from exc

    def set_completed(self, task_id: str, completed: bool) -> None:
        try:
            with self.store.session() as session:
                task = session.get(Task, task_id)
                if task is None:
                    raise PersistFailed(f"Task not found: {task_id}")
                task.completed = completed
                task.updated_at = utc_now()
                session.add(task)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistFailed(f"Failed to save task {task_id}: {exc}") from exc

    def probe(self) -> None:
        """Cheap round trip used by "test connection"."""
        try:
            with self.store.session() as session:
                session.exec(select(TaskSection.id).limit(1)).first()
        except SQLAlchemyError as exc:
            raise QueryFailed(f"Database connection failed: {exc}") from exc

    def has_sections(self) -> bool:
        try:
            with self.store.session() as session:
                return session.exec(select(TaskSection.id).limit(1)).first() is not None
        except SQLAlchemyError as exc:
            raise QueryFailed(f"Failed to check existing data: {exc}") from exc

    def seed_shared_checklist(self) -> None:
        """Upsert the shared sections and tasks by id in one transaction.

        Existing rows get their title and ordering refreshed; ``completed``
        is left alone.
        """
        now = utc_now()
        try:
            with self.store.session() as session:
                for row in seed.section_rows():
                    existing = session.get(TaskSection, row.id)
                    if existing is None:
                        row.created_at = row.updated_at = now
                        session.add(row)
                    else:
                        existing.title = row.title
                        existing.order_index = row.order_index
                        existing.updated_at = now
                session.flush()

                for row in seed.task_rows():
                    existing = session.get(Task, row.id)
                    if existing is None:
                        row.created_at = row.updated_at = now
                        session.add(row)
                    else:
                        existing.section_id = row.section_id
                        existing.title = row.title
                        existing.order_index = row.order_index
                        existing.updated_at = now
                session.commit()
        except SQLAlchemyError as exc:
            raise QueryFailed(f"Failed to insert initial data: {exc}") from exc
        logger.info("Seeded %d sections and %d tasks", len(seed.SECTIONS), len(seed.TASKS))
