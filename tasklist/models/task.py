from sqlalchemy import DateTime, Index
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import Optional, List


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskSection(SQLModel, table=True):
    """A named phase grouping an ordered list of tasks."""
    __tablename__ = "task_sections"
    __table_args__ = (Index("idx_task_sections_order", "order_index"),)

    id: str = Field(primary_key=True)
    title: str
    order_index: int
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    tasks: List["Task"] = Relationship(back_populates="section", cascade_delete=True)


class Task(SQLModel, table=True):
    """Checklist item.

    Rows with no ``user_id`` belong to the shared checklist; the others are
    the private copy seeded for one user at registration.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_section_id", "section_id"),
        Index("idx_tasks_completed", "completed"),
        Index("idx_tasks_order", "section_id", "order_index"),
        Index("idx_tasks_user_id", "user_id"),
    )

    id: str = Field(primary_key=True)
    section_id: str = Field(foreign_key="task_sections.id", ondelete="CASCADE")
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="CASCADE")
    title: str
    completed: bool = Field(default=False)
    order_index: int
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    section: Optional[TaskSection] = Relationship(back_populates="tasks")
    user: Optional["User"] = Relationship(back_populates="tasks")
