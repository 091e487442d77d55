"""Built-in checklist content.

The same three sections and nine tasks serve as the in-memory fallback
dataset, the rows written by "initialize", the per-user copy seeded at
registration and the seed part of the manual SQL script.
"""
from typing import List, Optional, Tuple

from .models import Task, TaskSection
from .schemas.task import TaskRead, TaskSectionWithTasks

SECTIONS: List[Tuple[str, str, int]] = [
    ("phase1", "Phase 1: Preparation and planning", 1),
    ("phase2", "Phase 2: Data collection", 2),
    ("phase3", "Phase 3: Analysis and writing", 3),
]

# (task number, section id, title, order within section)
TASKS: List[Tuple[int, str, str, int]] = [
    (1, "phase1", "Spend 10 minutes listing every open question about the report (aim for brainstorming, not perfection)", 1),
    (2, "phase1", "Draft a simple report outline and pick the key dimensions to analyse", 2),
    (3, "phase1", "Book 15 minutes with your manager to confirm scope and expectations (asking questions is professional, not a weakness)", 3),
    (4, "phase2", "Give each product 30 minutes to collect the basics (pomodoro: a 5 minute break every 30 minutes)", 1),
    (5, "phase2", "Ask the product team for data or test results (teamwork is part of the job)", 2),
    (6, "phase3", "Build a comparison table highlighting each product's strengths and weaknesses", 1),
    (7, "phase3", "Write a first draft (aim for something you can iterate on, not perfection)", 2),
    (8, "phase3", "Ask a trusted colleague to review it and suggest improvements", 3),
    (9, "phase3", "Revise and polish the report based on the feedback", 4),
]


def task_id(number: int, user_id: Optional[int] = None) -> str:
    if user_id is None:
        return f"task{number}"
    return f"task{number}_user{user_id}"


def default_sections() -> List[TaskSectionWithTasks]:
    """Fresh copy of the built-in dataset, nothing completed."""
    return [
        TaskSectionWithTasks(
            id=section_id,
            title=title,
            order_index=order_index,
            tasks=[
                TaskRead(
                    id=task_id(number),
                    section_id=section_id,
                    title=task_title,
                    completed=False,
                    order_index=task_order,
                )
                for number, task_section, task_title, task_order in TASKS
                if task_section == section_id
            ],
        )
        for section_id, title, order_index in SECTIONS
    ]


def section_rows() -> List[TaskSection]:
    return [
        TaskSection(id=section_id, title=title, order_index=order_index)
        for section_id, title, order_index in SECTIONS
    ]


def task_rows(user_id: Optional[int] = None) -> List[Task]:
    """Task rows for the shared checklist, or one user's copy of it."""
    return [
        Task(
            id=task_id(number, user_id),
            section_id=section_id,
            user_id=user_id,
            title=title,
            completed=False,
            order_index=order_index,
        )
        for number, section_id, title, order_index in TASKS
    ]


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def sql_script() -> str:
    """Schema and seed script for running by hand in the store's SQL editor."""
    section_values = ",\n".join(
        f"  ({_quote(section_id)}, {_quote(title)}, {order_index})"
        for section_id, title, order_index in SECTIONS
    )
    task_values = ",\n".join(
        f"  ({_quote(task_id(number))}, {_quote(section_id)}, {_quote(title)}, false, {order_index})"
        for number, section_id, title, order_index in TASKS
    )
    return f"""-- Task list database setup script
-- Run this in your store's SQL editor

CREATE TABLE IF NOT EXISTS users (
  id SERIAL PRIMARY KEY,
  username TEXT NOT NULL UNIQUE,
  password_hash TEXT NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS task_sections (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  order_index INTEGER NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS tasks (
  id TEXT PRIMARY KEY,
  section_id TEXT NOT NULL REFERENCES task_sections(id) ON DELETE CASCADE,
  user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
  title TEXT NOT NULL,
  completed BOOLEAN DEFAULT FALSE,
  order_index INTEGER NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_tasks_section_id ON tasks(section_id);
CREATE INDEX IF NOT EXISTS idx_tasks_completed ON tasks(completed);
CREATE INDEX IF NOT EXISTS idx_task_sections_order ON task_sections(order_index);
CREATE INDEX IF NOT EXISTS idx_tasks_order ON tasks(section_id, order_index);
CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id);

-- Demo only: row level security off
ALTER TABLE task_sections DISABLE ROW LEVEL SECURITY;
ALTER TABLE tasks DISABLE ROW LEVEL SECURITY;

INSERT INTO task_sections (id, title, order_index) VALUES
{section_values}
ON CONFLICT (id) DO UPDATE SET
  title = EXCLUDED.title,
  order_index = EXCLUDED.order_index,
  updated_at = NOW();

INSERT INTO tasks (id, section_id, title, completed, order_index) VALUES
{task_values}
ON CONFLICT (id) DO UPDATE SET
  section_id = EXCLUDED.section_id,
  title = EXCLUDED.title,
  order_index = EXCLUDED.order_index,
  updated_at = NOW();

SELECT 'task_sections' AS table_name, count(*) AS record_count FROM task_sections
UNION ALL
SELECT 'tasks' AS table_name, count(*) AS record_count FROM tasks;"""
