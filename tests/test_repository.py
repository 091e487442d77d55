from datetime import timezone

import pytest
from sqlalchemy import func
from sqlmodel import select

from tasklist.config import Settings
from tasklist.database import connect_store
from tasklist.errors import PersistFailed, QueryFailed, StoreUnavailable
from tasklist.models import Task, TaskSection, User, utc_now
from tasklist.repository import TaskRepository
from tasklist.schema_check import SchemaChecker
from tasklist.schemas.task import TaskRead, TaskSectionRead


def _counts(store):
    with store.session() as session:
        sections = session.exec(select(func.count()).select_from(TaskSection)).one()
        tasks = session.exec(select(func.count()).select_from(Task)).one()
    return sections, tasks


def test_schema_checker_reports_missing_tables(empty_store) -> None:
    report = SchemaChecker(empty_store).check_tables()

    assert not report.all_present
    assert report.missing == ["task_sections", "tasks"]
    assert set(report.details) == {"task_sections", "tasks"}


def test_schema_checker_with_tables(store) -> None:
    report = SchemaChecker(store).check_tables()
    assert report.all_present
    assert report.missing == []


def test_lists_are_ordered(seeded_store) -> None:
    repo = TaskRepository(seeded_store)

    assert [s.id for s in repo.list_sections()] == ["phase1", "phase2", "phase3"]
    order = [t.order_index for t in repo.list_tasks()]
    assert order == sorted(order)
    assert len(order) == 9


def test_list_tasks_is_scoped_by_owner(seeded_store) -> None:
    repo = TaskRepository(seeded_store)
    with seeded_store.session() as session:
        session.add(User(id=42, username="alice", password_hash="x"))
        session.flush()
        session.add(Task(id="mine", section_id="phase1", user_id=42, title="x", order_index=1))
        session.commit()

    assert "mine" not in {t.id for t in repo.list_tasks()}
    assert [t.id for t in repo.list_tasks(owner_id=42)] == ["mine"]
    assert repo.list_tasks(owner_id=7) == []


def test_set_completed(seeded_store) -> None:
    repo = TaskRepository(seeded_store)
    repo.set_completed("task3", True)

    task = next(t for t in repo.list_tasks() if t.id == "task3")
    assert task.completed


def test_set_completed_unknown_task(seeded_store) -> None:
    with pytest.raises(PersistFailed, match="not found"):
        TaskRepository(seeded_store).set_completed("nope", True)


def test_reads_fail_without_tables(empty_store) -> None:
    repo = TaskRepository(empty_store)
    with pytest.raises(QueryFailed):
        repo.list_sections()
    with pytest.raises(QueryFailed):
        repo.probe()


def test_seeding_is_an_idempotent_upsert(store) -> None:
    repo = TaskRepository(store)
    assert not repo.has_sections()

    repo.seed_shared_checklist()
    repo.set_completed("task1", True)
    repo.seed_shared_checklist()

    assert repo.has_sections()
    assert _counts(store) == (3, 9)
    assert next(t for t in repo.list_tasks() if t.id == "task1").completed


def test_timestamps_survive_a_round_trip(seeded_store) -> None:
    before = utc_now()
    TaskRepository(seeded_store).set_completed("task2", True)

    with seeded_store.session() as session:
        task = session.get(Task, "task2")

    assert task.completed
    # SQLite hands back naive values holding UTC wall time.
    updated_at = task.updated_at if task.updated_at.tzinfo else task.updated_at.replace(tzinfo=timezone.utc)
    assert updated_at >= before
    assert task.created_at <= task.updated_at


def test_read_models_use_config_dict() -> None:
    for model in (TaskRead, TaskSectionRead):
        assert model.model_config["from_attributes"] is True
        assert "Config" not in vars(model)


def test_connect_store_rejects_unusable_url() -> None:
    settings = Settings(store_url="https://abc.example.com", store_api_key="k")

    with pytest.raises(StoreUnavailable, match="Database connection failed"):
        connect_store(settings)
