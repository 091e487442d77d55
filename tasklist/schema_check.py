import logging
from typing import Dict, List, Type

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, select

from .database import StoreHandle
from .models import Task, TaskSection

logger = logging.getLogger(__name__)

REQUIRED_TABLES: Dict[str, Type[SQLModel]] = {
    "task_sections": TaskSection,
    "tasks": Task,
}


class SchemaReport(BaseModel):
    all_present: bool
    missing: List[str] = []
    details: Dict[str, str] = {}


class SchemaChecker:
    """Probes the required tables with a bounded read each.

    Any error on a table counts as "missing", whatever its real cause
    (permissions, connectivity, an actually absent table).
    """

    def __init__(self, store: StoreHandle):
        self.store = store

    def check_tables(self) -> SchemaReport:
        missing: List[str] = []
        details: Dict[str, str] = {}
        for name, model in REQUIRED_TABLES.items():
            try:
                with self.store.session() as session:
                    session.exec(select(model.id).limit(1)).first()
            except SQLAlchemyError as exc:
                logger.warning("Table %s not readable: %s", name, exc)
                missing.append(name)
                details[name] = str(exc)
        return SchemaReport(all_present=not missing, missing=missing, details=details)
