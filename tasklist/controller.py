"""Connection and initialization lifecycle for one checklist session.

    not-configured                      (no store: built-in data, terminal)
    error                               (unusable store URL: built-in data, terminal)
    connecting -> connected
               -> needs-init  -> initializing -> connecting ...
               -> error       -> connecting (test connection / script done)

Every failure leaves the view populated, with the built-in data at minimum.
"""
import logging
import threading
from typing import Dict, List, Optional, Tuple

from . import seed
from .database import StoreHandle
from .errors import (
    InvalidTransition,
    PersistFailed,
    QueryFailed,
    SchemaMissing,
    StoreNotConfigured,
    StoreUnavailable,
)
from .repository import TaskRepository
from .schema_check import SchemaChecker
from .schemas.task import (
    STATUS_LABELS,
    ChecklistView,
    ConnectionStatus,
    InitResult,
    ReconciliationEntry,
    StatusResponse,
    TaskRead,
)
from .view_model import ReconciliationLog, TaskViewModel, group_tasks

logger = logging.getLogger(__name__)


class ChecklistController:
    def __init__(
        self,
        store: Optional[StoreHandle],
        owner_id: Optional[int] = None,
        store_error: Optional[str] = None,
    ):
        self.store = store
        self.owner_id = owner_id
        # Why a configured store could not be used, if it could not.
        self.store_error = store_error
        self.status = ConnectionStatus.NOT_CONFIGURED
        self.error: Optional[str] = None
        self.missing_tables: List[str] = []
        self.view = TaskViewModel()
        self.reconciliation = ReconciliationLog()
        self.repository = TaskRepository(store) if store is not None else None
        self.schema = SchemaChecker(store) if store is not None else None

    def _no_store_error(self) -> str:
        if self.store_error:
            return StoreUnavailable(self.store_error).message
        return StoreNotConfigured().message

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    def start(self) -> ConnectionStatus:
        if self.store is None:
            self.status = ConnectionStatus.ERROR if self.store_error else ConnectionStatus.NOT_CONFIGURED
            self.error = self._no_store_error() if self.store_error else None
            self.missing_tables = []
            self.view.load_defaults()
            return self.status
        return self.refresh()

    def refresh(self) -> ConnectionStatus:
        """Check the schema, then load the checklist from the store."""
        if self.store is None:
            return self.start()

        self.status = ConnectionStatus.CONNECTING
        self.error = None
        self.missing_tables = []

        report = self.schema.check_tables()
        if not report.all_present:
            self.missing_tables = report.missing
            self.error = SchemaMissing(report.missing).message
            self.status = ConnectionStatus.NEEDS_INIT
            self.view.load_defaults()
            logger.warning("Store reachable but tables missing: %s", ", ".join(report.missing))
            return self.status

        try:
            sections = self.repository.list_sections()
            tasks = self.repository.list_tasks(self.owner_id)
        except QueryFailed as exc:
            logger.error("Loading checklist failed: %s", exc.message)
            self.error = exc.message
            self.status = ConnectionStatus.ERROR
            self.view.load_defaults()
            return self.status

        self.view.load(group_tasks(sections, tasks))
        self.reconciliation.discard_unattempted()
        self.status = ConnectionStatus.CONNECTED
        logger.info("Loaded %d sections and %d tasks for owner %s", len(sections), len(tasks), self.owner_id)
        return self.status

    def test_connection(self) -> bool:
        """Probe the store; on success reload, on failure only record the error."""
        if self.store is None:
            self.error = self._no_store_error()
            return False
        try:
            self.repository.probe()
        except QueryFailed as exc:
            logger.warning("Connection test failed: %s", exc.message)
            self.error = exc.message
            return False
        self.refresh()
        return True

    def initialize(self) -> InitResult:
        """Insert the shared checklist rows. Only valid while tables need init.

        Tables still missing means nothing is written. Existing sections mean
        the store was already initialized and nothing is written either.
        """
        if self.status != ConnectionStatus.NEEDS_INIT:
            raise InvalidTransition("initialize", self.status.value)

        self.status = ConnectionStatus.INITIALIZING
        try:
            report = self.schema.check_tables()
            if not report.all_present:
                self.missing_tables = report.missing
                self.error = SchemaMissing(report.missing).message
                self.status = ConnectionStatus.NEEDS_INIT
                return InitResult(success=False, message=self.error)

            if self.repository.has_sections():
                message = "Database already contains data; nothing to initialize."
            else:
                self.repository.seed_shared_checklist()
                message = "Initial data inserted."
        except QueryFailed as exc:
            logger.error("Initialization failed: %s", exc.message)
            self.error = f"Initialization failed: {exc.message}"
            self.status = ConnectionStatus.NEEDS_INIT
            return InitResult(success=False, message=self.error)

        if self.refresh() != ConnectionStatus.CONNECTED:
            return InitResult(success=False, message=f"{message} Reloading failed: {self.error}")
        return InitResult(success=True, message=message)

    def sql_script(self) -> str:
        return seed.sql_script()

    def confirm_script_ran(self) -> ConnectionStatus:
        return self.refresh()

    def toggle_task(self, section_id: str, task_id: str) -> Tuple[Optional[TaskRead], bool]:
        """Flip a task locally, whatever the connection state.

        Returns the updated task and whether it should be persisted; the
        caller runs ``persist_toggle`` in the background when it should.
        """
        task = self.view.toggle(section_id, task_id)
        if task is None:
            return None, False
        self.reconciliation.record(task.id, task.completed)
        return task.model_copy(), self.is_connected

    def persist_toggle(self, task_id: str, completed: bool) -> bool:
        """Write a toggle through. Failures are logged, never rolled back locally."""
        try:
            self.repository.set_completed(task_id, completed)
        except PersistFailed as exc:
            logger.error("Saving task %s failed: %s", task_id, exc.message)
            self.reconciliation.mark_attempt(task_id, completed, exc.message)
            return False
        self.reconciliation.mark_attempt(task_id, completed)
        return True

    def retry_failed(self) -> List[ReconciliationEntry]:
        """Re-send every toggle whose last write failed.

        A write that now succeeds also brings the local task back to the
        value the user asked for.
        """
        if not self.is_connected:
            raise InvalidTransition("retry persistence", self.status.value)
        for entry in self.reconciliation.failed():
            if self.persist_toggle(entry.task_id, entry.desired):
                self.view.set_completed(entry.task_id, entry.desired)
        return self.reconciliation.entries()

    def snapshot(self) -> StatusResponse:
        return StatusResponse(
            status=self.status,
            label=STATUS_LABELS[self.status],
            error=self.error,
            missing_tables=list(self.missing_tables),
            owner_id=self.owner_id,
        )

    def checklist(self) -> ChecklistView:
        return ChecklistView(
            connection=self.snapshot(),
            progress=self.view.progress(),
            sections=self.view.render(),
        )


class ControllerRegistry:
    """One controller per session owner (``None`` for anonymous sessions)."""

    def __init__(self, store: Optional[StoreHandle], store_error: Optional[str] = None):
        self.store = store
        self.store_error = store_error
        self._controllers: Dict[Optional[int], ChecklistController] = {}
        self._lock = threading.Lock()

    def get(self, owner_id: Optional[int] = None) -> ChecklistController:
        with self._lock:
            controller = self._controllers.get(owner_id)
            if controller is None:
                controller = ChecklistController(self.store, owner_id, self.store_error)
                controller.start()
                self._controllers[owner_id] = controller
            return controller

    def drop(self, owner_id: Optional[int]) -> None:
        with self._lock:
            self._controllers.pop(owner_id, None)
