from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..controller import ChecklistController, ControllerRegistry
from ..errors import ChecklistError
from ..schemas.task import ChecklistView, ReconciliationEntry, StatusResponse, ToggleResponse
from ..schemas.user import UserRead
from .auth import get_current_user, get_registry, to_http_exception

router = APIRouter()


def get_controller(
    current_user: Optional[UserRead] = Depends(get_current_user),
    registry: ControllerRegistry = Depends(get_registry),
) -> ChecklistController:
    """The checklist session of the current user (or the shared one)."""
    return registry.get(current_user.id if current_user else None)


@router.get("/status", response_model=StatusResponse)
def get_status(controller: ChecklistController = Depends(get_controller)):
    return controller.snapshot()


@router.get("/tasks", response_model=ChecklistView)
def get_checklist(controller: ChecklistController = Depends(get_controller)):
    """Sections with their tasks, overall and per-section progress."""
    return controller.checklist()


@router.post("/tasks/{section_id}/{task_id}/toggle", response_model=ToggleResponse)
def toggle_task(
    section_id: str,
    task_id: str,
    background_tasks: BackgroundTasks,
    controller: ChecklistController = Depends(get_controller),
):
    """Flip a task's completion.

    The response reflects the local change immediately; when connected the
    write to the store happens after the response is sent.
    """
    task, persist = controller.toggle_task(section_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")

    if persist:
        background_tasks.add_task(controller.persist_toggle, task.id, task.completed)

    return {"task": task, "persisting": persist, "progress": controller.view.progress()}


@router.get("/tasks/reconciliation", response_model=List[ReconciliationEntry])
def get_reconciliation(controller: ChecklistController = Depends(get_controller)):
    """Toggles and the outcome of writing them to the store."""
    return controller.reconciliation.entries()


@router.post("/tasks/reconciliation/retry", response_model=List[ReconciliationEntry])
def retry_reconciliation(controller: ChecklistController = Depends(get_controller)):
    try:
        return controller.retry_failed()
    except ChecklistError as exc:
        raise to_http_exception(exc)
