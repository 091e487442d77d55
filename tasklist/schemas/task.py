from pydantic import BaseModel, ConfigDict
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class ConnectionStatus(str, Enum):
    NOT_CONFIGURED = "not-configured"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    NEEDS_INIT = "needs-init"
    ERROR = "error"
    INITIALIZING = "initializing"


STATUS_LABELS: Dict[ConnectionStatus, str] = {
    ConnectionStatus.NOT_CONFIGURED: "Cloud store not configured",
    ConnectionStatus.CONNECTING: "Connecting...",
    ConnectionStatus.CONNECTED: "Connected to cloud store",
    ConnectionStatus.NEEDS_INIT: "Database needs initialization",
    ConnectionStatus.ERROR: "Connection failed, using local data",
    ConnectionStatus.INITIALIZING: "Inserting initial data...",
}


class TaskRead(BaseModel):
    """A single checklist item as held by the view."""
    id: str
    section_id: str
    title: str
    completed: bool = False
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class TaskSectionRead(BaseModel):
    id: str
    title: str
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class TaskSectionWithTasks(TaskSectionRead):
    """A section plus its ordered tasks, assembled client-side."""
    tasks: List[TaskRead] = []


class Progress(BaseModel):
    completed: int
    total: int
    percent: int
    all_completed: bool


class SectionView(TaskSectionWithTasks):
    progress: Progress


class StatusResponse(BaseModel):
    status: ConnectionStatus
    label: str
    error: Optional[str] = None
    missing_tables: List[str] = []
    owner_id: Optional[int] = None


class ChecklistView(BaseModel):
    """Everything the checklist page renders."""
    connection: StatusResponse
    progress: Progress
    sections: List[SectionView]


class ReconciliationEntry(BaseModel):
    """Last known persistence outcome for one locally toggled task."""
    task_id: str
    desired: bool
    attempted: bool = False
    last_error: Optional[str] = None
    updated_at: datetime


class ToggleResponse(BaseModel):
    task: TaskRead
    persisting: bool
    progress: Progress


class InitResult(BaseModel):
    success: bool
    message: str


class SetupActionResult(BaseModel):
    success: bool
    message: str
    connection: StatusResponse


class SQLScript(BaseModel):
    script: str


class SetupStep(BaseModel):
    number: int
    title: str
    instructions: List[str]
    link: Optional[str] = None
    copyable: List[str] = []


class SetupGuide(BaseModel):
    steps: List[SetupStep]
