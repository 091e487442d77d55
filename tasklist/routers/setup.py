from fastapi import APIRouter, Depends

from ..config import STORE_API_KEY_ENV, STORE_URL_ENV
from ..controller import ChecklistController
from ..errors import ChecklistError
from ..schemas.task import SetupActionResult, SetupGuide, SetupStep, SQLScript, StatusResponse
from .auth import to_http_exception
from .tasks import get_controller

router = APIRouter()

SETUP_GUIDE = SetupGuide(
    steps=[
        SetupStep(
            number=1,
            title="Create a hosted PostgreSQL database",
            instructions=[
                "Open your PostgreSQL provider's console and create a new database",
                "Pick an organization, a project name such as 'task-list-demo' and a region close to you",
                "Set a database password and keep it somewhere safe",
            ],
        ),
        SetupStep(
            number=2,
            title="Find the connection settings",
            instructions=[
                "Open the project settings",
                f"Copy the connection URL (postgresql://user@host:5432/dbname); it becomes {STORE_URL_ENV}",
                f"Copy the access key (the database password); it becomes {STORE_API_KEY_ENV}",
            ],
        ),
        SetupStep(
            number=3,
            title="Configure the environment",
            instructions=[
                "Add both variables to the .env file next to the project or to the server environment",
                "Restart the server",
            ],
            copyable=[f"{STORE_URL_ENV}=", f"{STORE_API_KEY_ENV}="],
        ),
        SetupStep(
            number=4,
            title="Initialize the database",
            instructions=[
                "Open the SQL editor of your database (or run psql against it)",
                "Copy the setup script from /api/setup/sql-script and run it",
                "Come back and confirm, or use 'insert initial data' once the tables exist",
            ],
        ),
    ]
)


def _result(success: bool, message: str, controller: ChecklistController) -> SetupActionResult:
    return SetupActionResult(success=success, message=message, connection=controller.snapshot())


@router.post("/test-connection", response_model=SetupActionResult)
def test_connection(controller: ChecklistController = Depends(get_controller)):
    """Probe the store and reload the checklist if it answers."""
    if controller.test_connection():
        return _result(True, "Connection successful", controller)
    return _result(False, controller.error or "Connection failed", controller)


@router.post("/initialize", response_model=SetupActionResult)
def initialize(controller: ChecklistController = Depends(get_controller)):
    """Insert the initial sections and tasks into existing tables."""
    try:
        result = controller.initialize()
    except ChecklistError as exc:
        raise to_http_exception(exc)
    return _result(result.success, result.message, controller)


@router.get("/sql-script", response_model=SQLScript)
def get_sql_script(controller: ChecklistController = Depends(get_controller)):
    """Schema and seed script to run by hand; the app cannot create tables."""
    return {"script": controller.sql_script()}


@router.post("/sql-script/done", response_model=StatusResponse)
def sql_script_done(controller: ChecklistController = Depends(get_controller)):
    """The user ran the script: check the schema and load again."""
    controller.confirm_script_ran()
    return controller.snapshot()


@router.get("/guide", response_model=SetupGuide)
def get_setup_guide():
    return SETUP_GUIDE
