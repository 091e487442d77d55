import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .controller import ControllerRegistry
from .credentials import CredentialStore
from .database import connect_store
from .errors import StoreUnavailable
from .logging_setup import setup_logging
from .routers import auth, setup, tasks

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API around one store handle (or none)."""
    settings = settings or Settings.from_env()
    try:
        store = connect_store(settings)
        store_error = None
    except StoreUnavailable as exc:
        # Serve the built-in checklist with the failure shown as the status.
        store, store_error = None, exc.detail

    app = FastAPI(
        title="Task Checklist API",
        description="Task checklist with accounts, backed by a hosted relational store",
        version="1.0.0",
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.credentials = CredentialStore(store, rounds=settings.password_hash_rounds, store_error=store_error)
    app.state.controllers = ControllerRegistry(store, store_error=store_error)

    # Include routers
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(tasks.router, prefix="/api", tags=["tasks"])
    app.include_router(setup.router, prefix="/api/setup", tags=["setup"])

    # Load the shared checklist on startup
    @app.on_event("startup")
    def on_startup():
        controller = app.state.controllers.get(None)
        logger.info("Checklist status at startup: %s", controller.status.value)

    @app.on_event("shutdown")
    def on_shutdown():
        if store is not None:
            store.dispose()

    @app.get("/")
    def read_root():
        return {"message": "Task Checklist API"}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    return app


settings = Settings.from_env()
setup_logging(settings.log_level)
app = create_app(settings)
