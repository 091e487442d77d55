import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, create_engine

from .config import Settings
from .errors import StoreUnavailable

# Import all models to ensure they are registered with SQLModel metadata
from .models import Task, TaskSection, User  # noqa: F401

logger = logging.getLogger(__name__)


def _create_engine(store_url: str, api_key: str) -> Engine:
    url = make_url(store_url)
    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

        return engine

    # The API key doubles as the database password when the URL has none.
    if not url.password:
        url = url.set(password=api_key)

    # Hosted Postgres: disable pooling for serverless and enable pre-ping
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


class StoreHandle:
    """Connection to the external store.

    Adapters receive a handle (or ``None`` when the store is not configured)
    instead of importing a shared engine.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(autoflush=False, bind=engine, class_=Session)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Get a database session (context manager style).

        Usage:
            with store.session() as session:
                # do something with session
        """
        session = self.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def connect_store(settings: Settings) -> Optional[StoreHandle]:
    """Return a store handle, or ``None`` if the store is not configured.

    Raises ``StoreUnavailable`` when the URL cannot be turned into an engine
    (malformed, unknown dialect, driver not installed).
    """
    if not settings.is_store_configured:
        logger.info("Store not configured; running on the built-in checklist")
        return None
    try:
        engine = _create_engine(settings.store_url, settings.store_api_key)
    except (SQLAlchemyError, ImportError, ValueError) as exc:
        logger.error("Cannot use store URL: %s", exc)
        raise StoreUnavailable(str(exc)) from exc
    logger.info("Store configured at %s", engine.url.render_as_string(hide_password=True))
    return StoreHandle(engine)


def create_tables(store: StoreHandle) -> None:
    """Create all database tables.

    Only used out of band (setup script, tests); the running app never
    creates tables itself.
    """
    SQLModel.metadata.create_all(bind=store.engine)
