# workflow_catalog/database.py
import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import settings

# Base class for models
Base = declarative_base()


def create_db_engine(url: str, **kwargs) -> Engine:
    """
    Build an engine for the catalog database.

    SQLite connections get foreign keys enforced (needed for the queue ->
    session cascade) and WAL journaling for file-backed databases.
    """
    is_sqlite = url.startswith("sqlite")
    file_backed = False
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        db_path = make_url(url).database
        file_backed = bool(db_path) and db_path != ":memory:"
        if file_backed:
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

    engine = create_engine(url, echo=False, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if file_backed:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


# Default engine and session factory, bound to the configured database
engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = create_session_factory(engine)


# Dependency for FastAPI routes
def get_db():
    """
    Database session dependency
    Usage in routes:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            # use db here
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """
    Initialize database by creating all tables
    Called from main.py on startup and by the test fixtures
    """
    from .models import import_session, queue_item, workflow  # noqa: F401 - register models
    Base.metadata.create_all(bind=bind or engine)
