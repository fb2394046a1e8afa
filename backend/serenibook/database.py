from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .config import settings


def _connect_args(url: str) -> dict:
    # check_same_thread=False is required for SQLite under FastAPI's threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.resolved_database_url,
    connect_args=_connect_args(settings.database_url),
)


def enable_sqlite_fk(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if engine.dialect.name == "sqlite":
    event.listen(engine, "connect", enable_sqlite_fk)

# SessionLocal is the main entry point for working with the DB
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def init_db() -> None:
    """Create all tables (development / tests; production uses alembic)."""
    from .models import Base

    Base.metadata.create_all(bind=engine)


# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
