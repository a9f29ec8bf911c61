import logging
from typing import Iterator

from sqlalchemy import JSON, create_engine, inspect
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from applymate.config import settings

logger = logging.getLogger(__name__)

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {"connect_timeout": 10}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Request-scoped session; closed when the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _register_models() -> None:
    # Table classes must be imported before metadata can create them
    from applymate import models  # noqa: F401


def init_db() -> None:
    _register_models()
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.exception("Could not create tables on %s: %s", engine.url.get_backend_name(), e)
        raise
    logger.info("Schema ready (%d tables)", len(Base.metadata.tables))


def ensure_tables_exist() -> list[str]:
    """Create tables that are missing and return their names. Existing tables are left alone."""
    _register_models()
    try:
        before = set(inspect(engine).get_table_names())
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.exception("Table check failed: %s", e)
        raise
    created = sorted(set(Base.metadata.tables) - before)
    if created:
        logger.info("Created tables: %s", ", ".join(created))
    else:
        logger.info("No missing tables")
    return created
