import logging
from typing import Iterable, Mapping

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .models import Base, User

logger = logging.getLogger(__name__)


def make_engine(settings: Settings) -> Engine:
    url = settings.sqlalchemy_url
    if url.startswith("sqlite"):
        # Request handlers run in a threadpool; share the file across threads.
        return create_engine(url, connect_args={"check_same_thread": False}, future=True)
    return create_engine(url, pool_pre_ping=True, future=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


def init_db(engine: Engine, schema: str = "") -> None:
    """
    Ensure the schema exists, then create tables (idempotent).
    Called once at application startup.
    """
    if schema and engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            # Quote the schema to avoid edge cases with names
            conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
    Base.metadata.create_all(bind=engine)
    logger.info("database tables ready on %s", engine.dialect.name)


def seed_users(engine: Engine, users: Iterable[Mapping[str, object]]) -> None:
    """Insert user rows; users have no HTTP endpoint."""
    session = make_session_factory(engine)()
    try:
        for u in users:
            session.merge(User(**u))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
