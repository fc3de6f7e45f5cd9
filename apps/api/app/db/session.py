from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings


def build_engine(database_url: str, timeout_s: float | None = None) -> Engine:
    is_sqlite = database_url.startswith("sqlite")
    is_sqlite_memory = is_sqlite and ":memory:" in database_url

    engine_kwargs: dict = {"pool_pre_ping": True}

    if is_sqlite:
        engine_kwargs["connect_args"] = {"check_same_thread": False}

        # Required so in-memory SQLite works across sessions in tests
        if is_sqlite_memory:
            engine_kwargs["poolclass"] = StaticPool
    elif timeout_s is not None:
        engine_kwargs["connect_args"] = {"connect_timeout": max(1, int(timeout_s))}

    return create_engine(database_url, **engine_kwargs)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine(settings.database_url, timeout_s=settings.remote_timeout_s)

SessionLocal = build_session_factory(engine)
