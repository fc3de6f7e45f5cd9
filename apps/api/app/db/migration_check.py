from __future__ import annotations

from pathlib import Path
from typing import Optional

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from app.config import is_production_mode, settings
from app.db.base import Base
from app.observability import log_event

ALEMBIC_VERSION_TABLE = "alembic_version"


def _alembic_config() -> Config:
    ini_path = Path(__file__).resolve().parents[2] / "alembic.ini"
    return Config(str(ini_path))


def get_alembic_head_revision() -> str:
    return ScriptDirectory.from_config(_alembic_config()).get_current_head()


def get_current_db_revision(engine: Engine) -> Optional[str]:
    if not inspect(engine).has_table(ALEMBIC_VERSION_TABLE):
        return None

    with engine.connect() as connection:
        return connection.execute(
            text(f"SELECT version_num FROM {ALEMBIC_VERSION_TABLE} LIMIT 1")
        ).scalar_one_or_none()


def assert_db_is_up_to_date(engine: Engine) -> None:
    """Refuse to serve against a remote schema that Alembic has not brought to head."""
    current = get_current_db_revision(engine)
    head = get_alembic_head_revision()
    if current != head:
        log_event(f"remote_schema_outdated:{current or 'none'}->{head}")
        raise RuntimeError(
            "Database schema not up to date "
            f"(current={current or 'none'}, head={head}). Run: alembic upgrade head"
        )


def maybe_create_schema(engine: Engine) -> None:
    if not settings.auto_create_schema:
        return
    if is_production_mode():
        raise RuntimeError("AUTO_CREATE_SCHEMA must be disabled in APP_MODE=production")

    Base.metadata.create_all(bind=engine)
    log_event("remote_schema_created")
