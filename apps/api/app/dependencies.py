import random
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import lru_cache

from app.config import settings
from app.db.session import SessionLocal
from app.integrations.rest_table_client import RestTableClient
from app.models.domain import now_utc
from app.services.local_mirror import LocalMirror
from app.services.rating_codes import RatingCodeRegistry
from app.services.remote_store import NullTableStore, RemoteTableStore, SqlTableStore
from app.services.state_machine import RATABLE_STATUSES
from app.services.storage import RemoteWriter, TwoTierStore


def build_remote_store() -> RemoteTableStore:
    if settings.remote_backend == "rest":
        return RestTableClient(
            settings.remote_url,
            api_key=settings.remote_api_key,
            timeout_s=settings.remote_timeout_s,
        )
    if settings.remote_backend == "sql":
        return SqlTableStore(SessionLocal)
    return NullTableStore()


@lru_cache
def get_storage() -> TwoTierStore:
    return TwoTierStore(
        local=LocalMirror(settings.local_mirror_path or None),
        remote=build_remote_store(),
        writer=RemoteWriter(mode=settings.remote_write_mode),
    )


def build_rating_code_registry(
    storage: TwoTierStore,
    clock: Callable[[], datetime] = now_utc,
    rng: random.Random | None = None,
) -> RatingCodeRegistry:
    return RatingCodeRegistry(
        code_lookup=lambda code: bool(storage.find_orders_by_code(code, RATABLE_STATUSES)),
        ttl=timedelta(days=settings.rating_code_ttl_days),
        clock=clock,
        rng=rng,
    )


@lru_cache
def get_rating_code_registry() -> RatingCodeRegistry:
    return build_rating_code_registry(get_storage())


def reset_providers() -> None:
    if get_storage.cache_info().currsize:
        get_storage().close()
    get_storage.cache_clear()
    get_rating_code_registry.cache_clear()
