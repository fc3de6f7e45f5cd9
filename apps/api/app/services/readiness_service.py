from collections.abc import Callable
from typing import Literal

from app.integrations.errors import RemoteStoreError
from app.observability import log_event, metrics_store
from app.services.local_mirror import LocalMirror
from app.services.storage import TwoTierStore

ReadinessStatus = Literal["ok", "error"]


def safe_dependency_status(
    dependency_name: str,
    checker: Callable[[], ReadinessStatus],
) -> ReadinessStatus:
    metrics_store.increment("readiness_dependency_checked_total")
    try:
        status = checker()
    except Exception as exc:  # readiness must fail closed to degraded
        metrics_store.increment("readiness_dependency_error_total")
        log_event(f"readiness_dependency_check_failed:{dependency_name}:{type(exc).__name__}")
        return "error"

    if status == "ok":
        return "ok"

    metrics_store.increment("readiness_dependency_error_total")
    if status != "error":
        log_event(f"readiness_dependency_status_invalid:{dependency_name}:{status}")
    return "error"


def remote_store_dependency_status(storage: TwoTierStore) -> ReadinessStatus:
    try:
        storage.check_remote()
    except RemoteStoreError:
        return "error"
    return "ok"


def local_mirror_dependency_status(mirror: LocalMirror) -> ReadinessStatus:
    try:
        mirror.check()
    except OSError:
        return "error"
    return "ok"
