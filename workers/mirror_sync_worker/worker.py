"""Periodic push of the API's local mirror to the remote store."""

from __future__ import annotations

import json
import os
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Callable

ENV_PREFIX = "COURIER_RATING_SYNC_WORKER_"
SYNC_COUNT_FIELDS = ("users_pushed", "users_skipped", "orders_pushed", "failures")


@dataclass(frozen=True)
class MirrorSyncWorkerSettings:
    api_base_url: str
    interval_s: int
    timeout_s: float
    auth_token: str | None
    max_retries: int
    retry_backoff_s: float


@dataclass(frozen=True)
class SyncRunResult:
    ok: bool
    remote_available: bool = False
    users_pushed: int = 0
    users_skipped: int = 0
    orders_pushed: int = 0
    failures: int = 0
    status_code: int | None = None
    error: str | None = None
    attempts: int = 1


def load_settings(env: dict[str, str] | None = None) -> MirrorSyncWorkerSettings:
    source = env if env is not None else os.environ
    api_base_url = source.get(f"{ENV_PREFIX}API_BASE_URL", "http://localhost:8000").strip()
    interval_s = int(source.get(f"{ENV_PREFIX}INTERVAL_S", "60"))
    timeout_s = float(source.get(f"{ENV_PREFIX}TIMEOUT_S", "10"))
    auth_token = source.get(f"{ENV_PREFIX}AUTH_TOKEN")
    max_retries = int(source.get(f"{ENV_PREFIX}MAX_RETRIES", "2"))
    retry_backoff_s = float(source.get(f"{ENV_PREFIX}RETRY_BACKOFF_S", "1.0"))

    if interval_s < 1:
        raise ValueError(f"{ENV_PREFIX}INTERVAL_S must be >= 1")
    if timeout_s <= 0:
        raise ValueError(f"{ENV_PREFIX}TIMEOUT_S must be > 0")
    if max_retries < 0:
        raise ValueError(f"{ENV_PREFIX}MAX_RETRIES must be >= 0")
    if retry_backoff_s < 0:
        raise ValueError(f"{ENV_PREFIX}RETRY_BACKOFF_S must be >= 0")

    return MirrorSyncWorkerSettings(
        api_base_url=api_base_url.rstrip("/"),
        interval_s=interval_s,
        timeout_s=timeout_s,
        auth_token=auth_token or None,
        max_retries=max_retries,
        retry_backoff_s=retry_backoff_s,
    )


def _decode_sync_response(raw: str, status_code: int | None) -> SyncRunResult:
    try:
        body = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return SyncRunResult(ok=False, status_code=status_code, error="Invalid JSON in sync response")
    if not isinstance(body, dict):
        return SyncRunResult(ok=False, status_code=status_code, error="Invalid sync response")

    counts: dict[str, int] = {}
    for field in SYNC_COUNT_FIELDS:
        try:
            counts[field] = int(body.get(field, 0))
        except (TypeError, ValueError):
            return SyncRunResult(
                ok=False,
                status_code=status_code,
                error=f"Invalid {field} value in sync response",
            )

    remote_available = bool(body.get("remote_available", False))
    return SyncRunResult(
        ok=remote_available,
        remote_available=remote_available,
        status_code=status_code,
        error=None if remote_available else "Remote store unavailable",
        **counts,
    )


def run_sync_once(
    settings: MirrorSyncWorkerSettings,
    opener: Callable[..., object] = urllib.request.urlopen,
) -> SyncRunResult:
    request = urllib.request.Request(
        url=f"{settings.api_base_url}/api/v1/sync/push",
        data=b"{}",
        method="POST",
        headers={
            "Content-Type": "application/json",
            **(
                {"Authorization": f"Bearer {settings.auth_token}"}
                if settings.auth_token
                else {}
            ),
        },
    )

    try:
        with opener(request, timeout=settings.timeout_s) as response:
            raw = response.read().decode("utf-8")
            return _decode_sync_response(raw, getattr(response, "status", 200))
    except urllib.error.HTTPError as exc:
        return SyncRunResult(ok=False, status_code=exc.code, error=f"HTTPError: {exc.code}")
    except urllib.error.URLError as exc:
        return SyncRunResult(ok=False, error=f"URLError: {exc.reason}")


def _is_retryable(result: SyncRunResult) -> bool:
    if result.ok:
        return False
    if result.status_code is None:
        return True
    if result.status_code in {408, 429}:
        return True
    # a 200 with remote_available=false is worth another attempt
    return result.status_code >= 500 or result.status_code == 200


def run_sync_with_retries(
    settings: MirrorSyncWorkerSettings,
    opener: Callable[..., object] = urllib.request.urlopen,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncRunResult:
    for attempts in range(1, settings.max_retries + 2):
        result = run_sync_once(settings, opener=opener)
        if result.ok or not _is_retryable(result) or attempts > settings.max_retries:
            return SyncRunResult(
                ok=result.ok,
                remote_available=result.remote_available,
                users_pushed=result.users_pushed,
                users_skipped=result.users_skipped,
                orders_pushed=result.orders_pushed,
                failures=result.failures,
                status_code=result.status_code,
                error=result.error,
                attempts=attempts,
            )

        sleep(settings.retry_backoff_s * (2 ** (attempts - 1)))

    raise RuntimeError("sync retry loop exhausted unexpectedly")


def run_forever(settings: MirrorSyncWorkerSettings) -> None:
    while True:
        run_sync_with_retries(settings)
        time.sleep(settings.interval_s)


if __name__ == "__main__":
    run_forever(load_settings())
