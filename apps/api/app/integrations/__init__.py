from app.integrations.errors import (
    RemoteStoreBadResponseError,
    RemoteStoreError,
    RemoteStoreTimeoutError,
    RemoteStoreUnavailableError,
)

__all__ = [
    "RemoteStoreError",
    "RemoteStoreTimeoutError",
    "RemoteStoreUnavailableError",
    "RemoteStoreBadResponseError",
]
