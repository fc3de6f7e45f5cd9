from dataclasses import dataclass


@dataclass
class RemoteStoreError(Exception):
    service: str
    code: str
    message: str
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.service}:{self.code}:{self.message}"


class RemoteStoreTimeoutError(RemoteStoreError):
    def __init__(self, service: str, message: str = "Remote store timeout") -> None:
        super().__init__(service=service, code="TIMEOUT", message=message, retryable=True)


class RemoteStoreUnavailableError(RemoteStoreError):
    def __init__(self, service: str, message: str = "Remote store unavailable") -> None:
        super().__init__(service=service, code="UNAVAILABLE", message=message, retryable=True)


class RemoteStoreBadResponseError(RemoteStoreError):
    def __init__(self, service: str, message: str = "Unexpected remote store response") -> None:
        super().__init__(service=service, code="BAD_RESPONSE", message=message, retryable=False)
