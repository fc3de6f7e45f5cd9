from typing import Literal

from pydantic import BaseModel

DependencyName = Literal["remote_store", "local_mirror"]


class HealthResponse(BaseModel):
    status: Literal["ok"]


class ReadinessDependency(BaseModel):
    name: DependencyName
    status: Literal["ok", "error"]


class ReadinessResponse(BaseModel):
    status: Literal["ok", "degraded"]
    remote_backend: str
    dependencies: list[ReadinessDependency]
