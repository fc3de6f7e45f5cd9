from pydantic import BaseModel, ConfigDict


class SyncResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    remote_available: bool
    users_pushed: int = 0
    users_skipped: int = 0
    orders_pushed: int = 0
    users_pulled: int = 0
    orders_pulled: int = 0
    failures: int = 0
