from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "courier-rating-jwt-secret"
DEFAULT_BOOTSTRAP_ADMIN_PASSWORD = "admin123"
ALLOWED_REMOTE_BACKENDS = {"sql", "rest", "none"}
ALLOWED_REMOTE_WRITE_MODES = {"background", "inline"}
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    app_name: str = "Courier Rating Service"
    app_mode: str = "pilot"
    log_level: str = "INFO"

    database_url: str = Field(
        default="sqlite+pysqlite:///./courier_rating.db",
        validation_alias="COURIER_RATING_DATABASE_URL",
    )
    remote_backend: str = Field(default="sql", validation_alias="COURIER_RATING_REMOTE_BACKEND")
    remote_url: str = Field(default="", validation_alias="COURIER_RATING_REMOTE_URL")
    remote_api_key: str = Field(default="", validation_alias="COURIER_RATING_REMOTE_API_KEY")
    remote_timeout_s: float = 2.0
    remote_write_mode: str = Field(
        default="background",
        validation_alias="COURIER_RATING_REMOTE_WRITE_MODE",
    )
    local_mirror_path: str = Field(default="", validation_alias="COURIER_RATING_LOCAL_MIRROR_PATH")

    auto_create_schema: bool = True
    require_migrations: bool = False

    rating_code_ttl_days: int = 7

    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_ttl_s: int = 12 * 60 * 60

    bootstrap_admin_username: str = "admin"
    bootstrap_admin_password: str = DEFAULT_BOOTSTRAP_ADMIN_PASSWORD
    bootstrap_admin_name: str = "Admin User"

    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    testing: bool = Field(default=False, validation_alias="COURIER_RATING_TESTING")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("remote_backend")
    @classmethod
    def validate_remote_backend(cls, value: str) -> str:
        backend = value.lower().strip()
        if backend not in ALLOWED_REMOTE_BACKENDS:
            allowed = ", ".join(sorted(ALLOWED_REMOTE_BACKENDS))
            raise ValueError(f"COURIER_RATING_REMOTE_BACKEND must be one of: {allowed}")
        return backend

    @field_validator("remote_write_mode")
    @classmethod
    def validate_remote_write_mode(cls, value: str) -> str:
        mode = value.lower().strip()
        if mode not in ALLOWED_REMOTE_WRITE_MODES:
            allowed = ", ".join(sorted(ALLOWED_REMOTE_WRITE_MODES))
            raise ValueError(f"COURIER_RATING_REMOTE_WRITE_MODE must be one of: {allowed}")
        return mode


settings = Settings()


def is_production_mode() -> bool:
    return settings.app_mode == "production"


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if settings.testing:
        return
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError(
            "JWT_SECRET must be set to a non-default value when COURIER_RATING_TESTING is false"
        )
    if len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "JWT_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when COURIER_RATING_TESTING is false"
        )
    if settings.bootstrap_admin_password == DEFAULT_BOOTSTRAP_ADMIN_PASSWORD:
        raise RuntimeError(
            "BOOTSTRAP_ADMIN_PASSWORD must be changed when COURIER_RATING_TESTING is false"
        )
    if settings.remote_backend == "sql" and _is_sqlite_url(settings.database_url):
        raise RuntimeError(
            "COURIER_RATING_DATABASE_URL must use postgres when COURIER_RATING_TESTING is false"
        )
    if settings.remote_backend == "rest" and not settings.remote_url.strip():
        raise RuntimeError("COURIER_RATING_REMOTE_URL is required for the rest remote backend")


def _is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
