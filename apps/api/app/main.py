import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError

from app.config import allowed_origins, ensure_secure_runtime_settings, settings
from app.db.migration_check import assert_db_is_up_to_date, maybe_create_schema
from app.db.session import engine
from app.dependencies import get_storage, reset_providers
from app.observability import configure_logging, log_event, metrics_store, set_request_id
from app.routers.auth import router as auth_router
from app.routers.courier import router as courier_router
from app.routers.health import router as health_router
from app.routers.metrics import router as metrics_router
from app.routers.orders import router as orders_router
from app.routers.ratings import router as ratings_router
from app.routers.sync import router as sync_router
from app.routers.users import profile_router
from app.routers.users import router as users_router
from app.services.users_service import ensure_bootstrap_admin


def prepare_remote_schema() -> None:
    if settings.remote_backend != "sql":
        return
    try:
        if settings.require_migrations:
            assert_db_is_up_to_date(engine)
        else:
            maybe_create_schema(engine)
    except SQLAlchemyError as err:
        # the service keeps running on the local mirror
        metrics_store.increment("remote_store_errors_total")
        log_event(f"remote_store_unavailable:schema:{type(err).__name__}")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import app.models  # noqa: F401 (register all SQLAlchemy models)

    configure_logging()
    ensure_secure_runtime_settings()
    prepare_remote_schema()
    ensure_bootstrap_admin(get_storage())
    yield
    reset_providers()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Courier delivery tracking with short-lived customer rating codes",
    lifespan=lifespan,
)


def custom_openapi():
    """
    Adds HTTP Bearer (JWT) auth to the OpenAPI schema so Swagger UI shows an
    'Authorize' button and sends the Authorization: Bearer <token> header.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    security_schemes = components.setdefault("securitySchemes", {})
    security_schemes["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    # public rating endpoints ignore the header
    openapi_schema["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    log_event(
        f"http_request:{request.method}:{request.url.path}:{response.status_code}",
        order_id=request.path_params.get("order_id"),
    )
    return response


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(orders_router)
app.include_router(courier_router)
app.include_router(ratings_router)
app.include_router(users_router)
app.include_router(profile_router)
app.include_router(sync_router)
app.include_router(metrics_router)
