import os

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import settings
from .db import Base, engine
from .logging import RequestIdMiddleware, setup_logging
from .models import models  # noqa: F401  registers tables on Base.metadata
from .routes.integrations import router as integrations_router
from .routes.maintenance import router as maintenance_router
from .routes.notifications import router as notifications_router
from .routes.storage import router as storage_router
from .routes.system import router as system_router
from .routes.users import router as users_router
from .routes.well_services import router as well_services_router
from .routes.well_tests import router as well_tests_router


logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Routers
    app.include_router(maintenance_router)
    app.include_router(well_tests_router)
    app.include_router(well_services_router)
    app.include_router(users_router)
    app.include_router(notifications_router)
    app.include_router(system_router)
    app.include_router(storage_router)
    app.include_router(integrations_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite and local store directories exist
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        store_dir = os.path.dirname(settings.local_store_path)
        if store_dir:
            os.makedirs(store_dir, exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("database_tables_verified", tables=sorted(Base.metadata.tables.keys()))
        logger.info("startup_complete", environment=settings.environment)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
