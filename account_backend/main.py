from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from account_backend.auth.deps import warn_if_unverified
from account_backend.core.logging import configure_logging
from account_backend.core.settings import S
from account_backend.error_handlers import register_error_handlers
from account_backend.metrics import METRICS_ENABLED, metrics_endpoint, metrics_middleware, set_app_info
from account_backend.routers.account import router as account_router
from account_backend.routers.misc import router as misc_router
from account_backend.routers.profile import router as profile_router
from account_backend.services.profile_image import get_coordinator
from account_backend.services.storage import LocalObjectStorage

def create_app() -> FastAPI:
    configure_logging()
    warn_if_unverified()
    app = FastAPI(title="Account Backend", version="0.1.0")

    storage = get_coordinator().storage
    if isinstance(storage, LocalObjectStorage):
        storage.directory.mkdir(parents=True, exist_ok=True)
        app.mount("/static/uploads", StaticFiles(directory=storage.directory), name="uploads")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in S.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if METRICS_ENABLED:
        app.middleware("http")(metrics_middleware)
        set_app_info(app.title, app.version)
        app.get("/metrics")(metrics_endpoint)

    register_error_handlers(app)

    app.include_router(misc_router)
    app.include_router(account_router)
    app.include_router(profile_router)

    return app

app = create_app()
