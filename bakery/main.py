# bakery/main.py
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import admin, public
from .auth import AdminAuth, default_admin_auth
from .config import Settings, get_settings
from .db import create_db_engine, init_db, make_session_factory
from .errors import register_error_handlers
from .ordering.orders import Clock, system_clock
from .uploads import ensure_upload_dirs

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    clock: Clock | None = None,
    admin_auth: list[AdminAuth] | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Bakery Pickup Orders API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    engine = create_db_engine(settings.database_url)
    init_db(engine, seed=settings.seed_catalog)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.clock = clock or system_clock
    app.state.admin_auth = admin_auth if admin_auth is not None else default_admin_auth(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    prefix = settings.api_prefix
    app.include_router(public.router, prefix=prefix)
    app.include_router(admin.router, prefix=prefix)
    app.include_router(admin.protected, prefix=prefix)

    upload_dir: Path = ensure_upload_dirs(settings.upload_dir)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    logger.info("App ready (db=%s, prefix=%r)", engine.url.render_as_string(hide_password=True), prefix)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
