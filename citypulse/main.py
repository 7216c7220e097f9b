import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from citypulse.api.auth import router as auth_router
from citypulse.api.map import router as map_router
from citypulse.api.officials import router as officials_router
from citypulse.api.reporting import router as reporting_router
from citypulse.core.config import Settings, get_settings
from citypulse.services.container import Services, build_services

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = services or build_services(settings)
        app.state.services = svc
        try:
            await svc.auth_backend.users.ensure_indexes()
        except PyMongoError as exc:
            logger.warning("Could not ensure user indexes: %s", exc)
        logger.info("%s started (%s)", settings.app_name, settings.env)
        try:
            yield
        finally:
            await svc.close()
            logger.info("%s stopped", settings.app_name)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(reporting_router)
    app.include_router(map_router)
    app.include_router(officials_router)

    @app.get("/")
    def root():
        return {"ok": True, "docs": "/docs"}

    return app


app = create_app()
