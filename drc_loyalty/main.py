import uvicorn
from fastapi import FastAPI

from drc_loyalty.api.routes.auth import router as auth_router
from drc_loyalty.api.routes.health import router as health_router
from drc_loyalty.api.routes.internal_campaigns import router as internal_campaigns_router
from drc_loyalty.api.routes.internal_catalog import router as internal_catalog_router
from drc_loyalty.api.routes.internal_dashboard import router as internal_dashboard_router
from drc_loyalty.api.routes.internal_partners import router as internal_partners_router
from drc_loyalty.api.routes.internal_receipts import router as internal_receipts_router
from drc_loyalty.api.routes.internal_users import router as internal_users_router
from drc_loyalty.api.routes.notifications import router as notifications_router
from drc_loyalty.api.routes.partners import router as partners_router
from drc_loyalty.api.routes.receipts import router as receipts_router
from drc_loyalty.api.routes.rewards import router as rewards_router
from drc_loyalty.api.routes.supermarkets import router as supermarkets_router
from drc_loyalty.api.routes.users import router as users_router
from drc_loyalty.core.config import get_settings
from drc_loyalty.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="DRC Loyalty API",
        version="0.1.0",
        docs_url="/docs" if settings.enable_openapi_docs else None,
        redoc_url="/redoc" if settings.enable_openapi_docs else None,
        openapi_url="/openapi.json" if settings.enable_openapi_docs else None,
    )
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(supermarkets_router)
    app.include_router(receipts_router)
    app.include_router(users_router)
    app.include_router(notifications_router)
    app.include_router(rewards_router)
    app.include_router(partners_router)
    app.include_router(internal_receipts_router)
    app.include_router(internal_campaigns_router)
    app.include_router(internal_catalog_router)
    app.include_router(internal_users_router)
    app.include_router(internal_partners_router)
    app.include_router(internal_dashboard_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "drc_loyalty.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
