import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callrelay.api import dashboard, health, reports, webhooks
from callrelay.core.config import settings
from callrelay.core.database import engine
from callrelay.core.schema import init_db, wait_for_database
from callrelay.services.crm_client import CRMClient
from callrelay.services.tenants import load_tenant_directory

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup() -> None:
    app.state.tenant_directory = load_tenant_directory(settings.tenants_json)
    await wait_for_database(engine)
    init_db(engine)
    app.state.crm_client = CRMClient(
        settings.crm_base_url,
        timeout=settings.crm_timeout_seconds,
        api_version=settings.crm_api_version,
    )
    logger.info("%s started (%s).", settings.app_name, settings.environment)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    crm_client = getattr(app.state, "crm_client", None)
    if crm_client:
        await crm_client.aclose()


app.include_router(health.router)
app.include_router(webhooks.router)
app.include_router(reports.router)
# Catch-all /{account_id} routes go last.
app.include_router(dashboard.router)
