import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from app.config import get_settings, reload_settings

reload_settings()
from app.database import build_store
from app.modules.ai.client import build_client
from app.modules.ai.requests import RequestRegistry
from app.api.errors import register_exception_handlers
from app.api.auth import router as auth_router
from app.api.leads import router as leads_router
from app.api.contacts import router as contacts_router
from app.api.finance import router as finance_router
from app.api.dashboard import router as dashboard_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    store = build_store(settings)
    await store.connect()
    ai_client = build_client(settings)
    app.state.store = store
    app.state.ai_client = ai_client
    app.state.requests = RequestRegistry()
    logger.info("Dealflow started: store=%s ai_provider=%s", settings.store_backend, settings.ai_provider)
    yield
    await app.state.requests.cancel_all()
    await ai_client.aclose()
    await store.close()


settings = get_settings()

app = FastAPI(
    title="Dealflow",
    description="AI deal analysis and lead tracking for real estate investors",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(leads_router, prefix="/leads", tags=["leads"])
app.include_router(contacts_router, prefix="/contacts", tags=["contacts"])
app.include_router(finance_router, prefix="/finance", tags=["finance"])
app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])


@app.get("/health")
async def health():
    return {"status": "ok", "environment": settings.environment}
