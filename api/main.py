"""
api/main.py — FastAPI application entry point.

Run with:
    uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from crm.config import settings
from crm.db.session import engine
from crm.errors import CRMError, ExternalCallError, NotFoundError, ValidationError
from api.endpoints.account_routes import company_router, contact_router
from api.endpoints.activity_routes import activity_router, comment_router
from api.endpoints.deal_routes import router as deal_router
from api.endpoints.lead_routes import router as lead_router
from api.endpoints.notification_routes import dashboard_router, notification_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ─────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown logic."""
    # Verify DB is reachable on startup
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("✅ Database connection verified.")
    yield
    logger.info("🛑 Application shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="CRM Service",
    description=(
        "Contacts, companies, leads, deals, activities and notifications, with "
        "lead scoring, lead routing, a drag-and-drop pipeline and lead-to-deal conversion."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping ────────────────────────────────────────────────────────────

ERROR_STATUS = {
    NotFoundError: 404,
    ValidationError: 422,
    ExternalCallError: 502,
}


@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(lead_router, prefix="/leads", tags=["Leads"])
app.include_router(deal_router, prefix="/deals", tags=["Pipeline"])
app.include_router(company_router, prefix="/companies", tags=["Companies"])
app.include_router(contact_router, prefix="/contacts", tags=["Contacts"])
app.include_router(activity_router, prefix="/activities", tags=["Activities"])
app.include_router(comment_router, prefix="/comments", tags=["Comments"])
app.include_router(notification_router, prefix="/notifications", tags=["Notifications"])
app.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])


# ── Health check ─────────────────────────────────────────────────────────────

@app.get("/health", tags=["System"])
def health_check():
    """Returns service liveness status."""
    return {"status": "ok", "service": "crm-service"}


@app.get("/", tags=["System"])
def root():
    return {"message": "CRM service is running.", "docs": "/docs"}
