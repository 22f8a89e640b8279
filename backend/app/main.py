# This file bootstraps the FastAPI app, wires up request logging,
# installs the ledger error handler and includes all the routers.
# The nightly commission scheduler is started here when enabled.

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import os
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.core.config import settings
from app.core.db import Base, engine
from app.core.errors import LedgerError
from app.core.logging import APILoggingMiddleware, configure_app_logging

# Bring in all routers (grouped by audience)
from app.api.admin_commissions import router as admin_commissions_router
from app.api.admin_withdrawals import router as admin_withdrawals_router
from app.api.admin_affiliates import router as admin_affiliates_router
from app.api.affiliates import router as affiliates_router
from app.api.banks import router as banks_router
from app.api.withdrawals import router as withdrawals_router
from app.api.links import router as links_router
from app.api.payments import router as payments_router

from app import models  # noqa: F401  registers every table on Base

# Create DB tables right away for local runs; deployed environments
# apply the alembic migrations and set SKIP_MIGRATIONS=1.
if os.getenv("SKIP_MIGRATIONS") != "1":
    Base.metadata.create_all(bind=engine)

app = FastAPI(title="Bookshop Affiliate Ledger")


@app.on_event("startup")
def _startup() -> None:
    configure_app_logging()
    if settings.SCHEDULER_ENABLED:
        from app.jobs.scheduler import start_scheduler

        start_scheduler()


@app.on_event("shutdown")
def _shutdown() -> None:
    if settings.SCHEDULER_ENABLED:
        from app.jobs.scheduler import shutdown_scheduler

        shutdown_scheduler()


@app.exception_handler(LedgerError)
def handle_ledger_error(_request: Request, exc: LedgerError):
    response = JSONResponse(status_code=exc.status_code, content=exc.to_payload())
    response.headers["X-Error-Code"] = exc.code
    return response


app.add_middleware(APILoggingMiddleware)

routers = [
    admin_commissions_router,
    admin_withdrawals_router,
    admin_affiliates_router,
    affiliates_router,
    banks_router,
    withdrawals_router,
    links_router,
    payments_router,
]

for r in routers:
    app.include_router(r)


# /metrics endpoint (Prometheus scraping)
@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
def health():
    return {"status": "ok"}


# CORS setup so the storefront and admin console can call the API.
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_origins=[origin for origin in (settings.FRONTEND_BASE_URL, settings.APP_BASE_URL) if origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,
)
