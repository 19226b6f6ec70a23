# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
On-Call Core Service
====================
Rotation schedules with prefilled daily assignments, and the incident
lifecycle with its acknowledgment path and audit trail.

    open ─► acknowledged ─► resolved
    open ─────────────────► resolved

Port: 8005
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from oncall_core.controllers import (
    assignment_controller, incident_controller, schedule_controller, system_controller,
)
from oncall_core.core.config import settings
from oncall_core.core.database import engine
from oncall_core.core.logging import get_logger
from oncall_core.middleware import MetricsMiddleware, RequestIDMiddleware
from oncall_core.repositories.tables import init_schema

logger = get_logger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    init_schema(engine)
    logger.info("%s v%s started, schema ready", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    engine.dispose()
    logger.info("Shutting down — connection pool disposed")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="On-Call Core Service",
    description="Rotation schedules, assignments and the incident lifecycle.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(system_controller.router)
app.include_router(schedule_controller.router)
app.include_router(assignment_controller.router)
app.include_router(incident_controller.router)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
