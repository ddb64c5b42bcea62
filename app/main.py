import time

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logger import get_logger
from app.db.base import Base
from app.db.session import engine
from app.services.trip_scheduler import start_auto_start_task

# Registers every model on Base.metadata
import app.models  # noqa: F401

from app.api.routes import (
    auth,
    admin_master,
    trips,
    maintenance,
    reports,
    health
)

logger = get_logger(__name__)

app = FastAPI(title="TripTrac Logistics API")

# ===============================
# CORS CONFIGURATION
# ===============================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===============================
# REQUEST TIMING
# ===============================
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ===============================
# UNHANDLED ERRORS
# ===============================
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ===============================
# INCLUDE ROUTERS
# ===============================
app.include_router(auth.router)
app.include_router(admin_master.router)
app.include_router(trips.router)
app.include_router(maintenance.router)
app.include_router(reports.router)
app.include_router(health.router)


# ===============================
# STARTUP / SHUTDOWN
# ===============================
@app.on_event("startup")
async def startup():
    logger.info("TripTrac backend starting up...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    app.state.auto_start_task = start_auto_start_task(settings.AUTO_START_INTERVAL_SECONDS)


@app.on_event("shutdown")
async def shutdown():
    task = getattr(app.state, "auto_start_task", None)
    if task:
        task.cancel()
    logger.info("TripTrac backend shutting down...")


# ===============================
# ROOT ENDPOINT
# ===============================
@app.get("/")
def root():
    return {"status": "Backend running successfully"}
