"""
FastAPI app entrypoint.

Load-hunt matching: offers in, matches out. Scheduler runs the missed/expiration sweeps and
the backup rematch pass; per-tenant engine workers handle pushes.
"""
import logging
import os
import threading
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from the project root before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from loadhunt.api.routes import hunt_plans, matches, offers, vehicle_types
from loadhunt.core.constants import (
    EXPIRATION_SWEEP_INTERVAL_SECONDS,
    EXPIRATION_SWEEP_JOB_ID,
    MISSED_SWEEP_INTERVAL_SECONDS,
    MISSED_SWEEP_JOB_ID,
    REMATCH_INTERVAL_SECONDS,
    REMATCH_JOB_ID,
)
from loadhunt.scheduler.engine_worker import stop_all_workers
from loadhunt.scheduler.expiration_job import run_expiration_sweep_job
from loadhunt.scheduler.missed_job import run_missed_sweep_job
from loadhunt.scheduler.rematch_job import run_rematch_job

logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _scheduler.add_job(
        run_missed_sweep_job,
        "interval",
        seconds=MISSED_SWEEP_INTERVAL_SECONDS,
        id=MISSED_SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.add_job(
        run_expiration_sweep_job,
        "interval",
        seconds=EXPIRATION_SWEEP_INTERVAL_SECONDS,
        id=EXPIRATION_SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.add_job(
        run_rematch_job,
        "interval",
        seconds=REMATCH_INTERVAL_SECONDS,
        id=REMATCH_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler

    def startup_background():
        # One backup pass on startup: finishes backfills interrupted by the last shutdown.
        try:
            run_rematch_job()
            logger.info("Backup rematch on startup done; next in %ss", REMATCH_INTERVAL_SECONDS)
        except Exception as e:
            logger.warning("Backup rematch on startup failed: %s", e, exc_info=True)

    threading.Thread(target=startup_background, daemon=True).start()
    logger.info(
        "Load hunt ready: missed sweep %ss, expiration sweep %ss, rematch %ss",
        MISSED_SWEEP_INTERVAL_SECONDS,
        EXPIRATION_SWEEP_INTERVAL_SECONDS,
        REMATCH_INTERVAL_SECONDS,
    )
    yield
    _scheduler.shutdown(wait=False)
    stop_all_workers()


app = FastAPI(title="Load Hunt", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the console frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hunt_plans.router, tags=["hunt-plans"])
app.include_router(offers.router, tags=["offers"])
app.include_router(matches.router, tags=["matches"])
app.include_router(vehicle_types.router, tags=["vehicle-types"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "Load Hunt API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
