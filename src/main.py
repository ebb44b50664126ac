from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
import os
import platform
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, HTTPException, Query
from loguru import logger

from src.config import get_settings
from src.errors import PersistenceError
from src.services.db import init_db
from src.utils import configure_logging
from src.utils.config_validation import validate_runtime_config
from src.worker import build_orchestrator, worker_loop

configure_logging("web")

settings = get_settings()
validate_runtime_config(settings)
SCANNER_ENABLED = os.getenv("SCANNER_ENABLED", "true").lower() == "true"

logger.info(
    "web boot",
    settings=settings.non_secret_dict(),
    python_version=platform.python_version(),
)
init_db()
orchestrator = build_orchestrator()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    task: asyncio.Task | None = None
    if SCANNER_ENABLED:
        task = asyncio.create_task(worker_loop(orchestrator))
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task


app = FastAPI(title="Momentum Scanner", lifespan=lifespan)


@app.get("/health")
def health() -> Dict[str, Any]:
    status = orchestrator.status()
    return {"status": "error" if status["last_error"] else "ok", "scanner": status}


@app.get("/config")
def config() -> Dict[str, Any]:
    return settings.non_secret_dict()


@app.get("/alerts")
def latest_alerts(limit: int = Query(default=50, ge=1, le=500)) -> Dict[str, Any]:
    try:
        alerts = orchestrator.validator.store.list_recent(limit)
    except PersistenceError as exc:
        logger.error("alert listing failed", error=str(exc))
        raise HTTPException(status_code=503, detail="alert store unavailable")
    return {"alerts": [alert.as_dict() for alert in alerts]}


@app.post("/run-scan")
def run_scan_endpoint() -> Dict[str, Any]:
    logger.info("Manual scan triggered via API")
    result = orchestrator.trigger()
    if result is None:
        return {"skipped": True, "reason": "scan already running"}
    return {"skipped": False, **result}


@app.get("/")
def root() -> Dict[str, str]:
    return {"message": "Momentum scanner alive"}
