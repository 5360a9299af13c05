"""System status endpoint."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/status")
async def system_status(request: Request) -> dict[str, Any]:
    """Orchestrator state plus the background job schedule."""
    status = await run_in_threadpool(request.app.state.orchestrator.status)
    jobs = request.app.state.background_jobs
    return {
        "success": True,
        "status": status.model_dump(mode="json"),
        "background_jobs": jobs.job_ids() if jobs is not None and jobs.running else [],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
