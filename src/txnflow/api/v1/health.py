import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Basic health check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(request: Request, db: AsyncSession = Depends(get_db)):
    """Readiness check with database connection and recurring worker state."""
    queue = getattr(request.app.state, "recurring_queue", None)
    worker = "running" if queue is not None and queue.running else "stopped"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Readiness check failed", extra={"error_type": type(e).__name__})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "database": "disconnected", "recurring_worker": worker},
        )
    return {"status": "ready", "database": "connected", "recurring_worker": worker}
