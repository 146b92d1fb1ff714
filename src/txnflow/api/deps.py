"""FastAPI dependency injection for caller identity, database and services."""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.core.exceptions import MissingIdentityError
from txnflow.db.session import get_db
from txnflow.services.background import RecurringDetectionQueue
from txnflow.services.corrections import CorrectionService
from txnflow.services.pipeline import TransactionPipeline


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> str:
    """
    Caller identity as forwarded by the upstream gateway.

    Raises:
        MissingIdentityError: If the header is absent or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise MissingIdentityError()
    return user_id


def get_recurring_queue(request: Request) -> RecurringDetectionQueue | None:
    """Queue started in the application lifespan (None when not running)."""
    return getattr(request.app.state, "recurring_queue", None)


async def get_pipeline(
    db: AsyncSession = Depends(get_db),
    queue: RecurringDetectionQueue | None = Depends(get_recurring_queue),
) -> TransactionPipeline:
    """
    Get a pipeline bound to the request's session.

    Args:
        db: Database session
        queue: Recurring detection queue

    Returns:
        TransactionPipeline instance
    """
    return TransactionPipeline(db, recurring_queue=queue)


async def get_correction_service(db: AsyncSession = Depends(get_db)) -> CorrectionService:
    return CorrectionService(db)
