"""Recurring payment endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.api.deps import get_current_user_id
from txnflow.db.session import get_db
from txnflow.schemas.recurring import RecurringGroupListResult, RecurringGroupResponse
from txnflow.services.recurring import RecurringDetector

router = APIRouter(prefix="/recurring", tags=["recurring"])


@router.get(
    "",
    response_model=RecurringGroupListResult,
    summary="List active recurring payments",
    description="Active recurring groups for the caller, soonest expected payment first.",
)
async def list_recurring(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> RecurringGroupListResult:
    groups = await RecurringDetector(db).list_active(user_id)
    return RecurringGroupListResult(groups=[RecurringGroupResponse.model_validate(g) for g in groups])
