"""API version 1 routes."""

from fastapi import APIRouter

from txnflow.api.v1 import imports, recurring, transactions

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(transactions.router)
router.include_router(imports.router)
router.include_router(recurring.router)
