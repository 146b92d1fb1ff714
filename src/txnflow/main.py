from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from txnflow import __version__
from txnflow.api.middleware.error_handler import (
    handle_generic_error,
    handle_integrity_error,
    handle_pipeline_error,
    handle_validation_error,
)
from txnflow.api.middleware.logging import RequestLoggingMiddleware, configure_logging
from txnflow.api.v1 import router as v1_router
from txnflow.api.v1.health import router as health_router
from txnflow.config import settings
from txnflow.core.exceptions import PipelineError
from txnflow.db.session import AsyncSessionLocal
from txnflow.services.background import RecurringDetectionQueue


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    queue = RecurringDetectionQueue(AsyncSessionLocal)
    queue.start()
    app.state.recurring_queue = queue
    yield
    # Shutdown: let queued detections finish before stopping the worker.
    await queue.join()
    await queue.stop()
    app.state.recurring_queue = None


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="txnflow API",
        description="Transaction ingestion, enrichment and recurring payment detection",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(PipelineError, handle_pipeline_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    # Register routers
    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()
