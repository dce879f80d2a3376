import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.records import router as records_router
from backend.api.submissions import router as submissions_router
from backend.database import close_checkpointer, create_tables, init_checkpointer
from backend.errors import RecordIntakeError
from backend.graph import reset_submission_workflow, shutdown_submission_workflow
from backend.settings import settings
from backend.utils.logging import configure_logging

configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup/shutdown."""
    settings.validate()

    # Startup: Create database tables
    if settings.DATABASE_URL:
        logger.info("Initializing database")
        await create_tables()
        logger.info("Database tables ready")
    else:
        logger.warning("DATABASE_URL not set - skipping database initialization")

    # Initialize checkpointer (PostgresSaver or MemorySaver fallback)
    await init_checkpointer()
    reset_submission_workflow()

    yield

    # Shutdown: write pending drafts, then cleanup checkpointer connection
    await shutdown_submission_workflow()
    await close_checkpointer()
    logger.info("Shutting down")


app = FastAPI(title="Record Intake", lifespan=lifespan)

# Allow CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(records_router)
app.include_router(submissions_router)


@app.exception_handler(RecordIntakeError)
async def record_intake_error_handler(request: Request, exc: RecordIntakeError):
    if exc.status_code >= 500:
        logger.error("Request failed", extra={"path": request.url.path, "code": exc.code})
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.message},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "database": bool(settings.DATABASE_URL)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
