from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from src.api.deps import optional_schedule_store
from src.api.router import api_router
from src.config import get_settings
from src.content.strategy import get_strategy_store
from src.db.database import get_sync_session, init_db
from src.errors import AppError
from src.scheduler.runner import shutdown_worker, start_worker

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up...")
    await init_db()

    with get_sync_session() as session:
        get_strategy_store().load(session)

    # 啟動排程器; paused keeps the store usable for enqueueing without running jobs
    start_worker(settings, paused=not settings.run_worker_in_api)
    if not settings.run_worker_in_api:
        logger.info("Jobs run in a separate worker process, API only enqueues")

    yield

    # 關閉排程器
    shutdown_worker()
    logger.info("Shutting down...")


# Disable interactive docs in production
docs_url = None if settings.is_production else "/docs"
redoc_url = None if settings.is_production else "/redoc"

app = FastAPI(
    title="Campaign Notifier API",
    description="Fundraising campaigns, invitations and scheduled notifications",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)

# Configure CORS origins
default_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
if settings.cors_origins:
    cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]
else:
    cors_origins = default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api/admin/status")
async def admin_status(x_admin_key: str = Header(None)):
    # Require admin key in production
    if settings.is_production:
        if not settings.admin_api_key:
            raise HTTPException(status_code=503, detail="Admin API not configured")
        if x_admin_key != settings.admin_api_key:
            raise HTTPException(status_code=401, detail="Invalid admin key")

    store = optional_schedule_store()
    return {
        "scheduler_running": store is not None and store.scheduler.running,
        "jobs": store.describe() if store else [],
    }
