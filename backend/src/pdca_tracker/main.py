"""
PDCA Tracker Backend Main Application
FastAPI application on MongoDB for PDCA task and purchase order tracking
"""
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from pdca_tracker.core.config import settings
from pdca_tracker.db.mongo import (
    Collections, close_database_connection, ensure_indexes, get_database, get_db, ping_database
)

from pdca_tracker.api.v1 import auth, files, orders, stats, tasks, users

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_admin(db) -> None:
    """
    Create the bootstrap admin account when no admin exists
    """
    from pdca_tracker.api.v1.auth import new_user_doc
    from pdca_tracker.models.user import UserRole

    admin_user = await db[Collections.USERS].find_one({"role": UserRole.ADMIN.value})
    if admin_user:
        return

    admin_doc = new_user_doc(
        settings.ADMIN_NAME,
        settings.ADMIN_EMAIL,
        settings.ADMIN_PASSWORD,
        role=UserRole.ADMIN
    )
    await db[Collections.USERS].insert_one(admin_doc)
    logger.warning(
        "Created bootstrap admin %s; change its password after the first login",
        settings.ADMIN_EMAIL
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application start-up and shutdown
    """
    from pdca_tracker.services.order_service import OrderService
    from pdca_tracker.services.task_service import TaskService

    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    db = await get_database()
    await ensure_indexes(db)

    task_counter = await TaskService(db).sync_counter()
    order_counter = await OrderService(db).sync_counter()
    logger.info("Counters ready: task=%d order=%d", task_counter, order_counter)

    await seed_admin(db)

    logger.info("%s ready", settings.APP_NAME)

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    await close_database_connection()


app = FastAPI(
    title="PDCA Tracker API",
    description="PDCA task and purchase order tracking",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check(db=Depends(get_db)):
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": "connected" if await ping_database(db) else "unavailable"
    }


app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(files.router, prefix="/api/v1")
app.include_router(stats.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "message": "PDCA Tracker API",
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
        "health": "/health"
    }


def run():
    import uvicorn
    uvicorn.run(
        "pdca_tracker.main:app",
        host="0.0.0.0",
        port=8001,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
