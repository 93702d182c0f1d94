import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .cloudinary_setup import cloudinary_client
from .database import Database
from .settings import settings

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    owns_database = getattr(app.state, "db", None) is None
    if owns_database:
        app.state.db = Database(settings.DATABASE_URL, echo=settings.DB_ECHO)
    database: Database = app.state.db

    if settings.DB_CREATE_ALL:
        await database.create_all()

    try:
        if await cloudinary_client.connect():
            logger.info("Cloudinary connected.")
        else:
            logger.warning("Cloudinary is not configured; uploads will fail.")
    except Exception:
        logger.exception("Cannot connect to Cloudinary")

    logger.info("Application startup complete.")

    yield

    if owns_database:
        await database.dispose()
    logger.info("Application shutdown complete.")
