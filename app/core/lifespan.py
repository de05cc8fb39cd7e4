import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings

# Configure logger
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Origin for /health uptime; monotonic so uptime never goes backwards
STARTED_AT = time.monotonic()


def uptime_seconds() -> float:
    return time.monotonic() - STARTED_AT


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Image relay starting on port %s", settings.PORT)
    logger.info("Hosting upload target: %s", settings.HOSTING_UPLOAD_URL)
    if settings.TRANSFORM_API_URL:
        logger.info("Transform endpoint configured: %s", settings.TRANSFORM_API_URL)
    else:
        logger.warning("TRANSFORM_API_URL is not set; /api/process will return 503")

    yield

    # Shutdown
    logger.info("🛑 Image relay stopped after %.1fs", uptime_seconds())
