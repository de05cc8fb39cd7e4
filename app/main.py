import logging
from datetime import datetime, timezone
from pathlib import Path

# FastAPI imports
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

# API imports
from app.api import api_router

# Core imports
from app.core.config import settings
from app.core.errors import register_error_handlers
from app.core.lifespan import lifespan, uptime_seconds

# Middleware imports
from app.middleware import ErrorHandlerMiddleware, RequestLoggingMiddleware

# Logging configuration
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


def create_application() -> FastAPI:
    application = FastAPI(
        title="Image Relay",
        description="Uploads an image to hosting, runs it through a transform API and relays the result",
        version="1.0.0",
        lifespan=lifespan
    )

    # Order matters - error handler innermost, request logging outermost
    application.add_middleware(ErrorHandlerMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_middleware(RequestLoggingMiddleware)
    register_error_handlers(application)
    application.include_router(api_router, prefix=settings.API_PREFIX)
    application.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    return application

app = create_application()

@app.get("/", include_in_schema=False)
async def root():
    return FileResponse(STATIC_DIR / "index.html")

@app.get("/health")
async def health_check():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": uptime_seconds(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
