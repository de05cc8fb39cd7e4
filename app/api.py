from fastapi import APIRouter

# Import module routers
from app.modules.process.routes import router as process_router
from app.modules.download.routes import router as download_router

# Create main API router
api_router = APIRouter()

# Include module routers
api_router.include_router(process_router, tags=["process"])
api_router.include_router(download_router, tags=["download"])
