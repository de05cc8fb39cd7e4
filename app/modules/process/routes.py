from typing import Optional

from fastapi import APIRouter, Body

from .schemas import ProcessRequest, ProcessResult
from .service import process_image

router = APIRouter()


@router.post(
    "/process",
    response_model=ProcessResult,
    response_model_exclude_none=True,
    summary="Upload an image to hosting and run it through the transform API",
)
async def process_endpoint(body: Optional[ProcessRequest] = Body(default=None)) -> ProcessResult:
    """Errors are raised as ServiceError and rendered by the app-level handler."""
    return await process_image(body or ProcessRequest())
