from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ProcessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: Optional[str] = None  # base64 encoded image, no data-URI prefix
    filename: Optional[str] = None
    mimetype: Optional[str] = Field(default=None, validation_alias=AliasChoices("mimetype", "mimeType"))


class ProcessTiming(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_ms: int = Field(alias="uploadMs")
    processing_ms: int = Field(alias="processingMs")
    total_ms: int = Field(alias="totalMs")
    # Processing time as reported by the transform API itself, when it sends one
    upstream_response_time: Optional[str] = Field(default=None, alias="upstreamResponseTime")


class ProcessResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    result_url: str = Field(alias="result")
    uploaded_url: str = Field(alias="uploadedUrl")
    timestamp: str
    timing: ProcessTiming
