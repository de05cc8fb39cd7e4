import os
from pydantic import field_validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Settings(BaseSettings):
    # API Settings
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")
    PORT: int = int(os.getenv("PORT", "3000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Comma separated list of allowed origins
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Hosting upload (multipart, returns a bare URL as text)
    HOSTING_UPLOAD_URL: str = os.getenv("HOSTING_UPLOAD_URL", "https://catbox.moe/user/api.php")

    # Transform API (GET with the hosted URL as a query parameter, returns JSON)
    TRANSFORM_API_URL: str = os.getenv("TRANSFORM_API_URL", "")
    TRANSFORM_URL_PARAM: str = os.getenv("TRANSFORM_URL_PARAM", "imageUrl")

    # Outbound request settings
    USER_AGENT: str = os.getenv("USER_AGENT", "ImageRelay/1.0 (aiohttp)")
    UPSTREAM_TIMEOUT_SECONDS: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "110"))
    PROCESS_TIMEOUT_SECONDS: float = float(os.getenv("PROCESS_TIMEOUT_SECONDS", "120"))

    # 10 MB, same ceiling the upload page enforces
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

    @field_validator("TRANSFORM_API_URL")
    @classmethod
    def strip_quotes(cls, value: str) -> str:
        # some .env files include quotes
        return (value or "").strip().strip('"').strip("'")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

# Create settings instance
settings = Settings()
