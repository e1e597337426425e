import logging
import os
from pathlib import Path
from typing import Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log_format = logging.Formatter("%(asctime)s : %(levelname)s - %(message)s")

# root logger
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)

# standard stream handler
stream_handler = logging.StreamHandler()
stream_handler.setFormatter(log_format)
root_logger.addHandler(stream_handler)

logger = logging.getLogger(__name__)

# Load .env file from docker/server directory, falling back to the project root
for env_path in (Path("./docker/server/.env"), Path("./.env")):
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
        logger.info(f"Loaded environment from {env_path}")
        break
else:
    logger.warning("No .env file found, using process environment only")


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "marketplace-api"

    # Database Configuration
    DATABASE_URL: str = Field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./marketplace.db"),
        description="Async SQLAlchemy database URL"
    )

    # Server Configuration
    SERVER_PORT: int = 8001
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, list[str]]) -> list[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        elif isinstance(v, str):
            return [v]
        raise ValueError(v)

    # Token Configuration
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60 * 24

    # Subscription Configuration
    EXPIRING_SOON_DAYS: int = 7
    # Entitlement hook for non-admin subscribers; off until a real entitlements query exists
    SUBSCRIBER_CAN_SELL: bool = False

    POLICIES_PATH: str = "policies.yaml"

    model_config = SettingsConfigDict(case_sensitive=True)


settings = Settings()

if settings.JWT_SECRET == "change-me" and os.getenv("ENV") == "production":
    raise ValueError("JWT_SECRET environment variable is required in production")
