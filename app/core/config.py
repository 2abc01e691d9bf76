from typing import Annotated, Optional

from fastapi import Depends
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    # Credentials stay optional so a missing one is reported per request
    DATABASE_URL: Optional[str] = None
    SECRET_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None

    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    OPENAI_MODEL: str = "gpt-4o"
    SQL_ECHO: bool = False

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def missing_credentials(self) -> list[str]:
        required = ("DATABASE_URL", "SECRET_KEY", "OPENAI_API_KEY")
        return [name for name in required if not getattr(self, name)]


# Create a single instance of the settings to use everywhere
settings = Settings()


def get_settings() -> Settings:
    return settings


async def require_configuration(
    current: Annotated[Settings, Depends(get_settings)],
) -> Settings:
    """Fail fast when any external credential is absent."""
    missing = current.missing_credentials()
    if missing:
        raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")
    return current
