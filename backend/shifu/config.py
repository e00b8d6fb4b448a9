import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

DEFAULT_RECOMMENDATION_ENDPOINT = "https://api.openai.com/v1/chat/completions"


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    database_url: Optional[str] = Field(None, alias="SHIFU_DATABASE_URL")
    database_name: str = Field("shifu", alias="SHIFU_DATABASE_NAME")
    database_pool_size: int = Field(10, alias="SHIFU_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="SHIFU_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="SHIFU_DATABASE_ECHO")
    database_auto_create: bool = Field(True, alias="SHIFU_DATABASE_AUTO_CREATE")
    recommendation_endpoint: str = Field(DEFAULT_RECOMMENDATION_ENDPOINT, alias="SHIFU_RECOMMENDATION_ENDPOINT")
    recommendation_model: str = Field("gpt-4o-mini", alias="SHIFU_RECOMMENDATION_MODEL")
    recommendation_max_tokens: int = Field(200, ge=1, alias="SHIFU_RECOMMENDATION_MAX_TOKENS")
    recommendation_attempts: int = Field(4, ge=1, alias="SHIFU_RECOMMENDATION_ATTEMPTS")
    recommendation_timeout_seconds: float = Field(30.0, gt=0, alias="SHIFU_RECOMMENDATION_TIMEOUT_SECONDS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_name}.db"


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid backend configuration: {exc}") from exc
