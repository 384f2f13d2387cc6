from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from enum import Enum
from pathlib import Path

class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"

class GradingMode(str, Enum):
    EMBEDDING = "embedding"
    LEXICAL = "lexical"

class Settings(BaseSettings):
    # Basic Settings
    APP_NAME: str = "FaceHire Interview Service"
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "DEBUG"

    # Grading
    OPENAI_API_KEY: str | None = None
    GRADING_MODE: GradingMode = GradingMode.LEXICAL
    EMBEDDING_MODEL: str = "text-embedding-3-small"

    # Interview session
    QUESTION_BANK_PATH: str = str(Path(__file__).resolve().parent.parent / "data" / "questionBank.csv")
    DEFAULT_QUESTION_COUNT: int = 5
    SILENCE_TIMEOUT_SECONDS: float = 3.0
    EMOTION_SAMPLE_INTERVAL_SECONDS: float = 1.0
    SESSION_IDLE_TIMEOUT_SECONDS: float = 900.0
    SESSION_PRUNE_INTERVAL_SECONDS: float = 60.0

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./facehire.db"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra='ignore'
    )

@lru_cache
def get_settings() -> Settings:
    return Settings()


class GradingConfig(BaseModel):
    """Grading configuration captured once per session start."""
    mode: GradingMode = GradingMode.LEXICAL
    api_key: str | None = Field(default=None, alias="apiKey")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("mode", mode="before")
    @classmethod
    def _accept_legacy_mode(cls, value):
        # Older stored configs call the embedding mode "openai"
        if isinstance(value, str) and value.lower() == "openai":
            return GradingMode.EMBEDDING
        return value

    @property
    def effective_mode(self) -> GradingMode:
        if self.mode == GradingMode.EMBEDDING and not self.api_key:
            return GradingMode.LEXICAL
        return self.mode

    @classmethod
    def from_settings(cls, settings: Settings) -> "GradingConfig":
        return cls(mode=settings.GRADING_MODE, api_key=settings.OPENAI_API_KEY)
