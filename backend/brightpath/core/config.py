from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    database_url: str = Field(default="sqlite:///./brightpath.db")
    log_level: str = Field(default="INFO")

    break_minutes: int = Field(default=15, ge=5)
    min_training_samples: int = Field(default=5, ge=2)
    ridge_alpha: float = Field(default=1.0, gt=0)
    retrain_interval_days: int = Field(default=7, ge=1)
    retrain_timeout_seconds: float = Field(default=300.0, gt=0)

    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
