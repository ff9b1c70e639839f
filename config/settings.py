"""
Configuration management for the timetable generation API.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Timetable Generation API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = False

    # Engine defaults (used when a request leaves the field unset)
    default_branching_limit: int = 5
    default_per_day_subject_cap: int = 1
    default_max_search_steps: int = 200_000
    default_max_free_ratio: float = 0.25

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
