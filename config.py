"""
Application settings.

Values come from environment variables or a local .env file
(pydantic-settings). The default database is an in-memory SQLite store,
so every process starts from the seed dataset.
"""

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    APP_TITLE: str = "Academic Records API"
    APP_DESCRIPTION: str = "Students, courses, faculty and grades with GPA reporting"
    APP_VERSION: str = "1.0.0"

    # Store
    DATABASE_URL: str = "sqlite://"
    SEED_ON_STARTUP: bool = True

    # Dashboard client
    API_BASE_URL: str = "http://localhost:4000"
    REQUEST_TIMEOUT: float = 10.0
    FETCH_TIMEOUT: float = 15.0

    # Views
    STUDENT_PAGE_SIZE: int = 6
    COURSE_PAGE_SIZE: int = 6
    ROSTER_PAGE_SIZE: int = 8
    DASHBOARD_LEADERBOARD_SIZE: int = 5
    REPORT_LEADERBOARD_SIZE: int = 8
    RECENT_ACTIVITY_SIZE: int = 6

    # Exports
    EXPORT_DIR: str = "."

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
