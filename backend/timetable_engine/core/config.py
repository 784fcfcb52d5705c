from functools import lru_cache
import json
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_WEEK_DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"]


def _split_list(value: str | list[str]) -> list[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(
        env_file=str(BACKEND_ENV_FILE),
        env_file_encoding="utf-8",
        env_prefix="TIMETABLE_",
    )

    project_name: str = "Timetable Engine API"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./timetable.db"
    auto_create_tables: bool = True

    week_days: list[str] = list(DEFAULT_WEEK_DAYS)

    # Implicit period-1 homeroom duty. Deployments disagree on the grade range
    # and on which load becomes the synthesized subject, so both are knobs.
    homeroom_slot_id: int = 1
    homeroom_min_grade: int = 1
    homeroom_max_grade: int = 10
    homeroom_subject_rule: Literal["first_load", "anchor_subject"] = "first_load"
    homeroom_fallback_subject: str = "Class Teacher Period"

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        return _split_list(value)

    @field_validator("week_days", mode="before")
    @classmethod
    def split_week_days(cls, value: str | list[str]) -> list[str]:
        days = [day.strip().capitalize() for day in _split_list(value)]
        if not days:
            raise ValueError("week_days must name at least one day")
        return days

    @field_validator("homeroom_max_grade")
    @classmethod
    def validate_grade_range(cls, value: int, info) -> int:
        minimum = info.data.get("homeroom_min_grade", 1)
        if value < minimum:
            raise ValueError("homeroom_max_grade must not be below homeroom_min_grade")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
