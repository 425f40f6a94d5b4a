from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    db_path: str = "fitness_tracker.db"
    streak_lookback_days: int = Field(90, ge=1)
    stats_window_days: int = Field(30, ge=1)
    log_format: Literal["text", "json"] = "text"
    log_level: str = "INFO"
    rate_limit: Optional[int] = Field(None, ge=1)
    rate_window: int = Field(60, ge=1)


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
