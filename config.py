import os
import yaml

from settings_schema import SettingsSchema, validate_settings

APP_VERSION = "1.0.0"

ENV_OVERRIDES = {
    "PROGRESS_DB_PATH": "db_path",
    "PROGRESS_LOG_FORMAT": "log_format",
    "PROGRESS_LOG_LEVEL": "log_level",
}


class YamlConfig:
    """Load and save settings to a YAML file."""

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        return data

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)


def load_settings(yaml_path: str | None = "settings.yaml") -> SettingsSchema:
    """Return validated settings from YAML with environment overrides applied."""
    data = YamlConfig(yaml_path).load() if yaml_path else {}
    for env_key, setting in ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value:
            data[setting] = value
    return validate_settings(data)
