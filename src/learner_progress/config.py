"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from learner_progress.engine.classifier import ClassifierThresholds
from learner_progress.engine.clock import get_zone
from learner_progress.errors import InvalidInput


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'streak' in data:
            streak = data['streak']
            flattened['timezone'] = streak.get('timezone')
            flattened['streak_history_limit'] = streak.get('history_limit')
            flattened['streak_status_window'] = streak.get('status_window')
            flattened['backdated_checkin'] = streak.get('backdated_checkin')
        if 'xp' in data:
            flattened['lesson_xp'] = data['xp'].get('lesson_xp')
            flattened['game_xp_divisor'] = data['xp'].get('game_xp_divisor')
            flattened['leaderboard_limit'] = data['xp'].get('leaderboard_limit')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Authentication (optional: None disables auth)
    app_secret: str | None = Field(default=None)
    allowed_origins: str = Field(default="http://localhost:8000,http://127.0.0.1:8000")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Streak
    timezone: str = Field(default="UTC", description="IANA zone that defines day boundaries")
    streak_history_limit: int = Field(default=30, ge=1)
    streak_status_window: int = Field(default=7, ge=1)
    backdated_checkin: Literal["reject", "ignore", "reset"] = Field(default="reject")

    # XP
    lesson_xp: int = Field(default=10, ge=0)
    game_xp_divisor: int = Field(default=10, ge=1)
    leaderboard_limit: int = Field(default=50, ge=1)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)
    data_dir: Path | None = Field(default=None)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            get_zone(value)
        except InvalidInput as e:
            raise ValueError(e.message) from e
        return value

    @property
    def storage_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


def load_classifier_thresholds(path: Path | None = None) -> ClassifierThresholds:
    """Load learner classifier thresholds from YAML file."""
    thresholds_path = path or _find_project_root() / "config" / "classifier.yaml"
    if not thresholds_path.exists():
        raise FileNotFoundError(f"Classifier config not found: {thresholds_path}")
    with open(thresholds_path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return ClassifierThresholds(**data.get('classifier', {}))
