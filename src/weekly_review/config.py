from __future__ import annotations

import logging
import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "WEEKLY_REVIEW_SETTINGS"
DEFAULT_SETTINGS_PATH = Path("weekly_review.yaml")
# About a century; keeps the cutoff date representable.
MAX_LOOKBACK_DAYS = 36500


class TimestampField(str, Enum):
    CREATION = "creation"
    MODIFICATION = "modification"


class OpenTarget(str, Enum):
    CURRENT_TAB_GROUP = "current-tab-group"
    NEW_SPLIT = "new-split"


class SettingError(ValueError):
    """Raised when a user-edited setting does not validate."""


class ReviewConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    vault_dir: Path = Field(default=Path("."))
    lookback_days: int = Field(default=7, ge=1, le=MAX_LOOKBACK_DAYS)
    timestamp_field: TimestampField = Field(default=TimestampField.CREATION)
    open_target: OpenTarget = Field(default=OpenTarget.CURRENT_TAB_GROUP)
    extensions: List[str] = Field(default_factory=lambda: [".md"])
    # Command templates for the external viewer; "{path}" is substituted.
    open_command: Optional[List[str]] = None
    split_command: Optional[List[str]] = None

    @field_validator("extensions")
    @classmethod
    def _normalise_extensions(cls, v: List[str]) -> List[str]:
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v if e]

    @property
    def vault_dir_resolved(self) -> Path:
        return self.vault_dir.expanduser().resolve()


class ReviewState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    last_review_at: Optional[datetime] = None

    @field_validator("last_review_at")
    @classmethod
    def _as_local_naive(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Document timestamps are naive local times; keep the marker comparable.
        if v is not None and v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v

    def mark_reviewed(self, now: Optional[datetime] = None) -> datetime:
        """Record a completed review. The marker never moves backwards."""
        if now is None:
            now = datetime.now()
        if self.last_review_at is None or now > self.last_review_at:
            self.last_review_at = now
        return self.last_review_at


def default_settings_path() -> Path:
    load_dotenv()
    env_path = os.getenv(SETTINGS_ENV_VAR)
    return Path(env_path) if env_path else DEFAULT_SETTINGS_PATH


class SettingsStore:
    """
    Flat YAML file holding both the review config and the review state.

    Keys missing from the file fall back to defaults and unknown keys are
    ignored, so older settings files keep loading.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()

    def load(self) -> Tuple[ReviewConfig, ReviewState]:
        if not self.path.exists():
            logger.debug("No settings file at %s, using defaults", self.path)
            return ReviewConfig(), ReviewState()

        with self.path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise SystemExit(f"Invalid settings in {self.path}: expected a mapping of keys to values")

        try:
            config = ReviewConfig(**_pick(raw, ReviewConfig))
            state = ReviewState(**_pick(raw, ReviewState))
        except ValidationError as e:
            raise SystemExit(f"Invalid settings in {self.path}:\n{e}") from e
        return config, state

    def save(self, config: ReviewConfig, state: ReviewState) -> None:
        data = {**config.model_dump(mode="json"), **state.model_dump(mode="json")}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        logger.debug("Saved settings to %s", self.path)

    def saver(self, config: ReviewConfig, state: ReviewState) -> Callable[[], None]:
        """Persistence callback bound to the in-memory config and state."""

        def persist() -> None:
            self.save(config, state)

        return persist


def _pick(raw: Dict[str, object], model: type[BaseModel]) -> Dict[str, object]:
    return {k: v for k, v in raw.items() if k in model.model_fields}


# User-facing setting names, as shown in `weekly-review settings`.
SETTING_FIELDS: Dict[str, str] = {
    "lookback-days": "lookback_days",
    "mode": "timestamp_field",
    "open-target": "open_target",
    "vault": "vault_dir",
}


def parse_lookback_days(raw: str) -> int:
    text = raw.strip()
    try:
        days = int(text)
    except ValueError:
        raise SettingError(f"Lookback days must be a whole number, got {raw!r}") from None
    if days < 1:
        raise SettingError(f"Lookback days must be at least 1, got {days}")
    if days > MAX_LOOKBACK_DAYS:
        raise SettingError(f"Lookback days must be at most {MAX_LOOKBACK_DAYS}, got {days}")
    return days


def update_setting(config: ReviewConfig, name: str, raw_value: str) -> ReviewConfig:
    """
    Validate and apply one edited setting to `config` in place.

    Nothing is changed when the value is rejected.
    """
    field = SETTING_FIELDS.get(name)
    if field is None:
        choices = ", ".join(sorted(SETTING_FIELDS))
        raise SettingError(f"Unknown setting {name!r} (choose from {choices})")

    value: object
    if field == "lookback_days":
        value = parse_lookback_days(raw_value)
    else:
        value = raw_value.strip()
        if not value:
            raise SettingError(f"A value is required for {name}")

    try:
        setattr(config, field, value)
    except ValidationError as e:
        raise SettingError(f"Invalid value for {name}: {raw_value!r}") from e
    return config


__all__ = [
    "MAX_LOOKBACK_DAYS",
    "OpenTarget",
    "ReviewConfig",
    "ReviewState",
    "SettingError",
    "SettingsStore",
    "TimestampField",
    "default_settings_path",
    "update_setting",
]
