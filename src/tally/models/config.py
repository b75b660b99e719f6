"""Configuration models for tally.

Captures tally.yaml fields with the defaults every store falls back to.
Keys are snake_case in YAML; unknown keys are rejected.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from tally.exceptions import ConfigError

CONFIG_FILE_NAMES = ("tally.yaml", "tally.yml")

StorageBackendName = Literal["local", "s2", "redis"]


class S2Config(BaseModel):
    """Credentials for the S2 stream store."""

    model_config = {"extra": "forbid"}

    basin: str
    access_token: str


class RedisConfig(BaseModel):
    """Connection settings for the Redis stream backend.

    ``stream_max_len`` caps each stream with an approximate MAXLEN trim.
    """

    model_config = {"extra": "forbid"}

    url: str
    key_prefix: str = "tally:"
    stream_max_len: int | None = Field(default=None, ge=1)


class StorageConfig(BaseModel):
    model_config = {"extra": "forbid"}

    backend: StorageBackendName = "local"
    path: str = ".tally"
    auto_create: bool = True
    s2: S2Config | None = None
    redis: RedisConfig | None = None


class DefaultsConfig(BaseModel):
    """Model defaults handed to evaluators and trajectory runners."""

    model_config = {"extra": "forbid"}

    model: str | None = None
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_retries: int = Field(default=3, ge=0)


class LoopDetectionConfig(BaseModel):
    model_config = {"extra": "forbid"}

    max_consecutive_same_step: int = Field(default=3, ge=1)


class TrajectoriesConfig(BaseModel):
    model_config = {"extra": "forbid"}

    max_turns: int = Field(default=10, ge=1)
    generate_logs: bool = False
    loop_detection: LoopDetectionConfig = Field(default_factory=LoopDetectionConfig)


class EvaluationConfig(BaseModel):
    """Evaluation concurrency and per-eval timeout in milliseconds."""

    model_config = {"extra": "forbid"}

    parallelism: int = Field(default=5, ge=1)
    timeout: int = Field(default=30000, ge=0)


class TallyConfig(BaseModel):
    """Fully resolved tally configuration."""

    model_config = {"extra": "forbid"}

    storage: StorageConfig = Field(default_factory=StorageConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    trajectories: TrajectoriesConfig = Field(default_factory=TrajectoriesConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)


def find_config_file(start: Path | None = None) -> Path | None:
    """Walk up from start (default: cwd) looking for tally.yaml or tally.yml.

    Args:
        start: Starting path (file or directory). Defaults to cwd.

    Returns:
        Path to the first config file found, or None if none exists
        between start and the filesystem root.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while True:
        for name in CONFIG_FILE_NAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Read a YAML config file into a raw mapping.

    Args:
        config_path: Path to tally.yaml.

    Returns:
        The parsed mapping; an empty file yields an empty dict.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    import yaml

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a mapping, got {type(raw).__name__}"
        )
    return raw


def validate_config(raw: dict[str, Any]) -> TallyConfig:
    """Validate a raw mapping into a TallyConfig.

    Raises:
        ConfigError: With the aggregated pydantic message.
    """
    try:
        return TallyConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
