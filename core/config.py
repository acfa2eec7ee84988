"""Runtime settings for DepMend."""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ValidationError

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".depmend.json"
DEFAULT_REGISTRY = "https://registry.npmjs.org"


class Settings(BaseModel):
    """Settings shared by the analyzer, fixer, sandbox and apply engine."""

    registry_url: str = DEFAULT_REGISTRY
    registry_timeout: float = 5.0
    max_concurrency: int = 6
    command_timeout: float = 300.0
    npm_executable: str = "npm"
    test_command: str | None = None
    backup_suffix: str = ".depmend.backup"
    deprecation_source: Literal["registry", "npm"] = "registry"


def load_settings(project_root: str | Path | None = None, **overrides) -> Settings:
    """Load settings from ``.depmend.json`` with explicit overrides on top.

    Overrides set to None are ignored so CLI options can be passed through
    unconditionally.

    Raises:
        ConfigError: if the file exists but is not valid
    """
    data: dict = {}
    if project_root is not None:
        path = Path(project_root) / CONFIG_FILENAME
        if path.is_file():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Could not read {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{path} must contain a JSON object")
            logger.debug("Loaded settings from %s", path)

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
