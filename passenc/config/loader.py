import logging
from pathlib import Path
from typing import Optional
import yaml
from pydantic import ValidationError
from passenc.config.models import AppConfig
from passenc.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Loads YAML configuration; a missing file yields the defaults."""
    if config_path is None or not Path(config_path).exists():
        if config_path is not None:
            logger.warning(f"Config file not found at {config_path}, using defaults.")
        return AppConfig()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root in {config_path} must be a mapping")

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e
