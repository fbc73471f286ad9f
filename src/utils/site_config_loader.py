"""Utility to load the site configuration from YAML file"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.models.site_config import RefreshMode, SiteConfig

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the site configuration is missing or invalid"""

    pass


def load_site_config(
    config_path: str | Path = "_config.yml", refresh_override: RefreshMode | str | None = None
) -> SiteConfig:
    """
    Load the site configuration from YAML file

    Args:
        config_path: Path to the site's _config.yml
        refresh_override: refresh_remote_data to use instead of the file's value
            (a RefreshMode or its string value; empty means no override)

    Returns:
        SiteConfig object

    Raises:
        ConfigurationError: If the file is missing or invalid, including an
            unknown refresh_remote_data value
    """
    config_path = Path(config_path)
    refresh_override = _parse_refresh_override(refresh_override)

    if not config_path.exists():
        raise ConfigurationError(f"Site configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in site configuration: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Site configuration must be a mapping: {config_path}")

    # An explicit null means the default, like an absent key
    if data.get("refresh_remote_data") is None:
        data.pop("refresh_remote_data", None)

    try:
        site_config = SiteConfig(**data)
    except ValidationError as e:
        if any(error["loc"][:1] == ("refresh_remote_data",) for error in e.errors()):
            raise ConfigurationError(
                f"Invalid refresh_remote_data value in {config_path}: "
                f"{data.get('refresh_remote_data')!r} "
                f"(expected one of: {', '.join(mode.value for mode in RefreshMode)})"
            ) from e
        raise ConfigurationError(f"Invalid site configuration: {e}") from e

    if refresh_override is not None and refresh_override != site_config.refresh_remote_data:
        logger.info(
            f"Overriding refresh_remote_data from env: {refresh_override.value} "
            f"(was: {site_config.refresh_remote_data.value})"
        )
        site_config.refresh_remote_data = refresh_override

    logger.info(f"Loaded site configuration from {config_path}")
    logger.info(f"  Hub site: {site_config.is_hub}")
    logger.info(f"  Refresh remote data: {site_config.refresh_remote_data.value}")

    return site_config


def _parse_refresh_override(value: RefreshMode | str | None) -> RefreshMode | None:
    if not value:
        return None
    try:
        return RefreshMode(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid refresh_remote_data override: {value!r} "
            f"(expected one of: {', '.join(mode.value for mode in RefreshMode)})"
        ) from e
