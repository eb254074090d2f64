"""
XDG Configuration Management

Reads the cloudops settings file from XDG-compliant storage:
- Base settings:    $XDG_CONFIG_HOME/cloudops/config.json
- Profile settings: $XDG_CONFIG_HOME/cloudops/profiles/<name>/config.json

Profile settings are deep-merged over the base settings, then environment
variable overrides are applied, and the result is validated against the
pydantic Settings model.

Usage:
    from cloudops.xdg_config import XDGConfig

    settings = XDGConfig(profile="prod").load_settings()

Module: xdg_config
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError

from .config_schema import Settings

logger = structlog.get_logger(__name__)

CONFIG_FILE_NAME = "config.json"
DEFAULT_PROFILE = "default"

# Environment variable -> dotted settings path
ENV_OVERRIDES = {
    "CLOUDOPS_CACHE_DIR": "assumeRole.cacheDir",
    "CLOUDOPS_LOG_LEVEL": "logLevel",
    "CLOUDOPS_LOG_FORMAT": "logFormat",
}


class ConfigError(Exception):
    """Raised when the settings file cannot be read or is invalid."""


class XDGConfig:
    """
    XDG Configuration Manager

    Supports multiple named profiles (e.g., "default", "dev", "prod").
    """

    def __init__(self, base_dir: Optional[Path] = None, profile: Optional[str] = None):
        """
        Initialize XDG Configuration Manager

        Args:
            base_dir: Base configuration directory (defaults to $XDG_CONFIG_HOME/cloudops)
            profile: Profile name to use (defaults to $CLOUDOPS_PROFILE or "default")
        """
        self.base_dir = base_dir or self._get_default_base_dir()
        self.profile = profile or os.getenv("CLOUDOPS_PROFILE") or DEFAULT_PROFILE

    @staticmethod
    def _get_default_base_dir() -> Path:
        """
        Gets the default XDG base directory

        Returns:
            Path to $XDG_CONFIG_HOME/cloudops (~/.config/cloudops)
        """
        xdg_home = os.getenv("XDG_CONFIG_HOME")
        root = Path(xdg_home) if xdg_home else Path.home() / ".config"
        return root / "cloudops"

    def get_config_path(self, profile_name: Optional[str] = None) -> Path:
        """
        Gets the settings file path for a profile

        Args:
            profile_name: Profile name (defaults to instance profile)

        Returns:
            Absolute path to the settings file
        """
        profile = profile_name or self.profile
        if profile == DEFAULT_PROFILE:
            return self.base_dir / CONFIG_FILE_NAME
        return self.base_dir / "profiles" / profile / CONFIG_FILE_NAME

    def list_profiles(self) -> list[str]:
        """
        Lists all available profiles

        Returns:
            List of profile names
        """
        profiles = [DEFAULT_PROFILE]

        profiles_dir = self.base_dir / "profiles"
        if profiles_dir.exists():
            profiles.extend(sorted(d.name for d in profiles_dir.iterdir() if d.is_dir()))

        return profiles

    def read_config(self, profile_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Reads and parses a settings file

        Args:
            profile_name: Profile name (defaults to instance profile)

        Returns:
            Parsed settings dictionary, or None if the file doesn't exist

        Raises:
            ConfigError: If the file is unreadable or not a JSON object
        """
        config_path = self.get_config_path(profile_name)

        if not config_path.exists():
            return None

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file: {config_path}. {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {config_path}. {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"Configuration file must contain a JSON object: {config_path}")

        return config

    def write_config(self, config: Dict[str, Any], profile_name: Optional[str] = None) -> Path:
        """
        Writes a settings file, creating parent directories as needed

        Returns:
            Path of the written file
        """
        config_path = self.get_config_path(profile_name)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
        return config_path

    def load_complete_config(self, profile_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Loads base settings and merges the profile settings over them

        Missing files are treated as empty.

        Args:
            profile_name: Profile name (defaults to instance profile)

        Returns:
            Merged settings dictionary (before environment overrides)
        """
        profile = profile_name or self.profile

        merged = self.read_config(DEFAULT_PROFILE) or {}
        if profile != DEFAULT_PROFILE:
            profile_config = self.read_config(profile)
            if profile_config is None:
                logger.debug("Profile settings not found", profile=profile)
            else:
                merged = self._deep_merge(merged, profile_config)

        return merged

    def load_settings(self, profile_name: Optional[str] = None) -> Settings:
        """
        Loads, merges, applies environment overrides and validates settings

        Raises:
            ConfigError: If the merged settings fail validation
        """
        data = self._apply_env_overrides(self.load_complete_config(profile_name))
        try:
            return Settings.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration ({self.get_config_path(profile_name)}):\n{e}") from e

    @staticmethod
    def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
        result = config
        for env_var, dotted_key in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                result = XDGConfig._deep_merge(result, _nest(dotted_key, value))
        return result

    @staticmethod
    def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge two dictionaries

        Args:
            base: Base dictionary
            override: Override dictionary

        Returns:
            Merged dictionary
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = XDGConfig._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def _nest(dotted_key: str, value: Any) -> Dict[str, Any]:
    """Turn ("a.b", 1) into {"a": {"b": 1}}"""
    nested: Dict[str, Any] = {}
    current = nested
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value
    return nested


def load_settings(profile: Optional[str] = None) -> Settings:
    """
    Convenience function to load validated settings

    Args:
        profile: Profile name

    Returns:
        Validated Settings
    """
    return XDGConfig(profile=profile).load_settings()
