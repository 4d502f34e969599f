#!/usr/bin/env python3

import os
import json
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import logging
import sys

import toml
import yaml

from .domain.modes import (
    BehaviorMode,
    ProtectionMode,
    DEFAULT_BEHAVIOR_MODE,
    DEFAULT_PROTECTION_MODE,
)
from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("tagguard")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']

# Features that can carry their own behavior/protection override
FEATURES = ('assign', 'protect')


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. TAGGUARD_CONFIG environment variable
    2. ~/.tagguard/ directory
    """
    # Check for environment variable override
    if 'TAGGUARD_CONFIG' in os.environ:
        path = Path(os.environ['TAGGUARD_CONFIG'])
        if path.exists():
            return path

    tagguard_dir = Path.home() / '.tagguard'
    for filename in CONFIG_FILENAMES:
        path = tagguard_dir / filename
        if path.exists() and path.stat().st_size > 2:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return tagguard_dir / 'config.json'


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config():
    """Load configuration from file.

    Defaults are merged with the user's config file, then
    TAGGUARD_* environment overrides are applied.

    Raises:
        ConfigError: if the config file exists but cannot be parsed
    """
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        # Merge file config with defaults
        config = merge_configs(config, file_config)

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def save_config(config, config_path: Optional[Path] = None):
    """Save configuration to file."""
    config_path = Path(config_path) if config_path else get_config_path()

    # Create directory if it doesn't exist
    config_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = config_path.suffix.lower()
    with open(config_path, 'w') as f:
        if suffix == '.toml':
            toml.dump(config, f)
        elif suffix in ('.yaml', '.yml'):
            yaml.safe_dump(config, f, default_flow_style=False)
        else:
            json.dump(config, f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def get_default_config():
    """Get default configuration."""
    return {
        "behavior": {
            # EXECUTE, DRY_RUN, PASS, FAIL, SKIP, TIMEOUT
            "mode": DEFAULT_BEHAVIOR_MODE.value,
            # Seconds TIMEOUT mode sleeps before reporting; set it above the
            # deadline enforced by the caller under test
            "timeout_delay_seconds": 30,
            "features": {feature: "" for feature in FEATURES},
        },
        "protection": {
            # ENFORCE, WARN, OFF
            "mode": DEFAULT_PROTECTION_MODE.value,
            "features": {feature: "" for feature in FEATURES},
            # Emergency admin bypass: ENFORCE violations are logged but allowed
            "allow_override": False,
        },
        "git": {
            "remote": "origin",
            "timeout_seconds": 60,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config, environ=None):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: TAGGUARD_SECTION_SUBSECTION_KEY
    For example: TAGGUARD_PROTECTION_MODE=WARN
    or TAGGUARD_BEHAVIOR_FEATURES_ASSIGN=DRY_RUN
    """
    env_prefix = "TAGGUARD_"
    environ = os.environ if environ is None else environ

    for env_key, value in environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'TAGGUARD_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        # 'on'/'off' stay strings: OFF is a protection mode
        if value.lower() in ('true', 'yes'):
            typed_value = True
        elif value.lower() in ('false', 'no'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config


def configure_logging(config=None, verbose: bool = False):
    """Apply the logging section of the config to the tagguard logger."""
    level_name = "DEBUG" if verbose else (config or {}).get("logging", {}).get("level", "INFO")
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logger.setLevel(level)


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1', 'on')
    return bool(value)


def _resolve_mode(section: Dict[str, Any], feature: Optional[str], override, default):
    """
    Resolve a mode: invocation override, then feature override,
    then the section's global value, then the fixed default.
    """
    candidates = [
        (override, "invocation override"),
        ((section.get("features") or {}).get(feature) if feature else None, f"feature override ({feature})"),
        (section.get("mode"), "global setting"),
    ]
    for value, source in candidates:
        if value:
            return value, source
    return default, "default"


@dataclass(frozen=True)
class GovernanceSettings:
    """
    Settings resolved once per invocation and passed to services.

    Replaces process-wide "current behavior" flags: every assignment
    or protection check receives its settings explicitly.
    """
    behavior_mode: BehaviorMode = DEFAULT_BEHAVIOR_MODE
    protection_mode: ProtectionMode = DEFAULT_PROTECTION_MODE
    timeout_delay: float = 30.0
    remote: str = "origin"
    git_timeout: int = 60
    allow_override: bool = False

    @classmethod
    def from_config(
        cls,
        config: Optional[Dict[str, Any]] = None,
        feature: Optional[str] = None,
        behavior: Optional[str] = None,
        protection: Optional[str] = None,
        allow_override: Optional[bool] = None,
    ) -> 'GovernanceSettings':
        """
        Resolve settings for one feature.

        Args:
            config: Configuration dict (loads default if None)
            feature: Feature name ("assign" or "protect")
            behavior: Invocation-specific BehaviorMode override
            protection: Invocation-specific ProtectionMode override
            allow_override: Invocation-specific protection override switch

        Raises:
            ConfigError: on an unknown mode name or bad delay
        """
        config = config if config is not None else load_config()

        behavior_section = config.get("behavior", {})
        protection_section = config.get("protection", {})

        behavior_value, behavior_source = _resolve_mode(
            behavior_section, feature, behavior, DEFAULT_BEHAVIOR_MODE.value
        )
        protection_value, protection_source = _resolve_mode(
            protection_section, feature, protection, DEFAULT_PROTECTION_MODE.value
        )

        behavior_mode = BehaviorMode.parse(behavior_value)
        protection_mode = ProtectionMode.parse(protection_value)
        logger.debug(f"Behavior mode: {behavior_mode.value} (from {behavior_source})")
        logger.debug(f"Protection mode: {protection_mode.value} (from {protection_source})")

        try:
            timeout_delay = float(behavior_section.get("timeout_delay_seconds", 30))
        except (TypeError, ValueError):
            raise ConfigError(
                f"behavior.timeout_delay_seconds must be a number, got "
                f"{behavior_section.get('timeout_delay_seconds')!r}"
            )
        if timeout_delay < 0:
            raise ConfigError("behavior.timeout_delay_seconds must not be negative")

        if allow_override is None:
            allow_override = protection_section.get("allow_override", False)
        allow_override = _as_bool(allow_override)
        if allow_override:
            logger.debug("Protection override is enabled")

        git_section = config.get("git", {})
        return cls(
            behavior_mode=behavior_mode,
            protection_mode=protection_mode,
            timeout_delay=timeout_delay,
            remote=git_section.get("remote", "origin") or "origin",
            git_timeout=int(git_section.get("timeout_seconds", 60) or 60),
            allow_override=allow_override,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'behavior_mode': self.behavior_mode.value,
            'protection_mode': self.protection_mode.value,
            'timeout_delay': self.timeout_delay,
            'remote': self.remote,
            'git_timeout': self.git_timeout,
            'allow_override': self.allow_override,
        }
