#!/usr/bin/env python3

import os
import re
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("shellpm")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. SHELLPM_CONFIG environment variable
    2. ~/.shellpm/config.{json,toml,yaml,yml}
    """
    if 'SHELLPM_CONFIG' in os.environ:
        return Path(os.environ['SHELLPM_CONFIG']).expanduser()

    shellpm_dir = Path.home() / '.shellpm'
    for filename in CONFIG_FILENAMES:
        path = shellpm_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return shellpm_dir / 'config.json'


def load_config(path=None):
    """Load configuration from file, defaults and environment overrides."""
    config_path = Path(path) if path else get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            if config_path.suffix.lower() == '.toml':
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                with open(config_path, 'r') as f:
                    file_config = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e

        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        config = merge_configs(config, file_config)

    config = apply_env_overrides(config)

    return config


def get_default_config():
    """Get default configuration."""
    return {
        "general": {
            "root_dir": "~/.shellpm",
            # name -> git URL, registered by `shellpm init`
            "default_repositories": {},
        },
        "git": {
            "timeout_seconds": None,
        },
        "hooks": {
            "script": "package.sh",
            "shell": "bash",
            "capture_output": True,
            "inherit_env": [
                "PATH", "HOME", "USER", "LOGNAME", "SHELL", "TERM",
                "LANG", "LC_ALL", "LC_CTYPE", "TMPDIR", "XDG_CONFIG_HOME",
                "XDG_DATA_HOME", "XDG_CACHE_HOME",
            ],
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def get_root_dir(config) -> Path:
    """Root configuration directory holding repositories and state."""
    return Path(config.get("general", {}).get("root_dir") or "~/.shellpm").expanduser()


def configure_logging(config, verbose: bool = False) -> None:
    """Apply the logging section (or --verbose) to the shellpm logger."""
    section = config.get("logging", {})
    level_name = "DEBUG" if verbose else str(section.get("level", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level: {level_name}")
    logger.setLevel(level)

    fmt = section.get("format")
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt))


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
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: SHELLPM_SECTION_KEY
    For example: SHELLPM_HOOKS_CAPTURE_OUTPUT=false
    List values are split on ":" or ",".
    """
    env_prefix = "SHELLPM_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Longest config key matching the remaining parts wins
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                if isinstance(current_level[matched_key], list):
                    # PATH-style list: SHELLPM_HOOKS_INHERIT_ENV=PATH:HOME or PATH,HOME
                    current_level[matched_key] = [part for part in re.split(r'[:,]', value) if part]
                else:
                    current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                break

    return config
