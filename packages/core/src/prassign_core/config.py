import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "store": "sqlite",
    "store_path": ".prassign.db",
    "busy_timeout": 5.0,  # seconds a writer waits for the SQLite lock
    "max_reviewers": 2,
    "log_level": "WARNING",
}

STORE_CHOICES = ("sqlite",)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable → config key. Applied last, so they win over the file.
_ENV_OVERRIDES = {
    "PRASSIGN_STORE_PATH": "store_path",
    "PRASSIGN_LOG_LEVEL": "log_level",
}


def load_config(config_path: str = ".prassign.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prassign.yml in the current directory
      3. CLI argument overrides
      4. PRASSIGN_* environment variables
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    return config


def validate_config(config: dict) -> None:
    """Raise ValueError if the merged config cannot be used to build a store and engine."""
    store = config.get("store")
    if store not in STORE_CHOICES:
        raise ValueError(f"Unknown store {store!r}. Choose one of: {', '.join(STORE_CHOICES)}.")

    max_reviewers = config.get("max_reviewers")
    # bool is an int subclass; YAML `true` must not pass as 1.
    if not isinstance(max_reviewers, int) or isinstance(max_reviewers, bool):
        raise ValueError(f"max_reviewers must be an integer, got {max_reviewers!r}")
    if not 0 <= max_reviewers <= 2:
        raise ValueError(f"max_reviewers must be between 0 and 2, got {max_reviewers}")

    try:
        float(config.get("busy_timeout"))
    except (TypeError, ValueError):
        raise ValueError(f"busy_timeout must be a number of seconds, got {config.get('busy_timeout')!r}")

    level = str(config.get("log_level", "")).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {config.get('log_level')!r}")
