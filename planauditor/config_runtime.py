"""Runtime configuration for planauditor - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from planauditor.utils.constants import ENV_PREFIX
from planauditor.utils.logging import logger

DEFAULTS = {
    "paths": {
        "store_db": "./.pf/analyses.db",
        "export_dir": "./.pf/raw",
    },
    "analysis": {
        "frameworks": ["SOC2", "HIPAA", "GDPR"],
        "severity_threshold": "medium",
        "include_compliance": True,
        "include_security": True,
        "include_cost": True,
        "parallel": False,
        "tenant_id": "default-tenant",
        "user_id": "unknown-user",
    },
    "export": {
        "format": "json",
        "history_limit": 10,
    },
}

SECTIONS = tuple(DEFAULTS)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce(value: str, default: Any) -> Any:
    """Convert an environment string to the type of the default."""
    if isinstance(default, bool):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"expected one of {sorted(_TRUE_VALUES | _FALSE_VALUES)}")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, list):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .pf/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (PLANAUDITOR_<SECTION>_<KEY>)
    2. .pf/config.json file
    3. Built-in defaults

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / ".pf" / "config.json"
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in SECTIONS:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key in cfg[section] and isinstance(value, type(cfg[section][key])):
                                cfg[section][key] = value
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    cfg[section][key] = _coerce(value, cfg[section][key])
                except (ValueError, AttributeError) as e:
                    logger.warning(f"Invalid value for environment variable {env_var}: '{value}' - {e}")
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg
