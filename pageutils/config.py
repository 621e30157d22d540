"""Configuration for pageutils.

Values come from environment variables, with an optional YAML file
(``PAGEUTILS_CONFIG``) supplying anything the environment leaves unset.
"""
import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass
class PageUtilsConfig:
    """Library configuration loaded from environment variables."""

    # Pagination defaults
    default_page: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_DEFAULT_PAGE", "1"))
    )
    default_page_size: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_PAGE_SIZE", "100"))
    )
    default_lay_limit: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_LAY_LIMIT", "10"))
    )

    # Hierarchy walk: "propagate" or "treat_as_empty"
    on_child_fetch_error: str = field(
        default_factory=lambda: os.environ.get(
            "PAGEUTILS_CHILD_FETCH_ERROR", "propagate"
        ).lower()
    )

    # Parameter signing
    param_secret: str = field(
        default_factory=lambda: os.environ.get("PAGEUTILS_PARAM_SECRET", "")
    )

    # PostgreSQL connection (primary)
    db_host: str = field(default_factory=lambda: os.environ.get("PAGEUTILS_DB_HOST", ""))
    db_port: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_DB_PORT", "5432"))
    )
    db_name: str = field(default_factory=lambda: os.environ.get("PAGEUTILS_DB_NAME", ""))
    db_user: str = field(default_factory=lambda: os.environ.get("PAGEUTILS_DB_USER", ""))
    db_password: str = field(
        default_factory=lambda: os.environ.get("PAGEUTILS_DB_PASSWORD", "")
    )
    connect_timeout_seconds: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_CONNECT_TIMEOUT", "30"))
    )

    # Read replica
    replica_host: str = field(
        default_factory=lambda: os.environ.get("PAGEUTILS_REPLICA_HOST", "")
    )
    replica_port: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_REPLICA_PORT", "5432"))
    )

    # Pool settings
    pool_min_size: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_POOL_MIN", "1"))
    )
    pool_max_size: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_POOL_MAX", "10"))
    )
    pool_max_lifetime: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_POOL_MAX_LIFETIME", "3600"))
    )
    pool_max_idle: int = field(
        default_factory=lambda: int(os.environ.get("PAGEUTILS_POOL_MAX_IDLE", "600"))
    )


# Env var backing each field, used to decide whether YAML may override it.
ENV_VARS: dict[str, str] = {
    "default_page": "PAGEUTILS_DEFAULT_PAGE",
    "default_page_size": "PAGEUTILS_PAGE_SIZE",
    "default_lay_limit": "PAGEUTILS_LAY_LIMIT",
    "on_child_fetch_error": "PAGEUTILS_CHILD_FETCH_ERROR",
    "param_secret": "PAGEUTILS_PARAM_SECRET",
    "db_host": "PAGEUTILS_DB_HOST",
    "db_port": "PAGEUTILS_DB_PORT",
    "db_name": "PAGEUTILS_DB_NAME",
    "db_user": "PAGEUTILS_DB_USER",
    "db_password": "PAGEUTILS_DB_PASSWORD",
    "connect_timeout_seconds": "PAGEUTILS_CONNECT_TIMEOUT",
    "replica_host": "PAGEUTILS_REPLICA_HOST",
    "replica_port": "PAGEUTILS_REPLICA_PORT",
    "pool_min_size": "PAGEUTILS_POOL_MIN",
    "pool_max_size": "PAGEUTILS_POOL_MAX",
    "pool_max_lifetime": "PAGEUTILS_POOL_MAX_LIFETIME",
    "pool_max_idle": "PAGEUTILS_POOL_MAX_IDLE",
}


def _load_yaml_config(path: str) -> dict:
    """Load config overrides from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Config file not found: {path}")
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def load_config(path: str = None) -> PageUtilsConfig:
    """Build a config from env vars, filling unset values from YAML.

    Env vars take precedence over YAML for all settings. Unknown YAML
    keys are ignored with a warning.
    """
    cfg = PageUtilsConfig()
    yaml_path = path or os.environ.get("PAGEUTILS_CONFIG", "")
    if not yaml_path:
        return cfg

    yaml_data = _load_yaml_config(yaml_path)
    known = {f.name: f for f in fields(PageUtilsConfig)}
    for key, value in yaml_data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        if os.environ.get(ENV_VARS[key]):
            continue
        current = getattr(cfg, key)
        setattr(cfg, key, type(current)(value))
    cfg.on_child_fetch_error = cfg.on_child_fetch_error.lower()
    return cfg


config = load_config()
