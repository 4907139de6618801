"""
gym_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way application code obtains the
    billing tax configuration.  The file is taken from the ``GYMDESK_CONFIG``
    environment variable when set, otherwise the packaged
    ``defaults.yaml``.  The parsed config is cached until
    ``reset_active_config()``.

Audit relevance:
    Every load emits a ``GYM_CONFIG_TRACE`` record carrying the source path
    and the SHA-256 checksum of the parsed document.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from gym_config.loader import compute_checksum, load_config, load_yaml, parse_tax_config
from gym_kernel.logging_config import get_logger
from gym_modules.tax.config import TaxConfig

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "compute_checksum",
    "get_active_config",
    "load_config",
    "load_yaml",
    "parse_tax_config",
    "reset_active_config",
]

_logger = get_logger("config")

CONFIG_ENV_VAR = "GYMDESK_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

_active: TaxConfig | None = None
_lock = threading.Lock()


def get_active_config(config_path: Path | str | None = None) -> TaxConfig:
    """
    Return the active ``TaxConfig``.

    An explicit ``config_path`` always reloads and replaces the cached
    config.  Otherwise the cached config is returned, loading it from
    ``$GYMDESK_CONFIG`` or the packaged defaults on first use.
    """
    global _active
    with _lock:
        if _active is not None and config_path is None:
            return _active

        path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
        config, checksum = load_config(path)
        _active = config

        _logger.info(
            "GYM_CONFIG_TRACE",
            extra={
                "trace_type": "GYM_CONFIG_TRACE",
                "path": str(path),
                "checksum": checksum,
                "currency_code": config.currency_code,
            },
        )
        return config


def reset_active_config() -> None:
    """Drop the cached config.  FOR TESTING and config reloads."""
    global _active
    with _lock:
        _active = None
