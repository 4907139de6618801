"""
Configuration Loader (``gym_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses its ``tax`` section into a
``TaxConfig``.  Runtime callers use ``gym_config.get_active_config()``;
this module is the parsing layer underneath it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML, a non-mapping document, unknown keys or invalid values
  -> ``ConfigurationError`` naming the file and the cause.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from gym_kernel.exceptions import ConfigurationError
from gym_kernel.logging_config import get_logger
from gym_modules.tax.config import TaxConfig

logger = get_logger("config.loader")


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file into a dict (empty file -> empty dict)."""
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"malformed YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level document must be a mapping")
    return data


def parse_tax_config(data: dict[str, Any], source: str = "<dict>") -> TaxConfig:
    """Build a ``TaxConfig`` from the ``tax`` section of a config document."""
    section = data.get("tax") or {}
    if not isinstance(section, dict):
        raise ConfigurationError(source, "'tax' section must be a mapping")
    try:
        return TaxConfig.from_dict(dict(section))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(source, str(exc)) from exc


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_config(path: Path | str) -> tuple[TaxConfig, str]:
    """Load and parse a configuration file.  Returns (config, checksum)."""
    path = Path(path)
    data = load_yaml(path)
    config = parse_tax_config(data, source=str(path))
    checksum = compute_checksum(data)
    logger.info("config_loaded", extra={"path": str(path), "checksum": checksum})
    return config, checksum
