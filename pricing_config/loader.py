"""
Configuration Loader (``pricing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses its ``pricing:`` section into a
``PricingConfig``.  Also computes a deterministic checksum so an auditor can
verify which configuration was active when an override was approved.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``pricing`` section or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from pricing_config.schema import PricingConfig
from pricing_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if data is not None else {}


def parse_pricing_config(data: dict[str, Any]) -> PricingConfig:
    """Parse the ``pricing:`` section of an already-loaded document."""
    section = data.get("pricing")
    if section is None:
        raise ValueError("Configuration has no 'pricing' section")
    if not isinstance(section, dict):
        raise ValueError("'pricing' section must be a mapping")
    return PricingConfig.from_dict(section)


def load_pricing_config(path: Path | str) -> PricingConfig:
    """Load and parse a pricing configuration file."""
    path = Path(path)
    config = parse_pricing_config(load_yaml_file(path))
    logger.info(
        "pricing_config_loaded",
        extra={"path": str(path), "checksum": compute_checksum(config)},
    )
    return config


def compute_checksum(config: PricingConfig) -> str:
    """Deterministic SHA-256 of the canonical JSON form of ``config``."""
    canonical = json.dumps(config.to_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
