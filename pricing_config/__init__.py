"""
Pricing configuration (``pricing_config``).

Public surface:
    - ``PricingConfig``: frozen settings dataclass with defaults.
    - ``load_pricing_config(path)``: parse the ``pricing:`` section of a YAML file.
    - ``compute_checksum(config)``: deterministic identity of a configuration.
"""

from pricing_config.loader import compute_checksum, load_pricing_config
from pricing_config.schema import PricingConfig

__all__ = [
    "PricingConfig",
    "compute_checksum",
    "load_pricing_config",
]
