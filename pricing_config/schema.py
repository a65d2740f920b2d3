"""
Pricing Configuration Schema.

Defines the structure and sensible defaults for order pricing settings.
Actual values are loaded from company configuration at runtime.
"""

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Self

from pricing_kernel.logging_config import get_logger

logger = get_logger("config.schema")

_DECIMAL_FIELDS = ("default_vat_rate", "rate_tolerance")


@dataclass(frozen=True)
class PricingConfig:
    """
    Configuration schema for contract pricing and order totals.

    Field defaults represent the original deployment (Omani rial, 5% VAT).
    Override at instantiation with company-specific values:

        config = PricingConfig(
            default_vat_rate=Decimal("15"),
            override_approver_roles=("manager", "finance_controller"),
        )
    """

    # Display
    currency_code: str = "OMR"
    display_places: int = 3

    # Totals
    default_vat_rate: Decimal = Decimal("5")

    # Override governance
    rate_tolerance: Decimal = Decimal("0.001")
    min_override_reason_length: int = 10
    override_approver_roles: tuple[str, ...] = ("manager",)

    # Audit persistence
    database_url: str = "sqlite://"

    def __post_init__(self):
        if self.display_places < 0:
            raise ValueError(f"display_places cannot be negative: {self.display_places}")
        if self.default_vat_rate < Decimal("0"):
            raise ValueError(f"default_vat_rate cannot be negative: {self.default_vat_rate}")
        if self.rate_tolerance < Decimal("0"):
            raise ValueError(f"rate_tolerance cannot be negative: {self.rate_tolerance}")
        if self.min_override_reason_length < 1:
            raise ValueError(
                "min_override_reason_length must be at least 1, "
                f"got {self.min_override_reason_length}"
            )
        if not self.override_approver_roles:
            raise ValueError("override_approver_roles cannot be empty")
        logger.info(
            "pricing_config_initialized",
            extra={
                "currency_code": self.currency_code,
                "default_vat_rate": str(self.default_vat_rate),
                "rate_tolerance": str(self.rate_tolerance),
                "min_override_reason_length": self.min_override_reason_length,
                "override_approver_roles": list(self.override_approver_roles),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard defaults."""
        logger.info("pricing_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary (e.g., loaded from a YAML file)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown pricing config keys: {', '.join(unknown)}")

        logger.info(
            "pricing_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        values = dict(data)
        for name in _DECIMAL_FIELDS:
            if name in values:
                values[name] = Decimal(str(values[name]))
        if "override_approver_roles" in values:
            roles = values["override_approver_roles"]
            if isinstance(roles, str):
                roles = (roles,)
            values["override_approver_roles"] = tuple(roles)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view, the inverse of ``from_dict``."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, tuple):
                value = list(value)
            result[f.name] = value
        return result
