"""
Payroll Engine Configuration Schema.

Defines the structure and defaults of the salary calculation settings.
Actual values are loaded from a YAML file at runtime (see
``payroll_config.loader``); every field has a usable default so an
installation without a config file still calculates.
"""

from dataclasses import asdict, dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Self

from payroll_kernel.logging_config import get_logger

logger = get_logger("config.schema")

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_DECIMAL_FIELDS = ("standard_working_days", "money_quantum")


def _to_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


@dataclass(frozen=True)
class PayrollEngineConfig:
    """
    Configuration schema for the salary calculation engine.

        config = PayrollEngineConfig(
            standard_working_days=Decimal("22"),
            allow_negative_net_pay=False,
        )
    """

    # Daily salary = gross earnings / standard_working_days
    standard_working_days: Decimal = Decimal("21.75")

    # Negative net pay is always flagged; False also clamps it to zero
    allow_negative_net_pay: bool = True

    # Rounding quantum for every monetary amount (ROUND_HALF_UP)
    money_quantum: Decimal = Decimal("0.01")

    # Batch runs: 1 = sequential
    batch_max_workers: int = 1

    # Storage
    database_url: str | None = None

    log_level: str = "INFO"

    def __post_init__(self):
        if self.standard_working_days <= 0:
            raise ValueError("standard_working_days must be positive")
        if self.standard_working_days > 31:
            raise ValueError("standard_working_days cannot exceed 31")
        if self.money_quantum <= 0:
            raise ValueError("money_quantum must be positive")
        if not isinstance(self.batch_max_workers, int) or isinstance(self.batch_max_workers, bool):
            raise ValueError("batch_max_workers must be an integer")
        if self.batch_max_workers < 1:
            raise ValueError("batch_max_workers must be at least 1")
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got '{self.log_level}'"
            )

        logger.debug(
            "payroll_engine_config_initialized",
            extra={
                "standard_working_days": str(self.standard_working_days),
                "allow_negative_net_pay": self.allow_negative_net_pay,
                "money_quantum": str(self.money_quantum),
                "batch_max_workers": self.batch_max_workers,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the built-in defaults."""
        logger.info("payroll_engine_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g., parsed YAML).

        Raises:
            ValueError: On unknown keys or values that fail validation.
        """
        logger.info(
            "payroll_engine_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown payroll configuration keys: {unknown}")

        values = dict(data)
        for name in _DECIMAL_FIELDS:
            if name in values:
                values[name] = _to_decimal(name, values[name])
        if "log_level" in values and isinstance(values["log_level"], str):
            values["log_level"] = values["log_level"].upper()
        return cls(**values)

    def as_dict(self) -> dict[str, Any]:
        """Plain-dict view, Decimals rendered as strings."""
        data = asdict(self)
        for name in _DECIMAL_FIELDS:
            data[name] = str(data[name])
        return data
