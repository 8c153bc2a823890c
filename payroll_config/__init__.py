"""
payroll_config -- runtime configuration for the salary calculation engine.

``get_active_config()`` is the single entry point services use to obtain
settings.  Resolution order:

    1. the ``path`` argument
    2. the file named by the ``PAYROLL_ENGINE_CONFIG`` environment variable
    3. built-in defaults

A ``PAYROLL_CONFIG_TRACE`` log record carrying the settings checksum is
emitted on every call.
"""

from __future__ import annotations

import os
from pathlib import Path

from payroll_config.loader import compute_checksum, load_config_file
from payroll_config.schema import PayrollEngineConfig
from payroll_kernel.logging_config import get_logger

__all__ = [
    "CONFIG_ENV_VAR",
    "PayrollEngineConfig",
    "config_checksum",
    "get_active_config",
]

CONFIG_ENV_VAR = "PAYROLL_ENGINE_CONFIG"

_logger = get_logger("config")


def config_checksum(config: PayrollEngineConfig) -> str:
    """Deterministic SHA-256 of the settings."""
    return compute_checksum(config.as_dict())


def get_active_config(path: Path | str | None = None) -> PayrollEngineConfig:
    """Return the active engine configuration.

    Raises:
        FileNotFoundError: If an explicit or environment-named file is missing.
        ValueError: If the file fails validation.
    """
    source = path or os.environ.get(CONFIG_ENV_VAR)
    if source:
        config = load_config_file(source)
    else:
        config = PayrollEngineConfig.with_defaults()

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "source": str(source) if source else "defaults",
            "checksum": config_checksum(config),
        },
    )
    return config
