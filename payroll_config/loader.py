"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into a
``payroll_config.schema.PayrollEngineConfig``.  The public runtime entry
point is ``payroll_config.get_active_config()``.

The file holds either the settings at top level or under a ``payroll:``
key::

    payroll:
      standard_working_days: 21.75
      allow_negative_net_pay: false
      batch_max_workers: 4
      database_url: sqlite:///payroll.db

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-mapping document, unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import PayrollEngineConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
    return data


def parse_config(data: dict[str, Any]) -> PayrollEngineConfig:
    """Parse settings from a loaded YAML document."""
    section = data.get("payroll", data)
    if not isinstance(section, dict):
        raise ValueError("'payroll' section must be a mapping")
    return PayrollEngineConfig.from_dict(section)


def load_config_file(path: Path | str) -> PayrollEngineConfig:
    """Load and parse a settings file."""
    return parse_config(load_yaml_file(Path(path)))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
