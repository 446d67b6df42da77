# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Configuration loading for scmscript.

Config is a YAML mapping read from, in order:
1. An explicit path (--config)
2. $SCMSCRIPT_CONFIG
3. ~/.scmscript/config.yaml (optional; defaults apply when absent)

Example:
    checkout_retry_count: 3
    retry_delay_s: 10
    workspace_suffix: "@"
    workspace_root: ~/.scmscript/workspace
    default_durability: max_survivability
    durability:
      nightly-build: performance_optimized
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from scmscript.durability import DurabilityHint, JobDurabilityHints

DEFAULT_CONFIG_PATH = Path("~/.scmscript/config.yaml")


@dataclass
class ResolverSettings:
    """Process-wide settings passed explicitly into each resolution."""

    checkout_retry_count: int = 0
    retry_delay_s: float = 10.0
    workspace_suffix: str = "@"
    workspace_root: Optional[Path] = None
    default_durability: DurabilityHint = DurabilityHint.MAX_SURVIVABILITY
    job_durability: Dict[str, DurabilityHint] = field(default_factory=dict)

    def __post_init__(self):
        if self.checkout_retry_count < 0:
            raise ValueError(f"checkout_retry_count must be >= 0, got: {self.checkout_retry_count}")
        if self.retry_delay_s < 0:
            raise ValueError(f"retry_delay_s must be >= 0, got: {self.retry_delay_s}")

    @property
    def durability_providers(self):
        return [JobDurabilityHints(self.job_durability)]

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ResolverSettings":
        """Build settings from a loaded config mapping.

        $SCMSCRIPT_WORKSPACE_SUFFIX overrides workspace_suffix.

        Raises:
            ValueError: If a value has the wrong type or range.
        """
        try:
            retry_count = int(config.get("checkout_retry_count", 0))
            retry_delay = float(config.get("retry_delay_s", 10.0))
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid retry settings: {e}")

        suffix = os.environ.get("SCMSCRIPT_WORKSPACE_SUFFIX", config.get("workspace_suffix", "@"))

        workspace_root = config.get("workspace_root")
        if workspace_root:
            workspace_root = Path(str(workspace_root)).expanduser()

        default_durability = DurabilityHint.parse(
            str(config.get("default_durability", DurabilityHint.MAX_SURVIVABILITY.value))
        )
        durability = config.get("durability") or {}
        if not isinstance(durability, dict):
            raise ValueError("durability must be a mapping of job name to hint")
        job_durability = {
            str(job): DurabilityHint.parse(str(hint))
            for job, hint in durability.items()
        }

        return cls(
            checkout_retry_count=retry_count,
            retry_delay_s=retry_delay,
            workspace_suffix=str(suffix),
            workspace_root=workspace_root or None,
            default_durability=default_durability,
            job_durability=job_durability,
        )


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML config mapping.

    Args:
        config_path: Explicit path; overrides $SCMSCRIPT_CONFIG and the default.

    Returns:
        Config dict (empty when no file exists at the default location).

    Raises:
        FileNotFoundError: If an explicit or env-provided path does not exist.
        ValueError: If the file is not a YAML mapping.
    """
    explicit = config_path or os.environ.get("SCMSCRIPT_CONFIG")
    path = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_PATH.expanduser()

    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"invalid YAML in {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a YAML mapping")
    return data


def load_settings(config_path: Optional[str] = None) -> ResolverSettings:
    """Load config and build ResolverSettings from it."""
    return ResolverSettings.from_config(load_config(config_path))
