"""
Configuration for FreshGate - freshness policy, network behaviour and output settings.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..api.models import FindingSeverity
from .versioning import VersionDelta

logger = logging.getLogger(__name__)

ENV_PREFIX = "FRESHGATE_"

class FreshnessPolicy(BaseModel):
    """Finding severity for each version delta; None means no finding."""
    model_config = ConfigDict(frozen=True)

    major: Optional[FindingSeverity] = FindingSeverity.WARNING
    minor: Optional[FindingSeverity] = FindingSeverity.WARNING
    patch: Optional[FindingSeverity] = FindingSeverity.BLOCKING

    def severity_for(self, delta: VersionDelta) -> Optional[FindingSeverity]:
        """Look up the severity configured for a delta."""
        if delta == VersionDelta.MAJOR:
            return self.major
        if delta == VersionDelta.MINOR:
            return self.minor
        if delta == VersionDelta.PATCH:
            return self.patch
        return None

class CheckerConfig(BaseModel):
    """Settings for one freshness check run. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    # Maximum age thresholds (in days)
    major_version_threshold_days: int = Field(default=365, ge=0)
    minor_version_threshold_days: int = Field(default=180, ge=0)
    patch_version_threshold_days: int = Field(default=90, ge=0)
    security_threshold_days: int = Field(default=7, ge=0)

    network_timeout: float = Field(default=10.0, gt=0, description="Seconds allowed per package manager query")
    allow_network_failure: bool = Field(default=True, description="Pass the commit when the registry can't be reached")
    verbose: bool = True
    package_manager: str = "npm"
    project_path: Path = Field(default_factory=Path.cwd)
    policy: FreshnessPolicy = Field(default_factory=FreshnessPolicy)

def _int_env(name: str, default: int) -> int:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        parsed = None
    if parsed is None or parsed < 0:
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={value!r}")
        return default
    return parsed

def _positive_float_env(name: str, default: float) -> float:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        parsed = None
    # Also rejects nan and inf
    if parsed is None or not 0 < parsed < float("inf"):
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={value!r}")
        return default
    return parsed

def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}

def running_in_ci() -> bool:
    """True when the generic CI signal is set."""
    return os.getenv("CI", "").strip().lower() == "true"

def load_config(**overrides: Any) -> CheckerConfig:
    """Build a config from the environment, then apply explicit overrides.

    Overrides whose value is None are ignored so CLI options left unset fall
    through to the environment.
    """
    values: Dict[str, Any] = {
        'major_version_threshold_days': _int_env("MAJOR_THRESHOLD_DAYS", 365),
        'minor_version_threshold_days': _int_env("MINOR_THRESHOLD_DAYS", 180),
        'patch_version_threshold_days': _int_env("PATCH_THRESHOLD_DAYS", 90),
        'security_threshold_days': _int_env("SECURITY_THRESHOLD_DAYS", 7),
        'network_timeout': _positive_float_env("NETWORK_TIMEOUT", 10.0),
        'allow_network_failure': _bool_env("ALLOW_NETWORK_FAILURE", True),
        # Detailed output locally, brief in CI
        'verbose': _bool_env("VERBOSE", not running_in_ci()),
        'package_manager': os.getenv(ENV_PREFIX + "PACKAGE_MANAGER") or "npm",
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return CheckerConfig(**values)
