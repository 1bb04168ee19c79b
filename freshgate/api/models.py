"""
Pydantic models for FreshGate findings and verdicts.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class FindingSeverity(str, Enum):
    """How a finding affects the commit."""
    INFO = "info"
    WARNING = "warning"
    BLOCKING = "blocking"

class FindingCategory(str, Enum):
    """Where a finding came from."""
    FRESHNESS = "freshness"
    SECURITY = "security"
    QUERY_FAILURE = "query_failure"

class Finding(BaseModel):
    """Single reportable result of a check."""
    model_config = ConfigDict(frozen=True)

    message: str
    severity: FindingSeverity
    category: FindingCategory = FindingCategory.FRESHNESS
    package_name: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == FindingSeverity.BLOCKING

class Verdict(BaseModel):
    """Final pass/fail decision for one check run."""
    model_config = ConfigDict(frozen=True)

    exit_code: int = Field(default=0, ge=0, le=1)
    warnings: List[Finding] = Field(default_factory=list)
    errors: List[Finding] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.exit_code == 0
