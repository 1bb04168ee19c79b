"""
Core checker module for FreshGate - classifies outdated dependencies and audit results and
decides whether a commit may go ahead.
"""

import logging
from enum import Enum
from typing import List, Dict, Any, Iterable, Mapping, Optional
from dataclasses import dataclass

from ..api.models import Finding, FindingCategory, FindingSeverity, Verdict
from ..services.package_manager import DegradationController, QueryOutcome
from .config import CheckerConfig, load_config
from .versioning import VersionDelta, version_delta

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"

class AuditSeverity(str, Enum):
    """Severity levels reported by the package manager audit."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

BLOCKING_AUDIT_SEVERITIES = frozenset({AuditSeverity.HIGH, AuditSeverity.CRITICAL})

# Least to most severe
AUDIT_SEVERITY_ORDER = list(AuditSeverity)

@dataclass(frozen=True)
class OutdatedEntry:
    """A dependency whose installed version is behind the registry."""
    package_name: str
    current_version: str
    latest_version: str
    wanted_version: Optional[str] = None

@dataclass(frozen=True)
class VulnerabilityEntry:
    """A package flagged by the security audit."""
    package_name: str
    severity: AuditSeverity

def extract_audit_entries(audit_report: Mapping[str, Any]) -> Dict[str, Any]:
    """Pull the package-keyed vulnerability mapping out of an audit report.

    Handles the npm 7+ `vulnerabilities` layout and the npm 6 `advisories`
    layout (keyed by advisory id). Anything else is assumed to already be
    keyed by package name.
    """
    if not isinstance(audit_report, Mapping):
        return {}

    vulnerabilities = audit_report.get("vulnerabilities")
    if isinstance(vulnerabilities, Mapping):
        return dict(vulnerabilities)

    advisories = audit_report.get("advisories")
    if isinstance(advisories, Mapping):
        entries: Dict[str, Any] = {}
        for advisory_id, advisory in advisories.items():
            if not isinstance(advisory, Mapping):
                continue
            name = advisory.get("module_name") or str(advisory_id)
            # One module can carry several advisories; keep the most severe
            if name not in entries or _severity_rank(advisory) > _severity_rank(entries[name]):
                entries[name] = advisory
        return entries

    if "auditReportVersion" in audit_report or "metadata" in audit_report:
        return {}

    return dict(audit_report)

def _audit_severity(record: Any) -> Optional[AuditSeverity]:
    if not isinstance(record, Mapping):
        return None
    severity = record.get("severity")
    if not isinstance(severity, str):
        return None
    try:
        return AuditSeverity(severity.strip().lower())
    except ValueError:
        return None

def _severity_rank(record: Any) -> int:
    severity = _audit_severity(record)
    return -1 if severity is None else AUDIT_SEVERITY_ORDER.index(severity)

def classify_vulnerabilities(audit_report: Mapping[str, Any]) -> List[VulnerabilityEntry]:
    """Return the audit entries whose severity is high enough to block a commit."""
    entries = []

    for package_name, record in audit_report.items():
        severity = _audit_severity(record)
        if severity is None:
            logger.debug(f"Skipping audit entry without a usable severity: {package_name}")
            continue
        if severity in BLOCKING_AUDIT_SEVERITIES:
            entries.append(VulnerabilityEntry(package_name=str(package_name), severity=severity))

    return entries

class VulnerabilityClassifier:
    """Turns audit reports into blocking security findings."""

    def __init__(self, package_manager: str = "npm"):
        self.package_manager = package_manager

    def classify(self, audit_report: Mapping[str, Any]) -> List[Finding]:
        """Classify a raw audit report."""
        entries = classify_vulnerabilities(extract_audit_entries(audit_report))
        return self.findings(entries)

    def findings(self, entries: Iterable[VulnerabilityEntry]) -> List[Finding]:
        """Create one blocking finding per qualifying vulnerability."""
        return [
            Finding(
                message=(
                    f"🔒 {entry.package_name}: {entry.severity.value} severity vulnerability - "
                    f"run '{self.package_manager} audit fix' before committing"
                ),
                severity=FindingSeverity.BLOCKING,
                category=FindingCategory.SECURITY,
                package_name=entry.package_name
            )
            for entry in entries
        ]

class FreshnessAnalyzer:
    """Maps version gaps of outdated dependencies onto findings."""

    LABELS = {
        VersionDelta.MAJOR: "Major version available",
        VersionDelta.MINOR: "Minor version available",
        VersionDelta.PATCH: "Patch version available",
    }

    ICONS = {
        VersionDelta.MAJOR: "📦",
        VersionDelta.MINOR: "📦",
        VersionDelta.PATCH: "🔧",
    }

    def __init__(self, config: CheckerConfig):
        self.config = config
        self.policy = config.policy

    def parse_entries(self, outdated_report: Mapping[str, Any]) -> List[OutdatedEntry]:
        """Normalize a raw `outdated` report into entries, keeping report order."""
        entries = []

        for package_name, info in outdated_report.items():
            # Workspaces report one record per location that depends on the package
            records = info if isinstance(info, list) else [info]

            for record in records:
                if not isinstance(record, Mapping):
                    logger.debug(f"Skipping malformed outdated record for {package_name}")
                    continue

                wanted = record.get("wanted")
                entries.append(OutdatedEntry(
                    package_name=str(package_name),
                    # Missing "current" means the dependency isn't installed
                    current_version=str(record.get("current") or ""),
                    latest_version=str(record.get("latest") or ""),
                    wanted_version=str(wanted) if wanted else None
                ))

        return entries

    def analyze(self, outdated_report: Mapping[str, Any]) -> List[Finding]:
        """Analyze a raw `outdated` report."""
        return self.analyze_entries(self.parse_entries(outdated_report))

    def analyze_entries(self, entries: Iterable[OutdatedEntry]) -> List[Finding]:
        """Produce findings for entries, preserving their order."""
        entries = list(entries)
        if entries:
            logger.info(f"Found {len(entries)} outdated packages")

        findings = []
        for entry in entries:
            finding = self._analyze_entry(entry)
            if finding is not None:
                findings.append(finding)

        return findings

    def _analyze_entry(self, entry: OutdatedEntry) -> Optional[Finding]:
        delta = version_delta(entry.current_version, entry.latest_version)
        summary = f"{entry.package_name}: {entry.current_version or '?'} → {entry.latest_version or '?'} ({delta.value})"

        if delta == VersionDelta.UNKNOWN:
            logger.info(f"Could not compare versions for {summary}")
            return None

        logger.info(summary)

        severity = self.policy.severity_for(delta)
        if severity is None:
            return None

        message = f"{self.ICONS[delta]} {self.LABELS[delta]}: {summary}"
        if delta == VersionDelta.PATCH:
            message += " - Consider updating soon"

        return Finding(
            message=message,
            severity=severity,
            category=FindingCategory.FRESHNESS,
            package_name=entry.package_name
        )

def aggregate(findings: Iterable[Finding]) -> Verdict:
    """Fold findings into a verdict. Any blocking finding fails the check."""
    warnings = []
    errors = []

    for finding in findings:
        if finding.is_blocking:
            errors.append(finding)
        elif finding.severity == FindingSeverity.WARNING:
            warnings.append(finding)
        else:
            logger.info(finding.message)

    return Verdict(
        exit_code=1 if errors else 0,
        warnings=warnings,
        errors=errors
    )

class FreshnessChecker:
    """Main checker class that orchestrates queries, classification and the verdict."""

    def __init__(
        self,
        config: Optional[CheckerConfig] = None,
        controller: Optional[DegradationController] = None
    ):
        self.config = config or load_config()
        self.controller = controller or DegradationController(self.config)
        self.analyzer = FreshnessAnalyzer(self.config)
        self.classifier = VulnerabilityClassifier(self.config.package_manager)

    def has_manifest(self) -> bool:
        """Check that the project has a package manifest to inspect."""
        return (self.config.project_path / MANIFEST_FILE).is_file()

    async def run(self) -> Verdict:
        """Run a single freshness check."""
        if not self.has_manifest():
            logger.warning(f"No {MANIFEST_FILE} found, skipping package freshness check")
            return aggregate([])

        logger.info(f"Starting freshness check of project: {self.config.project_path}")
        outdated, audit = await self.controller.fetch_reports()
        return aggregate(self.collect_findings(outdated, audit))

    def collect_findings(self, outdated: QueryOutcome, audit: QueryOutcome) -> List[Finding]:
        """Combine settled query outcomes into an ordered list of findings."""
        findings = []

        for outcome in (outdated, audit):
            if outcome.is_fatal:
                findings.append(Finding(
                    message=f"⛔ Failed to check {outcome.label}: {outcome.error}",
                    severity=FindingSeverity.BLOCKING,
                    category=FindingCategory.QUERY_FAILURE
                ))

        findings.extend(self.classifier.classify(audit.data))
        findings.extend(self.analyzer.analyze(outdated.data))
        return findings
