from freshgate.api.models import FindingCategory, FindingSeverity
from freshgate.core.scanner import (
    AuditSeverity,
    VulnerabilityClassifier,
    VulnerabilityEntry,
    classify_vulnerabilities,
    extract_audit_entries,
)


def test_only_high_and_critical_are_kept():
    report = {
        "left-pad": {"severity": "critical"},
        "lodash": {"severity": "low"},
        "minimist": {"severity": "moderate"},
        "axios": {"severity": "high"},
    }

    entries = classify_vulnerabilities(report)

    assert entries == [
        VulnerabilityEntry("left-pad", AuditSeverity.CRITICAL),
        VulnerabilityEntry("axios", AuditSeverity.HIGH),
    ]


def test_missing_or_malformed_severity_is_excluded():
    report = {
        "no-severity": {"via": []},
        "bad-type": {"severity": 7},
        "unknown-level": {"severity": "info"},
        "not-a-record": "critical",
        "shouty": {"severity": "HIGH"},
    }

    entries = classify_vulnerabilities(report)

    assert [entry.package_name for entry in entries] == ["shouty"]


def test_critical_and_low_yield_one_blocking_finding():
    classifier = VulnerabilityClassifier()
    audit = {
        "auditReportVersion": 2,
        "vulnerabilities": {
            "tar": {"name": "tar", "severity": "critical"},
            "debug": {"name": "debug", "severity": "low"},
        },
    }

    findings = classifier.classify(audit)

    assert len(findings) == 1
    assert findings[0].severity == FindingSeverity.BLOCKING
    assert findings[0].category == FindingCategory.SECURITY
    assert findings[0].package_name == "tar"
    assert "npm audit fix" in findings[0].message


def test_extract_npm7_report():
    report = {"auditReportVersion": 2, "vulnerabilities": {"a": {"severity": "high"}}, "metadata": {}}
    assert extract_audit_entries(report) == {"a": {"severity": "high"}}


def test_extract_npm6_advisories_keyed_by_module():
    report = {
        "advisories": {
            "1179": {"module_name": "minimist", "severity": "critical"},
            "1500": {"module_name": "yargs-parser", "severity": "low"},
            "9999": "garbage",
        },
        "metadata": {},
    }

    entries = extract_audit_entries(report)

    assert set(entries) == {"minimist", "yargs-parser"}
    assert [e.package_name for e in classify_vulnerabilities(entries)] == ["minimist"]


def test_extract_empty_reports():
    assert extract_audit_entries({}) == {}
    assert extract_audit_entries({"auditReportVersion": 2, "metadata": {"vulnerabilities": {}}}) == {}
    assert extract_audit_entries(None) == {}


def test_classifier_uses_configured_package_manager():
    findings = VulnerabilityClassifier("pnpm").findings([VulnerabilityEntry("x", AuditSeverity.HIGH)])
    assert "pnpm audit fix" in findings[0].message


def test_npm6_keeps_most_severe_advisory_per_module():
    audit = {
        "advisories": {
            "100": {"module_name": "lodash", "severity": "low"},
            "200": {"module_name": "lodash", "severity": "critical"},
            "300": {"module_name": "lodash", "severity": "moderate"},
        },
        "metadata": {},
    }

    findings = VulnerabilityClassifier().classify(audit)

    assert len(findings) == 1
    assert findings[0].package_name == "lodash"
    assert "critical severity" in findings[0].message
