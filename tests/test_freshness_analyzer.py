import logging

from freshgate.api.models import FindingSeverity
from freshgate.core.config import CheckerConfig, FreshnessPolicy
from freshgate.core.scanner import FreshnessAnalyzer, OutdatedEntry


def _analyzer(**overrides):
    return FreshnessAnalyzer(CheckerConfig(verbose=False, **overrides))


def test_default_policy_blocks_patch_and_warns_major_minor():
    report = {
        "react": {"current": "17.0.2", "wanted": "17.0.2", "latest": "18.2.0"},
        "express": {"current": "4.17.1", "wanted": "4.18.2", "latest": "4.18.2"},
        "chalk": {"current": "5.3.0", "wanted": "5.3.1", "latest": "5.3.1"},
    }

    findings = _analyzer().analyze(report)

    assert [f.severity for f in findings] == [
        FindingSeverity.WARNING,
        FindingSeverity.WARNING,
        FindingSeverity.BLOCKING,
    ]
    assert findings[0].message.startswith("📦 Major version available: react: 17.0.2 → 18.2.0 (major)")
    assert findings[1].message.startswith("📦 Minor version available: express")
    assert findings[2].message == "🔧 Patch version available: chalk: 5.3.0 → 5.3.1 (patch) - Consider updating soon"


def test_none_and_unknown_emit_nothing(caplog):
    report = {
        "same": {"current": "1.0.0", "latest": "1.0.0"},
        "git-dep": {"current": "github:user/repo", "latest": "1.0.0"},
    }

    with caplog.at_level(logging.INFO, logger="freshgate.core.scanner"):
        findings = _analyzer().analyze(report)

    assert findings == []
    assert "Could not compare versions for git-dep" in caplog.text


def test_findings_follow_report_order():
    report = {name: {"current": "1.0.0", "latest": "1.0.1"} for name in ["zeta", "alpha", "mid"]}

    findings = _analyzer().analyze(report)

    assert [f.package_name for f in findings] == ["zeta", "alpha", "mid"]


def test_missing_current_version_is_unknown():
    analyzer = _analyzer()
    entries = analyzer.parse_entries({"not-installed": {"wanted": "2.0.0", "latest": "2.0.0"}})

    assert entries == [OutdatedEntry("not-installed", "", "2.0.0", "2.0.0")]
    assert analyzer.analyze_entries(entries) == []


def test_malformed_records_are_skipped():
    entries = _analyzer().parse_entries({"broken": "1.0.0", "fine": {"current": "1.0.0", "latest": "1.0.1"}})
    assert [e.package_name for e in entries] == ["fine"]


def test_custom_policy_is_applied():
    policy = FreshnessPolicy(major=FindingSeverity.BLOCKING, patch=None)
    analyzer = _analyzer(policy=policy)

    findings = analyzer.analyze({
        "big": {"current": "1.0.0", "latest": "2.0.0"},
        "small": {"current": "1.0.0", "latest": "1.0.1"},
    })

    assert len(findings) == 1
    assert findings[0].package_name == "big"
    assert findings[0].severity == FindingSeverity.BLOCKING


def test_workspace_records_are_flattened():
    report = {
        "chalk": [
            {"current": "5.3.0", "latest": "5.3.1", "location": "packages/a/node_modules/chalk"},
            {"current": "4.1.2", "latest": "5.3.1", "location": "packages/b/node_modules/chalk"},
        ],
    }

    findings = _analyzer().analyze(report)

    assert [f.severity for f in findings] == [FindingSeverity.BLOCKING, FindingSeverity.WARNING]
    assert all(f.package_name == "chalk" for f in findings)
