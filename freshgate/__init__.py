"""
FreshGate - Pre-commit Dependency Freshness Gate

Inspects installed package versions against the registry's latest releases and the
package manager's security audit, then decides whether a commit should be:
- Blocked (pending patch updates, high/critical vulnerabilities)
- Allowed with warnings (major/minor updates available)
- Allowed (everything current, or the registry unreachable and tolerated)
"""

__version__ = "1.0.0"
__author__ = "FreshGate Team"
__description__ = "Pre-commit Dependency Freshness Gate"
