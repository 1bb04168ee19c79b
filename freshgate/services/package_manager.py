"""
Package manager queries for FreshGate - runs the outdated and audit reports under a timeout and
decides whether a failed query degrades to "nothing found" or is fatal for the commit.
"""

import asyncio
import json
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.config import CheckerConfig

logger = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str], Path], Awaitable[str]]

class QueryError(Exception):
    """A package manager query could not produce a usable report."""

class QueryTimeoutError(QueryError):
    """The query did not finish within the configured timeout."""

class QueryOutputError(QueryError):
    """The query finished but its output was not a JSON report."""

class InvalidTransitionError(Exception):
    """A query outcome was moved between states in an impossible order."""

class QueryState(str, Enum):
    """Lifecycle of a single package manager query."""
    IDLE = "idle"
    QUERYING = "querying"
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    FATAL = "fatal"

_ALLOWED_TRANSITIONS = {
    QueryState.IDLE: {QueryState.QUERYING},
    QueryState.QUERYING: {QueryState.SUCCEEDED, QueryState.DEGRADED, QueryState.FATAL},
}

@dataclass
class QueryOutcome:
    """Result of one query plus the states it passed through."""
    name: str
    label: str
    state: QueryState = QueryState.IDLE
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    transitions: List[QueryState] = field(default_factory=lambda: [QueryState.IDLE])

    def transition(self, new_state: QueryState):
        """Move to `new_state`, rejecting anything the lifecycle doesn't allow."""
        if new_state not in _ALLOWED_TRANSITIONS.get(self.state, set()):
            raise InvalidTransitionError(
                f"{self.name} query cannot go from {self.state.value} to {new_state.value}"
            )
        logger.debug(f"{self.name} query: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.transitions.append(new_state)

    @property
    def is_fatal(self) -> bool:
        return self.state == QueryState.FATAL

async def run_command(argv: Sequence[str], cwd: Path) -> str:
    """Run a package manager command and return its stdout.

    The exit status is ignored: `npm outdated` exits 1 when anything is
    outdated and `npm audit` exits non-zero when vulnerabilities exist.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd)
        )
    except OSError as e:
        raise QueryError(f"Could not run {argv[0]}: {e}") from e

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        # Abandoned on timeout
        with suppress(ProcessLookupError):
            process.kill()
        # Reap the child before the loop closes
        await asyncio.shield(process.wait())
        raise

    if stderr:
        logger.debug(f"{' '.join(argv)} stderr: {stderr.decode('utf-8', errors='replace').strip()}")

    return stdout.decode("utf-8", errors="replace")

def parse_report(raw: str) -> Dict[str, Any]:
    """Parse JSON report output. Empty output means an empty report."""
    if not raw or not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise QueryOutputError(f"Malformed JSON output: {e}") from e

    if not isinstance(data, dict):
        raise QueryOutputError(f"Expected a JSON object, got {type(data).__name__}")

    # npm reports registry problems as {"error": {"code": ..., "summary": ...}}
    error = data.get("error")
    if isinstance(error, dict) and "code" in error:
        summary = error.get("summary") or error.get("detail") or "registry error"
        raise QueryError(f"{error['code']}: {summary}")

    return data

class DegradationController:
    """Runs package manager queries and applies the network failure policy."""

    def __init__(self, config: CheckerConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or run_command

    async def query(self, name: str, label: str, argv: Sequence[str]) -> QueryOutcome:
        """Run one query and settle it as succeeded, degraded or fatal."""
        outcome = QueryOutcome(name=name, label=label)
        outcome.transition(QueryState.QUERYING)
        logger.info(f"Checking {label}...")

        try:
            raw = await asyncio.wait_for(
                self.runner(argv, self.config.project_path),
                timeout=self.config.network_timeout
            )
            data = parse_report(raw)
        except asyncio.TimeoutError:
            return self._fail(
                outcome,
                QueryTimeoutError(f"timed out after {self.config.network_timeout:g}s")
            )
        except (QueryError, OSError) as e:
            return self._fail(outcome, e)

        outcome.data = data
        outcome.transition(QueryState.SUCCEEDED)
        return outcome

    def _fail(self, outcome: QueryOutcome, error: Exception) -> QueryOutcome:
        """Route a failed query to degraded or fatal according to policy."""
        outcome.error = str(error) or type(error).__name__

        if self.config.allow_network_failure:
            logger.warning(
                f"Could not check {outcome.label} ({outcome.error}) - allowing commit"
            )
            outcome.data = {}
            outcome.transition(QueryState.DEGRADED)
        else:
            logger.error(f"Failed to check {outcome.label}: {outcome.error}")
            outcome.transition(QueryState.FATAL)

        return outcome

    async def fetch_outdated(self) -> QueryOutcome:
        """Query installed vs latest versions."""
        return await self.query(
            "outdated", "package versions", [self.config.package_manager, "outdated", "--json"]
        )

    async def fetch_audit(self) -> QueryOutcome:
        """Query the security audit report."""
        return await self.query(
            "audit", "security vulnerabilities", [self.config.package_manager, "audit", "--json"]
        )

    async def fetch_reports(self) -> Tuple[QueryOutcome, QueryOutcome]:
        """Run both queries concurrently and wait for both to settle."""
        outdated, audit = await asyncio.gather(self.fetch_outdated(), self.fetch_audit())
        return outdated, audit
