"""
Command-line interface for FreshGate.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional
import typer
from pydantic import ValidationError
from rich.console import Console

from ..api.models import Finding, Verdict
from ..core.config import CheckerConfig, load_config
from ..core.scanner import FreshnessChecker

app = typer.Typer(
    name="freshgate",
    help="Pre-commit Dependency Freshness Gate",
    add_completion=False
)

console = Console()

OUTPUT_FORMATS = ("text", "json")

@app.command()
def check(
    project_path: str = typer.Argument(".", help="Path to the project to check"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds allowed per package manager query"),
    strict_network: bool = typer.Option(False, "--strict-network", help="Block the commit when the registry can't be reached"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Detailed output (default unless CI=true)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Brief output (default when CI=true)"),
    package_manager: Optional[str] = typer.Option(None, "--package-manager", help="Package manager executable")
):
    """Check dependency freshness and security before a commit."""
    verbosity = True if verbose else (False if quiet else None)

    if format not in OUTPUT_FORMATS:
        console.print(f"[red]Error: Unsupported output format '{format}'[/red]")
        raise typer.Exit(1)

    project = Path(project_path)
    if not project.exists():
        console.print(f"[red]Error: Project path '{project}' does not exist[/red]", soft_wrap=True)
        raise typer.Exit(1)

    try:
        config = load_config(
            project_path=project.resolve(),
            network_timeout=timeout,
            allow_network_failure=False if strict_network else None,
            verbose=verbosity,
            package_manager=package_manager
        )
    except ValidationError as e:
        console.print("[red]Error: Invalid configuration[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(1)

    logging.basicConfig(
        level=logging.INFO if config.verbose else logging.WARNING,
        format="%(message)s"
    )
    log_thresholds(config)

    try:
        verdict = asyncio.run(FreshnessChecker(config).run())
    except Exception as e:
        console.print(f"❌ Package freshness check failed: {e}", markup=False, emoji=False)
        raise typer.Exit(0 if config.allow_network_failure else 1)

    if format == "json":
        console.print_json(verdict.model_dump_json(), highlight=False)
    else:
        display_verdict(verdict, config.package_manager)

    raise typer.Exit(verdict.exit_code)

@app.command()
def version():
    """Show version information."""
    from .. import __version__
    console.print(f"[bold blue]FreshGate[/bold blue] v{__version__}")
    console.print("Pre-commit Dependency Freshness Gate")

def log_thresholds(config: CheckerConfig):
    """Log the configured age thresholds."""
    logging.getLogger(__name__).info(
        f"Thresholds (days): major {config.major_version_threshold_days}, "
        f"minor {config.minor_version_threshold_days}, "
        f"patch {config.patch_version_threshold_days}, "
        f"security {config.security_threshold_days}"
    )

def _print_findings(findings: List[Finding]):
    for finding in findings:
        console.print(finding.message, markup=False, emoji=False, soft_wrap=True)

def display_verdict(verdict: Verdict, package_manager: str = "npm"):
    """Print the verdict: errors first, then warnings."""
    if not verdict.passed:
        console.print("\n[bold red]🚫 Pre-commit check FAILED:[/bold red]")
        _print_findings(verdict.errors)

        if verdict.warnings:
            console.print("\n[yellow]⚠️  Package freshness warnings:[/yellow]")
            _print_findings(verdict.warnings)

        console.print("\nPlease address these issues before committing.")
        console.print(
            f'Hint: Run "{package_manager} update" or "{package_manager} audit fix" to resolve some issues.',
            markup=False
        )
        return

    if verdict.warnings:
        console.print("\n[yellow]⚠️  Package freshness warnings:[/yellow]")
        _print_findings(verdict.warnings)
        console.print("\nConsider updating these packages when convenient.")
        return

    console.print("[green]Package freshness check passed! ✅[/green]")

if __name__ == "__main__":
    app()
