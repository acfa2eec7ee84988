"""CLI application for DepMend."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from core.apply import ApplyEngine, ApplyOptions
from core.config import load_settings
from core.models import AnalysisResult, Fix, Issue, SandboxResult
from core.package_manager import NpmPackageManager
from core.pipeline import run_analysis, validate_fixes
from core.sandbox import SandboxManager

console = Console()
err_console = Console(stderr=True)

SEVERITY_STYLES = {"high": "red", "medium": "yellow", "low": "green"}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def format_issue_table(issues: list[Issue]) -> Table:
    """Render issues and their suggested fixes as a table."""
    table = Table(title="Dependency issues")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Message")
    table.add_column("Dependencies")
    table.add_column("Suggested fixes")

    for issue in issues:
        dependencies = ", ".join(f"{dep.name}@{dep.version}" for dep in issue.affected)
        if issue.fixes:
            fixes = "\n".join(
                f"{index}. {fix.description} ({fix.confidence.value})"
                for index, fix in enumerate(issue.fixes, start=1)
            )
        else:
            fixes = "No fixes suggested"
        severity = issue.severity.value
        table.add_row(
            issue.kind.value,
            f"[{SEVERITY_STYLES[severity]}]{severity}[/]",
            issue.message,
            dependencies,
            fixes,
        )
    return table


def format_json_output(results: list[AnalysisResult]) -> str:
    """Format JSON output."""
    return json.dumps({"results": [result.to_dict() for result in results]}, indent=2)


def print_summary(result: AnalysisResult) -> None:
    summary = result.summary
    console.print(f"\nSummary for {result.ecosystem}:")
    console.print(f"Total issues: {summary.total_issues}")
    console.print(f"High severity: {summary.by_severity['high']}")
    console.print(f"Medium severity: {summary.by_severity['medium']}")
    console.print(f"Low severity: {summary.by_severity['low']}")


def format_sandbox_results(title: str, rows: list[tuple[str, SandboxResult]]) -> Table:
    table = Table(title=title)
    table.add_column("Candidate")
    table.add_column("Result")
    table.add_column("Duration")
    table.add_column("Error")
    for label, result in rows:
        status = "[green]passed[/]" if result.success else "[red]failed[/]"
        table.add_row(label, status, f"{result.duration_ms} ms", result.error or "")
    return table


def prompt_for_fix(issue: Issue) -> Fix:
    """Ask which of several fixes to apply."""
    console.print(f"\nMultiple fixes available for: {issue.message}")
    for index, fix in enumerate(issue.fixes, start=1):
        console.print(f"  {index}. {fix.description} (confidence: {fix.confidence.value})")
    choice = IntPrompt.ask(
        "Fix to apply",
        choices=[str(index) for index in range(1, len(issue.fixes) + 1)],
        default=1,
    )
    return issue.fixes[choice - 1]


def prompt_confirm(issues: list[Issue]) -> bool:
    return Confirm.ask(f"Apply fixes for the selected {len(issues)} package(s)?", default=False)


app = typer.Typer(
    name="depmend",
    help="DepMend - Detect and fix dependency issues in package.json projects",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """DepMend - Detect and fix dependency issues."""
    configure_logging(verbose)


@app.command()
def analyze(
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project path to analyze"),
    ecosystem: str | None = typer.Option(None, "--ecosystem", "-e", help="Specific ecosystem to analyze"),
    registry: str | None = typer.Option(None, "--registry", help="Registry URL"),
    format_type: str = typer.Option("table", "--format", help="Output format: table or json"),
) -> None:
    """Analyze project dependencies for issues."""
    try:
        settings = load_settings(path, registry_url=registry)
        results = asyncio.run(
            run_analysis(path, settings, ecosystem=ecosystem, generate_fixes=False)
        )

        if format_type == "json":
            typer.echo(format_json_output(results))
            return

        for result in results:
            console.print(f"Detected {result.ecosystem} ecosystem")
            if not result.issues:
                console.print("No issues found!", style="green")
                continue
            console.print(format_issue_table(result.issues))
            print_summary(result)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


@app.command()
def fix(
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project path to fix"),
    ecosystem: str | None = typer.Option(None, "--ecosystem", "-e", help="Specific ecosystem to fix"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Show fixes without applying"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Choose issues and fixes"),
    validate: bool = typer.Option(False, "--validate", help="Test each fix in a sandbox first"),
    no_backup: bool = typer.Option(False, "--no-backup", help="Skip the package.json backup"),
    no_install: bool = typer.Option(False, "--no-install", help="Skip npm install after applying"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip the confirmation prompt"),
    registry: str | None = typer.Option(None, "--registry", help="Registry URL"),
    test_command: str | None = typer.Option(None, "--test-command", help="Test command for sandbox runs"),
    format_type: str = typer.Option("table", "--format", help="Output format: table or json"),
) -> None:
    """Generate fixes for dependency issues and apply them to package.json."""
    try:
        settings = load_settings(path, registry_url=registry, test_command=test_command)
        results = asyncio.run(run_analysis(path, settings, ecosystem=ecosystem))
        issues = [issue for result in results for issue in result.issues if issue.fixes]

        if format_type == "json":
            typer.echo(format_json_output(results))
        elif issues:
            console.print(format_issue_table(issues))

        if not issues:
            console.print("No issues to fix!", style="green")
            return

        package_manager = NpmPackageManager(
            executable=settings.npm_executable, timeout=settings.command_timeout
        )

        if validate:
            validations = validate_fixes(path, issues, settings, package_manager=package_manager)
            console.print(
                format_sandbox_results(
                    "Sandbox validation",
                    [(f"{v.issue.package}: {v.fix.description}", v.result) for v in validations],
                )
            )
            passed = {id(v.fix) for v in validations if v.result.success}
            for issue in issues:
                issue.fixes = [candidate for candidate in issue.fixes if id(candidate) in passed]
            issues = [issue for issue in issues if issue.fixes]
            if not issues:
                console.print("No fix passed sandbox validation", style="yellow")
                return

        if dry_run:
            console.print("Dry run: package.json was not modified", style="yellow")
            return

        if interactive:
            issues = [
                issue for issue in issues
                if Confirm.ask(f"Fix {issue.package} ({issue.kind.value})?", default=True)
            ]
            if not issues:
                console.print("No packages selected for update.", style="yellow")
                return

        engine = ApplyEngine(
            path,
            package_manager=package_manager,
            choose_fix=prompt_for_fix if interactive else None,
            confirm=prompt_confirm if interactive else None,
            backup_suffix=settings.backup_suffix,
        )
        report = engine.execute(
            issues, ApplyOptions(force=force, no_backup=no_backup, no_install=no_install)
        )

        if report.cancelled:
            console.print("Operation cancelled by user.", style="yellow")
        elif not report.changes_made:
            console.print("No changes were made to package.json", style="yellow")
        else:
            console.print(f"Applied {len(report.applied)} change(s)", style="green")
            if report.backup_path:
                console.print(f"Backup saved to: {report.backup_path}", style="yellow")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


app.command("apply", help="Alias for fix.")(fix)


@app.command()
def probe(
    package: str = typer.Argument(help="Package to probe"),
    versions: list[str] = typer.Argument(help="Candidate versions, tried in order"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project path"),
    registry: str | None = typer.Option(None, "--registry", help="Registry URL"),
    test_command: str | None = typer.Option(None, "--test-command", help="Command run after each install"),
) -> None:
    """Try several versions of one package in a sandbox."""
    try:
        settings = load_settings(path, registry_url=registry, test_command=test_command)
        sandbox = SandboxManager(
            path,
            registry_url=settings.registry_url,
            timeout=settings.command_timeout,
            package_manager=NpmPackageManager(
                executable=settings.npm_executable, timeout=settings.command_timeout
            ),
        )
        with sandbox:
            results = sandbox.test_package_versions(package, versions, settings.test_command)

        console.print(
            format_sandbox_results(
                f"Versions of {package}",
                [(f"{package}@{version}", result) for version, result in results.items()],
            )
        )

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
