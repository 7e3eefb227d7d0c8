"""CLI application for depbump."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from core.config import Settings
from core.errors import AlreadyRequested
from core.log import setup_logging
from core.models import DependencyCandidate, UpdateDependency, UpdateResult
from core.requirements import parse_requirements
from core.update import build_update_service

console = Console()

# Exit codes
EXIT_FAILED = 1
EXIT_ALREADY_REQUESTED = 2


def load_candidates(path: Path) -> list[DependencyCandidate]:
    """Read scanner output: a JSON list of candidate objects."""
    data = json.loads(path.read_text())
    return [
        DependencyCandidate(
            name=item["name"],
            current_version=item.get("current_version"),
            latest_version=item["latest_version"],
            vulnerabilities=list(item.get("vulnerabilities", [])),
        )
        for item in data
    ]


def fill_current_versions(
    candidates: list[DependencyCandidate], requirements_content: str
) -> list[DependencyCandidate]:
    """Take missing current versions from a local requirements file."""
    specs = {}
    for entry in parse_requirements(requirements_content).entries:
        if entry.spec:
            # An exact pin is recorded as the bare version, ranges keep their operator
            exact = entry.spec.startswith("==") and "," not in entry.spec
            specs[entry.name] = entry.spec[2:] if exact else entry.spec

    for candidate in candidates:
        if candidate.current_version is None and candidate.name in specs:
            candidate.current_version = specs[candidate.name]
    return candidates


def format_result(result: UpdateResult) -> str:
    """Format JSON output of an update."""
    return json.dumps(
        {
            "ok": result.ok,
            "state": result.state.value,
            "change_request_url": result.change_request_url,
            "error": str(result.error) if result.error else None,
        },
        indent=2,
    )


app = typer.Typer(
    name="depbump",
    help="depbump - Publish dependency bumps as merge requests",
    add_completion=False,
)


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
) -> None:
    """depbump - Publish dependency bumps as merge requests."""
    settings = Settings()
    setup_logging(log_level or settings.log_level, settings.json_logs)


@app.command()
def update(
    project: str = typer.Argument(help="Project name as listed in the projects file"),
    file_path: str = typer.Argument(help="Manifest path in the repository: requirements.txt, pyproject.toml"),
    dependency: str = typer.Argument(help="Dependency to bump"),
    from_version: str = typer.Argument(help="Version currently pinned"),
    to_version: str = typer.Argument(help="Version to bump to"),
    format_type: str = typer.Option("text", "--format", help="Output format: text or json"),
) -> None:
    """Bump one dependency and open a merge request for it."""
    service = build_update_service(Settings())
    request = UpdateDependency(
        project_name=project,
        file_path=file_path,
        dependency_name=dependency,
        from_version=from_version,
        to_version=to_version,
    )
    result = asyncio.run(service.update_project(request))

    if format_type == "json":
        typer.echo(format_result(result))
    elif result.ok:
        console.print(f"Opened {result.change_request_url}", style="green")
    else:
        console.print(f"Error: {result.error}", style="red")
        if result.change_request_url:
            console.print(f"Merge request: {result.change_request_url}")

    if isinstance(result.error, AlreadyRequested):
        raise typer.Exit(EXIT_ALREADY_REQUESTED)
    if not result.ok:
        raise typer.Exit(EXIT_FAILED)


@app.command()
def check(
    candidates_file: Path = typer.Argument(help="JSON list of scanned dependency candidates"),
    project_id: str = typer.Option(..., "--project-id", help="Project the candidates belong to"),
    file_path: str = typer.Option(..., "--file", help="Manifest path the candidates were parsed from"),
    requirements: Path | None = typer.Option(
        None, "--requirements", help="Local requirements.txt to fill in missing current versions"
    ),
    format_type: str = typer.Option("table", "--format", help="Output format: table or json"),
) -> None:
    """Show which candidates can and should be updated."""
    if not candidates_file.exists():
        console.print(f"Error: File {candidates_file} not found", style="red")
        raise typer.Exit(EXIT_FAILED)

    try:
        candidates = load_candidates(candidates_file)
    except (ValueError, KeyError, TypeError) as e:
        console.print(f"Error: Invalid candidates file: {e}", style="red")
        raise typer.Exit(EXIT_FAILED)

    if requirements is not None:
        fill_current_versions(candidates, requirements.read_text())

    service = build_update_service(Settings())
    eligibility = asyncio.run(service.can_update(candidates, project_id, file_path))
    decisions = service.should_update(candidates)
    rows = [
        (candidate, allowed, wanted)
        for (candidate, allowed), (_, wanted) in zip(eligibility, decisions)
    ]

    if format_type == "json":
        reports = [
            {
                "name": candidate.name,
                "current_version": candidate.current_version,
                "latest_version": candidate.latest_version,
                "vulnerabilities": candidate.vulnerabilities,
                "can_update": allowed,
                "should_update": wanted,
            }
            for candidate, allowed, wanted in rows
        ]
        typer.echo(json.dumps({"reports": reports}, indent=2))
        return

    table = Table(title=f"Update candidates for {file_path}")
    table.add_column("Dependency")
    table.add_column("Current")
    table.add_column("Latest")
    table.add_column("Vulnerabilities")
    table.add_column("Can update")
    table.add_column("Should update")
    for candidate, allowed, wanted in rows:
        table.add_row(
            candidate.name,
            candidate.current_version or "-",
            candidate.latest_version,
            ", ".join(candidate.vulnerabilities) or "-",
            "yes" if allowed else "no",
            "yes" if wanted else "no",
        )
    console.print(table)


if __name__ == "__main__":
    app()
