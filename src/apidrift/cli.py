from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import typer
from rich.console import Console
from rich.table import Table

from apidrift.common.logging import configure_logging
from apidrift.config import Settings
from apidrift.contract.loader import load_contract
from apidrift.domain.models import DivergenceReport, Summary
from apidrift.errors import ApiDriftError
from apidrift.inventory.endpoints import build_contract_inventory, build_observed_inventory
from apidrift.orchestrator.pipeline import run_check
from apidrift.repo.scanner import scan_observed_endpoints, scan_source_files
from apidrift.store.cache import FingerprintCache

# exit codes: tooling failure must be distinguishable from divergences found
EXIT_OK = 0
EXIT_TOOL_ERROR = 1
EXIT_DIVERGENCES = 2

_FAIL_LEVELS = ("high", "medium", "low", "never")

app = typer.Typer(no_args_is_help=True, add_completion=False)

endpoints_app = typer.Typer(no_args_is_help=True)
app.add_typer(endpoints_app, name="endpoints")

cache_app = typer.Typer(no_args_is_help=True)
app.add_typer(cache_app, name="cache")

console = Console()
err_console = Console(stderr=True)


def _resolve_dir(path: str, label: str) -> Path:
    p = Path(path).expanduser().resolve()
    if not p.exists():
        raise typer.BadParameter(f"{label} does not exist: {p}")
    if not p.is_dir():
        raise typer.BadParameter(f"{label} is not a directory: {p}")
    return p


def _resolve_file(path: str, label: str) -> Path:
    p = Path(path).expanduser().resolve()
    if not p.is_file():
        raise typer.BadParameter(f"{label} is not a file: {p}")
    return p


def _cache_dir(explicit: Optional[str], settings: Settings) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    return settings.cache_dir or FingerprintCache.cache_dir_for_project(Path.cwd())


def _output_dir(explicit: Optional[str], settings: Settings) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    return settings.output_dir or Path("apidrift-out")


def _report_error(e: ApiDriftError) -> None:
    err_console.print(f"[bold red]{e.__class__.__name__}[/bold red]: {e.message}")
    if e.raw_text:
        err_console.print("[bold]Raw oracle output:[/bold]")
        err_console.print(e.raw_text, markup=False, highlight=False)


def should_fail(summary: Summary, fail_on: str) -> bool:
    if fail_on == "never":
        return False
    if fail_on == "low":
        return summary.high_severity + summary.medium_severity + summary.low_severity > 0
    if fail_on == "medium":
        return summary.high_severity + summary.medium_severity > 0
    return summary.high_severity > 0


def _print_report(report: DivergenceReport, limit: int) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("IMPL", no_wrap=True)
    table.add_column("SEVERITY", no_wrap=True)
    table.add_column("DIVERGENCES")

    styles = {"HIGH": "bold red", "MEDIUM": "yellow", "LOW": "dim"}
    for api in report.apis[:limit]:
        sev = api.severity or "-"
        divs = "\n".join(f"{d.type}: {d.details}" if d.details else d.type for d in api.divergences)
        table.add_row(
            api.method,
            api.path,
            "yes" if api.implemented else "no",
            f"[{styles[sev]}]{sev}[/{styles[sev]}]" if sev in styles else sev,
            divs or "-",
        )
    console.print(table)
    if len(report.apis) > limit:
        console.print(f"  … and {len(report.apis) - limit} more")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    configure_logging(level=logging.DEBUG if verbose else logging.WARNING, force=True)


@app.command()
def check(
    contract: str = typer.Argument(..., help="Path to the OpenAPI/Swagger document (YAML or JSON)"),
    source: str = typer.Argument(..., help="Path to the implementation source tree"),
    out: Optional[str] = typer.Option(None, help="Directory for report.json, Postman collection and tests (default: ./apidrift-out)"),
    cache_dir: Optional[str] = typer.Option(None, help="Cache directory (default: ./.apidrift/cache)"),
    force: bool = typer.Option(False, "--force", help="Ignore cached results and call the oracle again"),
    check_fields: bool = typer.Option(False, "--check-fields", help="Flag response fields absent from handler source"),
    fail_on: str = typer.Option("high", help="Exit 2 on divergences at or above: high|medium|low|never"),
    max_files: Optional[int] = typer.Option(None, help="Limit scanned files (debug)"),
    limit: int = typer.Option(200, help="Max rows to print"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    # invalid option values are reported here so they exit 1 like other usage errors
    fail_on = fail_on.lower().strip()
    try:
        if fail_on not in _FAIL_LEVELS:
            raise typer.BadParameter(f"fail-on must be one of: {', '.join(_FAIL_LEVELS)}")
        contract_path = _resolve_file(contract, "Contract")
        source_path = _resolve_dir(source, "Source path")
    except typer.BadParameter as e:
        err_console.print(f"[bold red]Invalid input[/bold red]: {e.message}")
        raise typer.Exit(code=EXIT_TOOL_ERROR)

    try:
        settings = Settings.from_environment()
        result = run_check(
            contract_path,
            source_path,
            cache_dir=_cache_dir(cache_dir, settings),
            output_dir=_output_dir(out, settings),
            settings=settings,
            force=force,
            check_fields=check_fields,
            max_files=max_files,
        )
    except ApiDriftError as e:
        _report_error(e)
        raise typer.Exit(code=EXIT_TOOL_ERROR)
    except OSError as e:
        err_console.print(f"[bold red]I/O error[/bold red]: {e}")
        raise typer.Exit(code=EXIT_TOOL_ERROR)

    report = result.report
    s = report.summary

    if format.lower() == "json":
        console.print_json(report.to_json())
    else:
        console.print(f"[bold green]apidrift[/bold green] check: {contract_path} vs {source_path}")
        console.print(
            f"Contract endpoints: {result.contract_endpoints}  "
            f"Source endpoints: {result.observed_endpoints} ({result.files_scanned} files)"
        )
        if result.from_cache:
            console.print(f"Result: cached ({(result.fingerprint or '')[:12]})")
        console.print("")
        _print_report(report, limit)
        console.print("")
        console.print(
            f"Total APIs: {s.total_apis}  "
            f"[bold red]HIGH {s.high_severity}[/bold red]  "
            f"[yellow]MEDIUM {s.medium_severity}[/yellow]  "
            f"LOW {s.low_severity}  "
            f"(missing {s.missing_endpoints}, extra {s.extra_endpoints})"
        )
        for name, path in result.artifacts.items():
            if path:
                console.print(f"Wrote {name}: {path}")

    if result.cache_error:
        err_console.print(f"[yellow]warning[/yellow]: result not cached: {result.cache_error}")

    if should_fail(s, fail_on):
        err_console.print(f"[bold red]Divergences at or above {fail_on.upper()} severity found.[/bold red]")
        raise typer.Exit(code=EXIT_DIVERGENCES)


@endpoints_app.command("contract")
def endpoints_contract(
    contract: str = typer.Argument(..., help="Path to the OpenAPI/Swagger document"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    try:
        loaded = load_contract(_resolve_file(contract, "Contract"))
    except ApiDriftError as e:
        _report_error(e)
        raise typer.Exit(code=EXIT_TOOL_ERROR)

    inventory = build_contract_inventory(loaded.endpoints)
    rows = sorted(inventory.values(), key=lambda e: (e.path, e.method))

    if format.lower() == "json":
        console.print(json.dumps([r.model_dump(mode="json") for r in rows], indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("REQUEST FIELDS")
    table.add_column("REQUIRED")
    table.add_column("RESPONSE FIELDS")
    for r in rows:
        table.add_row(
            r.method,
            r.path,
            ", ".join(r.expected_request_fields),
            ", ".join(r.required_fields),
            ", ".join(r.expected_response_fields),
        )
    console.print(f"[bold]Endpoints:[/bold] {len(rows)}")
    console.print(table)


@endpoints_app.command("source")
def endpoints_source(
    source: str = typer.Argument(..., help="Path to the implementation source tree"),
    max_files: Optional[int] = typer.Option(None, help="Limit scanned files (debug)"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    root = _resolve_dir(source, "Source path")
    files = scan_source_files(root, max_files=max_files)
    inventory = build_observed_inventory(scan_observed_endpoints(root, files))
    rows = sorted(inventory.values(), key=lambda e: (e.path, e.method))

    if format.lower() == "json":
        console.print(json.dumps([r.model_dump(mode="json", exclude={"snippet"}) for r in rows], indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("HANDLER")
    table.add_column("FILE:LINE", no_wrap=True)
    for r in rows:
        table.add_row(r.method, r.path, r.handler_name or "-", r.source_location)
    console.print(f"[bold]Files scanned:[/bold] {len(files)}")
    console.print(f"[bold]Endpoints:[/bold] {len(rows)}")
    console.print(table)


@cache_app.command("list")
def cache_list(
    cache_dir: Optional[str] = typer.Option(None, help="Cache directory (default: ./.apidrift/cache)"),
) -> None:
    cache = FingerprintCache(_cache_dir(cache_dir, Settings.from_environment()))
    entries = cache.entries()
    console.print(f"[bold]Cache:[/bold] {cache.cache_dir}")
    console.print(f"[bold]Entries:[/bold] {len(entries)}")
    for fp in entries:
        console.print(f"  {fp}")


@cache_app.command("clear")
def cache_clear(
    cache_dir: Optional[str] = typer.Option(None, help="Cache directory (default: ./.apidrift/cache)"),
) -> None:
    cache = FingerprintCache(_cache_dir(cache_dir, Settings.from_environment()))
    try:
        removed = cache.clear()
    except ApiDriftError as e:
        _report_error(e)
        raise typer.Exit(code=EXIT_TOOL_ERROR)
    console.print(f"Removed {removed} cache entries from {cache.cache_dir}")


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    # click exits 2 on usage errors, which would read as "divergences found"
    try:
        code = app(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        code = EXIT_TOOL_ERROR
    except click.Abort:
        err_console.print("Aborted.")
        code = EXIT_TOOL_ERROR
    sys.exit(code or EXIT_OK)


if __name__ == "__main__":
    main()
