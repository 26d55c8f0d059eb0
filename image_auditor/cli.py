"""
Command-line interface for the CI-Image-Auditor.

Provides a Click CLI with:
- Clear help messages
- Progress indicators
- Colored output
- Markdown and JSON image lists
"""

from __future__ import annotations

import signal
import sys
import threading
from pathlib import Path
from typing import Any, Optional

import click
import pydantic
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from image_auditor import __version__
from image_auditor.config import AuditorConfig, load_config
from image_auditor.constants import DEFAULT_FILE_NAME, DEFAULT_REF, GLYPH_ARROW
from image_auditor.core.context import RunContext
from image_auditor.core.pipeline import Pipeline
from image_auditor.core.result import AuditResult
from image_auditor.exceptions import AuditorError, ValidationError
from image_auditor.logging_config import bind_run, get_logger, setup_logging
from image_auditor.reporters import get_reporters
from image_auditor.scanners import get_scanner
from image_auditor.sources import GitLabClient, RawTransport, make_session

logger = get_logger("cli")
console = Console()


def print_banner() -> None:
    """Print the application banner."""
    console.print(
        Panel.fit(
            f"[bold]CI-Image-Auditor v{__version__}[/bold]\n"
            "Container images in your GitLab CI pipelines",
            border_style="blue",
        )
    )


@click.group()
@click.version_option(version=__version__, prog_name="image-auditor")
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress non-essential output"
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output"
)
@click.option(
    "--json-logs",
    is_flag=True,
    help="Emit logs as single-line JSON"
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, no_color: bool, json_logs: bool) -> None:
    """
    CI-Image-Auditor - Know which images your pipelines run.
    
    Lists the GitLab projects you own, reads one pipeline file from each,
    collects every `image:` directive and optionally scans each unique
    image with Trivy. Requires a personal access token in GCIS_PAT.
    
    Examples:
    
        # Audit .gitlab-ci.yml on main
        image-auditor audit
        
        # Audit another file on a tag and scan the images
        image-auditor audit --file ci/build.yml --ref v1.2.0 --trivy
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["no_color"] = no_color
    
    log_level = "DEBUG" if verbose else ("WARNING" if quiet else "INFO")
    setup_logging(level=log_level, json_output=json_logs, no_color=no_color)


@main.command()
@click.option(
    "--file", "file_name",
    default=None,
    help=f"Filename to dump from Git repo [default: {DEFAULT_FILE_NAME}]"
)
@click.option(
    "--ref",
    default=None,
    help=f"Git Ref (Branch, Tag, Commit) to dump data from [default: {DEFAULT_REF}]"
)
@click.option(
    "--trivy/--no-trivy", "trivy",
    default=None,
    help="Enable trivy scan of every unique image"
)
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to YAML configuration file"
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the image list and scan results [default: .]"
)
@click.option(
    "--gitlab-url",
    default=None,
    help="GitLab instance URL [default: https://gitlab.com]"
)
@click.option(
    "--format", "-f", "report_format",
    type=click.Choice(["markdown", "json", "all"]),
    default=None,
    help="Image list format [default: markdown]"
)
@click.option(
    "--workers", "-w",
    type=click.IntRange(1, 64),
    default=None,
    help="Concurrent probes/fetches [default: 8]"
)
@click.option(
    "--scan-workers",
    type=click.IntRange(1, 16),
    default=None,
    help="Concurrent scanner processes [default: 2]"
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds before a raw-file request counts as failed [default: 15]"
)
@click.option(
    "--strict-transport/--lenient-transport", "strict_transport",
    default=None,
    help="Abort the run on connection errors instead of skipping the URL"
)
@click.pass_context
def audit(
    ctx: click.Context,
    file_name: Optional[str],
    ref: Optional[str],
    trivy: Optional[bool],
    config_path: Optional[Path],
    output_dir: Optional[Path],
    gitlab_url: Optional[str],
    report_format: Optional[str],
    workers: Optional[int],
    scan_workers: Optional[int],
    timeout: Optional[float],
    strict_transport: Optional[bool],
) -> None:
    """
    Audit pipeline images across your GitLab projects.
    
    Writes imagelist-<timestamp>.md and, with --trivy, one report per
    image with findings under scans-<timestamp>/.
    """
    quiet = ctx.obj.get("quiet", False)
    
    overrides: dict[str, Any] = {
        "file_name": file_name,
        "ref": ref,
        "output_dir": output_dir,
        "fail_on_transport_error": strict_transport,
        "gitlab": {"url": gitlab_url},
        "probe": {"workers": workers, "timeout_seconds": timeout},
        "scan": {"enabled": trivy, "workers": scan_workers},
        "report": {"format": report_format},
    }
    
    try:
        config = load_config(config_path, **overrides)
    except pydantic.ValidationError as e:
        console.print(f"\n[red]Configuration Error:[/red] {_first_error(e)}")
        sys.exit(2)
    except ValidationError as e:
        console.print(f"\n[red]Validation Error:[/red] {e}")
        sys.exit(2)
    except AuditorError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        sys.exit(1)
    
    try:
        result, context = _run_audit(config, quiet)
    except ValidationError as e:
        console.print(f"\n[red]Validation Error:[/red] {e}")
        sys.exit(2)
    except AuditorError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Audit cancelled by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        logger.exception("Unexpected error during audit")
        console.print(f"\n[red]Unexpected error:[/red] {e}")
        sys.exit(1)
    
    if not quiet:
        _display_summary(result, context)
    
    if result.cancelled:
        console.print("\n[yellow]Audit cancelled, partial image list written[/yellow]")
        sys.exit(130)
    
    if not quiet:
        console.print("\n[green]✓ Audit completed successfully[/green]")
    sys.exit(0)


@main.command()
def version() -> None:
    """Display version information."""
    console.print(f"CI-Image-Auditor v{__version__}")


def _run_audit(config: AuditorConfig, quiet: bool) -> tuple[AuditResult, RunContext]:
    """Check preconditions and run the pipeline, which writes the reports."""
    # Fatal before any network call
    token = config.require_token()
    
    scanner = None
    if config.scan.enabled:
        scanner = get_scanner(config.scan)
        scanner.preflight()
    
    if not quiet:
        print_banner()
    
    session = make_session(config.gitlab.verify_ssl)
    client = GitLabClient(config.gitlab, token=token, session=session)
    transport = RawTransport.from_config(
        config.probe,
        session=session,
        strict=config.fail_on_transport_error,
    )
    context = RunContext.create(config.output_dir, config.file_name, config.ref)
    bind_run(context.timestamp)
    
    previous_handler = _install_sigterm_handler(context)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=quiet,
            transient=True,
        ) as progress:
            task = progress.add_task("Initializing...", total=None)
            
            def update_progress(stage: str, detail: str) -> None:
                progress.update(task, description=f"[bold]{stage}[/bold] {detail}")
            
            pipeline = Pipeline(
                config,
                context,
                client,
                transport,
                scanner=scanner,
                progress_callback=update_progress,
                reporters=get_reporters(config.report.format),
            )
            result = pipeline.run()
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)
        session.close()
    
    if not quiet:
        for path in result.reports:
            console.print(f"Image list saved as {path}")
    return result, context


def _install_sigterm_handler(context: RunContext) -> Any:
    """Turn SIGTERM into a graceful cancel. Only possible on the main thread."""
    if threading.current_thread() is not threading.main_thread():
        return None
    return signal.signal(signal.SIGTERM, lambda signum, frame: context.cancel())


def _display_summary(result: AuditResult, context: RunContext) -> None:
    """Display the project -> images listing and scan outcomes."""
    console.print()
    
    for project_url, images in result.project_images.items():
        console.print(f"{GLYPH_ARROW} {project_url} ({context.file_name})", highlight=False)
        for image in images:
            console.print(f"    {GLYPH_ARROW}  {image}", highlight=False)
    
    table = Table(title="Audit Summary", show_header=True)
    table.add_column("Stage", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Projects", str(len(result.projects)))
    table.add_row("Reachable files", f"[green]{len(result.live)}[/green]")
    table.add_row("Unreachable files", f"[red]{len(result.unreachable)}[/red]")
    table.add_row("Projects with images", str(len(result.project_images)))
    table.add_row("Unique images", str(len(result.unique_images)))
    if result.scans:
        table.add_row("Scan reports kept", str(len(result.kept_scans)))
        table.add_row("Scans failed", f"[red]{len(result.failed_scans)}[/red]")
    
    console.print()
    console.print(table)
    
    if result.kept_scans:
        console.print(f"Scan results in {context.scan_dir}")


def _first_error(error: pydantic.ValidationError) -> str:
    """Compact description of the first pydantic validation error."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "")


if __name__ == "__main__":
    main()
