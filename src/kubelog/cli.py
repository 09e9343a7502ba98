"""
Command line front end for kubelog.

Streamed log lines go to stdout; status, tables and diagnostics go to stderr.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .export.formatter import ExportOptions, write_export
from .managers.session import SessionStatus, SessionUpdate, UpdateKind
from .managers.viewer import LogViewer
from .models.log_line import filter_lines
from .transport.connector import StreamConnector
from .transport.kube_api import KubeApiClient
from .utils.config import KubeLogConfig, load_config
from .utils.errors import KubeLogError, ExportError
from .utils.logging import setup_logging, get_logger


logger = get_logger("kubelog.cli")

err_console = Console(stderr=True)

_PHASE_STYLES = {
    "Running": "green",
    "Succeeded": "blue",
    "Pending": "yellow",
    "Failed": "red",
}


def _report_error(error: KubeLogError) -> None:
    err_console.print(f"[red]Error:[/red] {error}", markup=True, highlight=False)
    for suggestion in error.get_suggestions():
        err_console.print(f"  - {suggestion}", highlight=False)


@click.group()
@click.version_option(__version__, prog_name="kubelog")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Configuration file (YAML, TOML or JSON)")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Diagnostic log level")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], log_level: Optional[str]) -> None:
    """kubelog - stream and export Kubernetes pod logs."""
    extra = {"logging": {"level": log_level.upper()}} if log_level else None
    try:
        config = load_config([config_path] if config_path else None, extra_config=extra)
    except KubeLogError as e:
        _report_error(e)
        ctx.exit(2)
        return

    setup_logging(
        app_name=config.app_name,
        log_level="DEBUG" if config.debug else config.logging.level,
        log_dir=config.logging.directory,
        enable_json=config.logging.format == "json",
        enable_file=config.logging.enable_file,
        enable_sentry=config.logging.enable_sentry,
        sentry_dsn=config.logging.sentry_dsn,
        max_bytes=config.logging.max_size,
        backup_count=config.logging.backup_count,
    )
    ctx.obj = config


@cli.command("namespaces")
@click.pass_obj
def namespaces_cmd(config: KubeLogConfig) -> None:
    """List Active namespaces."""

    async def run():
        async with KubeApiClient(config.api) as client:
            return await client.list_namespaces()

    try:
        names = asyncio.run(run())
    except KubeLogError as e:
        _report_error(e)
        sys.exit(1)

    for name in names:
        click.echo(name)


@cli.command("pods")
@click.argument("namespace")
@click.pass_obj
def pods_cmd(config: KubeLogConfig, namespace: str) -> None:
    """List pods in NAMESPACE."""

    async def run():
        async with KubeApiClient(config.api) as client:
            return await client.list_pods(namespace)

    try:
        pods = asyncio.run(run())
    except KubeLogError as e:
        _report_error(e)
        sys.exit(1)

    if not pods:
        err_console.print(f"No pods in namespace {namespace}", highlight=False)
        return

    table = Table(title=f"Pods in {namespace}")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Ready", justify="right")
    table.add_column("Restarts", justify="right")
    table.add_column("Age", justify="right")

    for pod in pods:
        style = _PHASE_STYLES.get(pod.phase, "white")
        table.add_row(
            pod.name,
            f"[{style}]{pod.phase}[/{style}]",
            pod.ready_label,
            str(pod.restarts),
            pod.age,
        )

    Console().print(table)


@cli.command("logs")
@click.argument("namespace")
@click.argument("pod")
@click.option("--tail", "tail_lines", type=click.IntRange(min=1), default=100,
              show_default=True, help="Number of most recent lines")
@click.option("--grep", "search", default=None, help="Only lines whose message contains TEXT")
@click.pass_obj
def logs_cmd(config: KubeLogConfig, namespace: str, pod: str, tail_lines: int, search: Optional[str]) -> None:
    """Print a one-shot snapshot of POD's log."""

    async def run():
        async with KubeApiClient(config.api) as client:
            return await client.fetch_logs(namespace, pod, tail_lines=tail_lines)

    try:
        lines = asyncio.run(run())
    except KubeLogError as e:
        _report_error(e)
        sys.exit(1)

    for line in filter_lines(lines, search=search):
        click.echo(line.original)


@cli.command("tail")
@click.argument("namespace")
@click.argument("pod")
@click.option("--since-seconds", type=click.IntRange(min=1), default=None,
              help="Only lines newer than N seconds")
@click.option("--since-time", default=None, help="Only lines after an RFC3339 timestamp")
@click.option("--grep", "search", default=None, help="Only print lines whose message contains TEXT")
@click.option("--export", "export_dir", is_flag=False, flag_value="", default=None,
              metavar="[DIR]", help="Write the buffered lines to DIR (or the configured export directory) on exit")
@click.option("--filename", default=None, help="Export file name")
@click.option("--no-timestamps", is_flag=True, help="Strip timestamps from the export")
@click.option("--no-metadata", is_flag=True, help="Omit the export header")
@click.pass_obj
def tail_cmd(
    config: KubeLogConfig,
    namespace: str,
    pod: str,
    since_seconds: Optional[int],
    since_time: Optional[str],
    search: Optional[str],
    export_dir: Optional[str],
    filename: Optional[str],
    no_timestamps: bool,
    no_metadata: bool,
) -> None:
    """Follow POD's log until it ends or Ctrl-C."""
    if since_seconds is not None and since_time is not None:
        raise click.UsageError("--since-seconds and --since-time are mutually exclusive")

    export_path = None
    if export_dir is not None:
        export_path = Path(export_dir) if export_dir else config.export.directory

    options = ExportOptions(
        filename=filename,
        include_timestamps=config.export.include_timestamps and not no_timestamps,
        include_metadata=config.export.include_metadata and not no_metadata,
    )

    try:
        status = asyncio.run(_follow(
            config, namespace, pod, since_seconds, since_time, search, export_path, options
        ))
    except KeyboardInterrupt:
        err_console.print("Stopped.", highlight=False)
        return
    except KubeLogError as e:
        _report_error(e)
        sys.exit(2)

    if status == SessionStatus.FAILED:
        sys.exit(1)


async def _follow(
    config: KubeLogConfig,
    namespace: str,
    pod: str,
    since_seconds: Optional[int],
    since_time: Optional[str],
    search: Optional[str],
    export_dir: Optional[Path],
    options: ExportOptions,
) -> SessionStatus:
    """Stream one pod until the session ends; export on the way out."""
    viewer = LogViewer(StreamConnector(config.api), config.stream)
    finished = asyncio.Event()
    max_retries = config.stream.max_retries

    def on_update(update: SessionUpdate) -> None:
        if update.kind == UpdateKind.LINES:
            for line in filter_lines(update.lines, search=search):
                click.echo(line.original)
            return

        if update.kind != UpdateKind.STATUS:
            return

        if update.status == SessionStatus.RETRYING:
            session = viewer.session
            attempt = session.retry_count if session else "?"
            err_console.print(
                f"[yellow]Retrying ({attempt}/{max_retries})[/yellow] {update.error}",
                highlight=False
            )
        elif update.status == SessionStatus.STREAMING:
            err_console.print(f"[green]Streaming[/green] {namespace}/{pod}", highlight=False)
        elif update.status == SessionStatus.FAILED:
            if update.error is not None:
                _report_error(update.error)
            finished.set()
        elif update.status == SessionStatus.STOPPED:
            finished.set()

    viewer.subscribe(on_update)
    session = None
    outcome = SessionStatus.IDLE
    try:
        session = await viewer.select(
            namespace, pod, since_seconds=since_seconds, since_time=since_time
        )
        if session is not None:
            await finished.wait()
            outcome = session.status
    finally:
        await viewer.close()
        if session is not None and export_dir is not None:
            await _export(session, export_dir, options)

    return outcome


async def _export(session, export_dir: Path, options: ExportOptions) -> None:
    try:
        document = session.export_logs(options=options)
    except ExportError as e:
        err_console.print(f"[yellow]Nothing exported:[/yellow] {e}", highlight=False)
        return

    path = await write_export(document, export_dir)
    err_console.print(
        f"Exported {document.line_count} lines to {path}", highlight=False
    )


def main() -> None:
    cli(prog_name="kubelog")


if __name__ == "__main__":
    main()
