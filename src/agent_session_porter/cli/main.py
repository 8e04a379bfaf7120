"""CLI entry point for agent-session-porter.

Invoked as::

    mcc [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m agent_session_porter.cli.main

Commands
--------
- list      — List sessions in the local Claude Code store
- export    — Export a session to a portable artifact
- import    — Import an artifact as a new local session
- preview   — Show what an artifact contains without importing it
- share     — Upload an artifact to the configured store
- fetch     — Download an artifact and import it
- config    — Show or change settings
- version   — Show version information

Typical workflow::

    cd /my/project && mcc export      # writes ./mcc-export.json.gz
    # send the file to a teammate, who drops it in their checkout
    cd /their/project && mcc import   # then `claude` -> /resume
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from agent_session_porter.config import PorterConfig
from agent_session_porter.errors import PortabilityError

if TYPE_CHECKING:
    from agent_session_porter.importer import ImportResult, SessionImporter
    from agent_session_porter.storage.base import ArtifactStore

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗[/red] {escape(message)}")
    sys.exit(1)


def _config(ctx: click.Context) -> PorterConfig:
    return ctx.obj["config"]


def _make_importer(config: PorterConfig) -> SessionImporter:
    from agent_session_porter.importer import SessionImporter
    from agent_session_porter.index import SessionIndex
    from agent_session_porter.locator import SessionLocator

    return SessionImporter(
        locator=SessionLocator(config.projects_dir),
        index=SessionIndex(config.index_path, lock_timeout=config.lock_timeout),
    )


def _make_store(config: PorterConfig, location: str | None = None) -> ArtifactStore:
    """Instantiate the artifact store for *location* or, failing that, the config.

    Parameters
    ----------
    config:
        Resolved settings.
    location:
        Optional artifact location.  ``s3://`` URLs select S3 regardless of
        configuration; absolute paths select their parent directory.

    Returns
    -------
    ArtifactStore
        A configured store.
    """
    from agent_session_porter.storage.filesystem import DirectoryArtifactStore

    if location and location.startswith("s3://"):
        from agent_session_porter.storage.s3 import S3ArtifactStore

        bucket = location[len("s3://"):].split("/", 1)[0]
        return S3ArtifactStore(bucket_name=bucket, prefix=config.bucket_prefix)
    if location and os.path.isabs(location):
        return DirectoryArtifactStore(Path(location).parent)
    if config.bucket:
        from agent_session_porter.storage.s3 import S3ArtifactStore

        return S3ArtifactStore(bucket_name=config.bucket, prefix=config.bucket_prefix)
    if config.storage_dir is not None:
        return DirectoryArtifactStore(config.storage_dir)
    _fail(
        "Sharing is not configured. Run: mcc config set-bucket <bucket> "
        "or mcc config set-storage-dir <dir>"
    )


def _print_import_result(result: ImportResult, title: str) -> None:
    console.print(f"[green]✓[/green] {title}")
    console.print(f"  Session:   {result.session_id}")
    console.print(f"  File:      {result.record_path}")
    console.print(f"  Project:   {result.target_root}")
    console.print(f"  Rewritten: {result.fields_rewritten} path field(s)")
    console.print("\nOpen Claude Code and run /resume to continue the session.")


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="agent-session-porter")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to config.yaml (default ~/.mcc/config.yaml or $MCC_CONFIG).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Share Claude Code sessions between machines and teammates."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = PorterConfig.load(config_path)
    except PortabilityError as exc:
        _fail(str(exc))
    ctx.obj["config_path"] = config_path


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from agent_session_porter import __version__
    from agent_session_porter.versioning import FormatVersion

    console.print(f"[bold]agent-session-porter[/bold] v{__version__}")
    console.print(f"  Envelope format: {FormatVersion.CURRENT}")


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@cli.command(name="list")
@click.option("--project", default=None, help="Only show sessions recorded in this directory.")
@click.option("--limit", default=20, show_default=True, help="Maximum rows to show.")
@click.pass_context
def list_command(ctx: click.Context, project: str | None, limit: int) -> None:
    """List sessions in the local Claude Code store, newest first."""
    from agent_session_porter.locator import SessionLocator, same_project_root

    locator = SessionLocator(_config(ctx).projects_dir)
    sessions = locator.list_sessions()
    if project:
        sessions = [s for s in sessions if same_project_root(s.project_path, project)]

    if not sessions:
        console.print("[yellow]No sessions found.[/yellow]")
        return

    table = Table(title=f"Sessions ({len(sessions)})", show_lines=False)
    table.add_column("Session ID", style="cyan", no_wrap=True)
    table.add_column("Project")
    table.add_column("Branch", style="magenta")
    table.add_column("Messages", justify="right")
    table.add_column("Modified")
    table.add_column("Summary")

    for session in sessions[:limit]:
        table.add_row(
            session.session_id,
            session.project_path,
            session.git_branch or "-",
            str(session.message_count),
            session.time_ago(),
            session.summary,
        )
    console.print(table)


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@cli.command(name="export")
@click.option("--session", "session_id", default=None, help="Session ID (default: newest here).")
@click.option(
    "--output",
    "output_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Artifact path (default: ./mcc-export.json.gz).",
)
@click.option(
    "--named",
    is_flag=True,
    help="Write a timestamped artifact to the configured export directory instead.",
)
@click.pass_context
def export_command(
    ctx: click.Context,
    session_id: str | None,
    output_file: str | None,
    named: bool,
) -> None:
    """Export a session to a portable, compressed artifact."""
    from agent_session_porter.exporter import default_export_filename, export_session
    from agent_session_porter.locator import SessionLocator

    config = _config(ctx)
    locator = SessionLocator(config.projects_dir)
    current = os.getcwd()

    try:
        if session_id:
            session = locator.get(session_id)
        else:
            session = locator.latest_for_project(current)
    except PortabilityError as exc:
        _fail(str(exc))

    if session is None:
        _fail(
            "No Claude Code session found for current directory\n"
            f"  Current: {current}\n\n"
            "Make sure you've used Claude Code in this directory first."
        )

    if output_file:
        output_path = Path(output_file)
    elif named:
        output_path = config.export_dir / default_export_filename(session)
    else:
        output_path = Path(current) / config.export_filename

    try:
        path = export_session(session, output_path, exported_by=config.exported_by)
    except PortabilityError as exc:
        _fail(f"Export failed: {exc}")

    console.print(f"[green]✓[/green] Session exported to {path}")
    console.print(f"  Session: {session.session_id}")
    console.print(f"  Summary: {session.summary}")
    console.print("\nShare with teammate:")
    console.print(f"  1. Send {path.name} via Slack/email (or: mcc share {path.name})")
    console.print("  2. They drop it in their project folder")
    console.print("  3. They run: mcc import")


# ---------------------------------------------------------------------------
# import
# ---------------------------------------------------------------------------


@cli.command(name="import")
@click.argument("artifact", required=False, type=click.Path(dir_okay=False))
@click.option(
    "--target-root",
    default=None,
    help="Project directory to restore into (default: current directory).",
)
@click.pass_context
def import_command(ctx: click.Context, artifact: str | None, target_root: str | None) -> None:
    """Import ARTIFACT (default ./mcc-export.json.gz) as a new local session."""
    config = _config(ctx)
    path = Path(artifact) if artifact else Path.cwd() / config.export_filename
    if not path.exists():
        _fail(
            f"File not found: {path}\n\n"
            f"Make sure you have {path.name} in the current directory."
        )

    importer = _make_importer(config)
    root = os.path.abspath(target_root) if target_root else os.getcwd()
    try:
        result = importer.import_file(path, target_root=root)
    except PortabilityError as exc:
        _fail(f"Import failed: {exc}")
    _print_import_result(result, "Session imported!")


# ---------------------------------------------------------------------------
# preview
# ---------------------------------------------------------------------------


@cli.command(name="preview")
@click.argument("artifact", type=click.Path(dir_okay=False))
@click.option("--json-output", is_flag=True, help="Output raw JSON instead of formatted view.")
def preview_command(artifact: str, json_output: bool) -> None:
    """Show what ARTIFACT contains without importing it."""
    from agent_session_porter.preview import preview_file

    try:
        preview = preview_file(artifact)
    except PortabilityError as exc:
        _fail(f"Preview failed: {exc}")

    if json_output:
        click.echo(preview.model_dump_json(indent=2))
        return

    meta = preview.metadata
    lines = [
        f"[bold]Version:[/bold]     {meta.format_version}",
        f"[bold]Exported by:[/bold] {meta.exported_by}",
        f"[bold]Exported at:[/bold] {meta.exported_at}",
        f"[bold]Project:[/bold]     {preview.project_path}",
        f"[bold]Session:[/bold]     {meta.source_session_id}",
        f"[bold]Summary:[/bold]     {preview.summary}",
        f"[bold]Messages:[/bold]    {preview.message_count}",
    ]
    if preview.git_branch:
        lines.append(f"[bold]Git branch:[/bold]  {preview.git_branch}")
    for key, value in meta.passthrough.items():
        lines.append(f"[dim]{key}:[/dim] {value}")
    console.print(Panel("\n".join(lines), title="Session Preview", expand=False))


# ---------------------------------------------------------------------------
# share / fetch
# ---------------------------------------------------------------------------


@cli.command(name="share")
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def share_command(ctx: click.Context, artifact: str) -> None:
    """Upload ARTIFACT to the configured store and print its location."""
    from agent_session_porter.preview import preview_file

    config = _config(ctx)
    path = Path(artifact)
    try:
        # Refuse to share something a teammate could not import.
        preview_file(path)
    except PortabilityError as exc:
        _fail(f"Not a valid artifact: {exc}")

    store = _make_store(config)
    try:
        location = store.put(path.name, path.read_bytes())
    except (PortabilityError, OSError) as exc:
        _fail(f"Upload failed: {exc}")

    console.print("[green]✓[/green] Session uploaded!")
    console.print(f"  Location: {location}")
    console.print("\nShare with your team:")
    console.print(f"  mcc fetch {location}")


@cli.command(name="fetch")
@click.argument("location")
@click.argument("target_root", required=False)
@click.pass_context
def fetch_command(ctx: click.Context, location: str, target_root: str | None) -> None:
    """Download the artifact at LOCATION and import it into TARGET_ROOT."""
    config = _config(ctx)
    store = _make_store(config, location)
    try:
        data = store.get(location)
    except (PortabilityError, OSError, ValueError) as exc:
        _fail(f"Download failed: {exc}")

    importer = _make_importer(config)
    root = os.path.abspath(target_root) if target_root else os.getcwd()
    try:
        result = importer.import_bytes(data, target_root=root)
    except PortabilityError as exc:
        _fail(f"Import failed: {exc}")
    _print_import_result(result, "Session fetched and imported!")


# ---------------------------------------------------------------------------
# config command group
# ---------------------------------------------------------------------------


@cli.group(name="config")
def config_group() -> None:
    """Show or change settings."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the resolved settings."""
    config = _config(ctx)
    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.model_dump(mode="json").items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


def _save_config(ctx: click.Context, config: PorterConfig) -> Path:
    try:
        return config.save(ctx.obj.get("config_path"))
    except PortabilityError as exc:
        _fail(f"Config failed: {exc}")


@config_group.command(name="set-bucket")
@click.argument("bucket")
@click.option("--prefix", default=None, help="Key prefix for shared artifacts.")
@click.pass_context
def config_set_bucket(ctx: click.Context, bucket: str, prefix: str | None) -> None:
    """Use the S3 BUCKET for share / fetch."""
    updates: dict[str, object] = {"bucket": bucket.removeprefix("s3://").rstrip("/")}
    if prefix is not None:
        updates["bucket_prefix"] = prefix
    config = _config(ctx).with_settings(**updates)
    path = _save_config(ctx, config)
    console.print(f"[green]✓[/green] Bucket configured: {config.bucket} ({path})")
    console.print("\nYou can now use:")
    console.print("  mcc share <artifact>       # Upload")
    console.print("  mcc fetch <s3://...>       # Download and import")


@config_group.command(name="set-storage-dir")
@click.argument("directory", type=click.Path(file_okay=False))
@click.pass_context
def config_set_storage_dir(ctx: click.Context, directory: str) -> None:
    """Use the shared DIRECTORY for share / fetch."""
    config = _config(ctx).with_settings(storage_dir=Path(directory).resolve())
    path = _save_config(ctx, config)
    console.print(f"[green]✓[/green] Storage directory configured: {config.storage_dir} ({path})")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    cli()
