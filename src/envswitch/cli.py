"""CLI entrypoint for envswitch."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from envswitch.core.config import CURRENT_ENV, LogFormat, Settings, get_settings
from envswitch.core.errors import EnvSwitchError
from envswitch.core.logging import setup_logging
from envswitch.envfile.parser import check_required, security_check, validate_format
from envswitch.ops.backups import BackupManager
from envswitch.ops.environments import EnvironmentManager

app = typer.Typer(name="envswitch", help="Manage per-environment .env files", add_completion=False)
backup_app = typer.Typer(help="Backup management commands", add_completion=False)
app.add_typer(backup_app, name="backup")

RULE = "-" * 80
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (EnvSwitchError, OSError, UnicodeDecodeError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj


@app.callback()
def main(
    ctx: typer.Context,
    project_path: Path | None = typer.Option(
        None, "--project-path", "-p", help="Project directory (default: ENVSWITCH_PROJECT_PATH or .)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    log_format: LogFormat | None = typer.Option(None, "--log-format", help="Log format: console|json"),
) -> None:
    settings = get_settings()
    if project_path is not None:
        settings = settings.model_copy(update={"project_path": project_path})
    setup_logging(level="DEBUG" if debug else settings.log_level, fmt=log_format)
    ctx.obj = settings


@app.command()
def init(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Create .env from the example without asking"),
) -> None:
    """Show the active environment, or bootstrap one from the example file."""
    settings = _settings(ctx)
    manager = EnvironmentManager(settings)
    with _cli_errors():
        current = manager.current()
        if current is not None:
            typer.echo("Environment management initialized")
            typer.echo(f"Current environment: {current.environment}")
            typer.echo(f"File size: {current.size} bytes")
            typer.echo(f"Variables: {current.variable_count}")
            return

        typer.echo(f"No {settings.env_file_name} file found")
        example = settings.project_path / settings.default_source
        if not example.exists():
            typer.echo(f"Create {settings.default_source} or run 'envswitch create <name> --template'")
            return
        if yes or typer.confirm(f"Create {settings.env_file_name} from {settings.default_source}?", default=True):
            manager.create("local", settings.default_source)
            manager.switch("local")
            typer.echo("Created and switched to: local")


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Environment name, e.g. staging"),
    source: str | None = typer.Option(None, "--from", "-f", help="Source file (default .env.example)"),
    template: bool = typer.Option(False, "--template", "-t", help="Use a built-in template"),
) -> None:
    """Create a new environment file."""
    manager = EnvironmentManager(_settings(ctx))
    with _cli_errors():
        target = manager.create(name, source, use_template=template)
    typer.echo(f"Environment file created: {target.name}")


@app.command()
def switch(ctx: typer.Context, name: str = typer.Argument(..., help="Environment to activate")) -> None:
    """Switch the active .env to a named environment."""
    manager = EnvironmentManager(_settings(ctx))
    with _cli_errors():
        validation = manager.switch(name)
    typer.echo(f"Switched to environment: {name}")
    for error in validation.errors:
        typer.secho(f"  x {error}", fg=typer.colors.RED)


@app.command("list")
def list_environments(ctx: typer.Context) -> None:
    """List environment files."""
    manager = EnvironmentManager(_settings(ctx))
    with _cli_errors():
        environments = manager.list()
    if not environments:
        typer.echo("No environment files found")
        return

    typer.echo(RULE)
    for env in environments:
        marker = "* " if env.is_current else "  "
        size = f"{env.size} bytes"
        typer.echo(f"{marker}{env.name:<20} {size:<15} {env.modified.strftime(DATE_FORMAT)}")
    typer.echo(RULE)
    typer.echo(f"Total: {len(environments)} environment files")


app.command("ls", hidden=True)(list_environments)


@app.command()
def current(ctx: typer.Context) -> None:
    """Show information about the active environment."""
    manager = EnvironmentManager(_settings(ctx))
    with _cli_errors():
        info = manager.current()
    if info is None:
        typer.echo("No .env file found")
        return

    typer.echo(f"Environment: {info.environment}")
    typer.echo(f"File: {info.file}")
    typer.echo(f"Size: {info.size} bytes")
    typer.echo(f"Variables: {info.variable_count}")
    typer.echo(f"Modified: {info.modified.strftime(DATE_FORMAT)}")
    typer.echo(f"Status: {'valid' if info.valid else 'has errors'}")
    for error in info.errors:
        typer.secho(f"  x {error}", fg=typer.colors.RED)
    for warning in info.warnings:
        typer.secho(f"  ! {warning}", fg=typer.colors.YELLOW)


@app.command()
def diff(
    ctx: typer.Context,
    env1: str = typer.Argument(..., help="First environment"),
    env2: str = typer.Argument(CURRENT_ENV, help="Second environment (default: current)"),
    as_json: bool = typer.Option(False, "--json", help="Print the diff as JSON"),
) -> None:
    """Compare the variables of two environments."""
    manager = EnvironmentManager(_settings(ctx))
    with _cli_errors():
        result = manager.diff(env1, env2)

    if as_json:
        payload = {
            "added": result.added,
            "removed": result.removed,
            "changed": {k: {"from": v.from_value, "to": v.to_value} for k, v in result.changed.items()},
            "unchanged": result.unchanged,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(f"Comparing {env1} with {env2}")
    typer.echo(RULE)
    for key, value in sorted(result.added.items()):
        typer.secho(f"  + {key}={value}", fg=typer.colors.GREEN)
    for key, value in sorted(result.removed.items()):
        typer.secho(f"  - {key}={value}", fg=typer.colors.RED)
    for key, change in sorted(result.changed.items()):
        typer.secho(f"  ~ {key}:", fg=typer.colors.YELLOW)
        typer.echo(f"    - {change.from_value}")
        typer.echo(f"    + {change.to_value}")
    typer.echo(f"\n{result.total_differences} differences, {len(result.unchanged)} unchanged")


@app.command()
def validate(
    ctx: typer.Context,
    name: str = typer.Argument(CURRENT_ENV, help="Environment to validate (default: current)"),
    security: bool = typer.Option(True, "--security/--no-security", help="Flag insecure-looking values"),
) -> None:
    """Check syntax (and optionally insecure defaults) of an environment file."""
    path = _settings(ctx).named_env_file(name)
    with _cli_errors():
        result = validate_format(path)
    for error in result.errors:
        typer.secho(f"  x {error}", fg=typer.colors.RED)
    for warning in result.warnings:
        typer.secho(f"  ! {warning}", fg=typer.colors.YELLOW)
    if security:
        for warning in security_check(path):
            typer.secho(f"  ! {warning}", fg=typer.colors.YELLOW)

    if not result.valid:
        typer.echo(f"{path.name}: {len(result.errors)} errors")
        raise typer.Exit(code=1)
    typer.echo(f"{path.name}: valid")


@app.command()
def check(
    ctx: typer.Context,
    name: str = typer.Argument(CURRENT_ENV, help="Environment to check (default: current)"),
    require: list[str] = typer.Option([], "--require", "-r", help="Variable that must be set (repeatable)"),
) -> None:
    """Verify required variables are present and non-empty."""
    path = _settings(ctx).named_env_file(name)
    with _cli_errors():
        result = check_required(path, require)
    for key in result.missing:
        typer.secho(f"  x missing: {key}", fg=typer.colors.RED)
    for key in result.empty:
        typer.secho(f"  x empty: {key}", fg=typer.colors.RED)
    if not result.valid:
        raise typer.Exit(code=1)
    typer.echo(f"{path.name}: all {len(require)} required variables set")


@backup_app.command("create")
def backup_create(
    ctx: typer.Context,
    custom_name: str | None = typer.Argument(None, help="Name to use instead of the environment name"),
    env: str | None = typer.Option(None, "--env", "-e", help="Back up .env.<env> instead of .env"),
) -> None:
    """Create a backup."""
    manager = BackupManager(_settings(ctx))
    with _cli_errors():
        file_name = manager.create(env, custom_name)
    typer.echo(f"Backup created: {file_name}")


@backup_app.command("list")
def backup_list(ctx: typer.Context) -> None:
    """List backups, newest first."""
    manager = BackupManager(_settings(ctx))
    with _cli_errors():
        backups = manager.list()
    if not backups:
        typer.echo("No backups found")
        return

    typer.echo(RULE)
    typer.echo(f"{'Environment':<15}{'Timestamp':<20}{'Size':<15}{'Created':<22}Age")
    typer.echo(RULE)
    for b in backups:
        size = f"{b.size} bytes"
        typer.echo(f"{b.env_name:<15}{b.timestamp:<20}{size:<15}{b.created.strftime(DATE_FORMAT):<22}{b.age}")
    typer.echo(RULE)
    typer.echo(f"Total: {len(backups)} backups")


backup_app.command("ls", hidden=True)(backup_list)


@backup_app.command("restore")
def backup_restore(
    ctx: typer.Context,
    backup_name: str = typer.Argument(..., help="Backup file name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Restore the active .env from a backup."""
    manager = BackupManager(_settings(ctx))
    if not yes and not typer.confirm(
        f"Restore from {backup_name}? This overwrites the current .env file.", default=False
    ):
        typer.echo("Restore cancelled")
        return
    with _cli_errors():
        manager.restore(backup_name)
    typer.echo(f"Restored from backup: {backup_name}")


@backup_app.command("clean")
def backup_clean(
    ctx: typer.Context,
    days: int | None = typer.Option(None, "--days", "-d", min=0, help="Delete backups older than this (default 30)"),
    keep: int | None = typer.Option(None, "--keep", "-k", min=0, help="Always keep this many newest (default 5)"),
) -> None:
    """Delete old backups, always keeping the newest few."""
    manager = BackupManager(_settings(ctx))
    with _cli_errors():
        result = manager.clean(days, keep)
    typer.echo(f"Deleted: {result.deleted}, kept: {result.kept}")


@backup_app.command("info")
def backup_info(ctx: typer.Context, backup_name: str = typer.Argument(..., help="Backup file name")) -> None:
    """Show details of one backup."""
    manager = BackupManager(_settings(ctx))
    with _cli_errors():
        info = manager.get_backup_info(backup_name)
    typer.echo(f"File: {info.file_name}")
    typer.echo(f"Environment: {info.env_name}")
    typer.echo(f"Timestamp: {info.timestamp}")
    typer.echo(f"Size: {info.size} bytes")
    typer.echo(f"Created: {info.created.strftime(DATE_FORMAT)} ({info.age})")
    typer.echo(f"Variables: {info.variable_count}")
    typer.echo(f"Lines: {info.line_count}")


@backup_app.command("history")
def backup_history(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=0, help="Number of recent entries"),
) -> None:
    """Show recent backup, restore and switch actions."""
    manager = BackupManager(_settings(ctx))
    with _cli_errors():
        entries = manager.history(limit)
    if not entries:
        typer.echo("No history recorded")
        return
    for entry in entries:
        subject = entry.get("backupFile") or entry.get("target") or ""
        typer.echo(f"{entry.get('timestamp', '')}  {entry.get('action', ''):<8} {subject}")


if __name__ == "__main__":
    app()
