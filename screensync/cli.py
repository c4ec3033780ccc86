from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
import typer
from dotenv import load_dotenv

from screensync.config import SyncConfig, load_config
from screensync.errors import ConfigError
from screensync.executors import FfmpegExecutor, MediaTransformExecutor
from screensync.paths import get_config_path, get_ffmpeg, get_log_dir
from screensync.runner import EXIT_DEGRADED, EXIT_ERROR, EXIT_OK, PassRunner, read_status
from screensync.scheduler import Scheduler

app = typer.Typer(add_completion=False, help="Mirror a media tree into per-screen crops and keep it in sync.")

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config.json. Defaults to $SCREENSYNC_CONFIG, then ./config.json",
)


def _load(config_path: Optional[Path]) -> SyncConfig:
    load_dotenv()
    path = get_config_path(config_path)
    try:
        return load_config(path)
    except ConfigError as exc:
        typer.echo(f"Config error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR)


def _confirm_force() -> bool:
    typer.echo("WARNING: Force mode is enabled in the config")
    typer.echo("\tIt will force conversion of all files, even if the target file already exists.")
    return typer.confirm("Do you confirm?", default=False)


@app.command()
def run(
    config: Optional[Path] = ConfigOption,
    once: bool = typer.Option(False, "--once", help="Run a single pass and exit"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report deletions and conversions without touching files"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation when force is set"),
) -> None:
    cfg = _load(config)

    if cfg.any_force and not dry_run and not yes and not _confirm_force():
        typer.echo("Change the config to disable force mode.")
        raise typer.Exit(code=EXIT_OK)

    executor = MediaTransformExecutor(video=FfmpegExecutor(get_ffmpeg()))
    runner = PassRunner(cfg, executor, dry_run=dry_run)
    scheduler = Scheduler(cfg, runner)

    interactive = sys.stdin.isatty()
    if once or (not interactive and cfg.retry <= 0):
        code = scheduler.run_now()
        scheduler.shutdown()
        raise typer.Exit(code=EXIT_OK if code is None else code)

    if interactive:
        scheduler.start_key_listener(click.getchar)
        typer.echo("Press any key to run now, q to quit.")

    try:
        code = scheduler.serve()
    except KeyboardInterrupt:
        scheduler.shutdown()
        code = scheduler.last_exit_code or EXIT_OK
    raise typer.Exit(code=code)


@app.command()
def status(config: Optional[Path] = ConfigOption) -> None:
    cfg = _load(config)
    current = read_status(get_log_dir(cfg))
    if not current:
        typer.echo("No status found. Run a pass first.")
        raise typer.Exit(code=EXIT_ERROR)

    typer.echo(f"last_run: {current.get('last_run', 'unknown')}")
    typer.echo(f"pass_number: {current.get('pass_number', 0)}")
    raw_exit = current.get("last_exit_code", EXIT_ERROR)
    last_exit = int(EXIT_ERROR if raw_exit is None else raw_exit)
    typer.echo(f"last_exit_code: {last_exit}")

    if current.get("error"):
        typer.echo(f"error: {current['error']}")

    counts = current.get("counts") or {}
    if counts:
        typer.echo("counts:")
        for key in sorted(counts):
            typer.echo(f"  {key}: {counts[key]}")

    if last_exit == EXIT_OK:
        raise typer.Exit(code=EXIT_OK)
    raise typer.Exit(code=EXIT_DEGRADED if last_exit == EXIT_DEGRADED else EXIT_ERROR)


@app.command("screens")
def list_screens(config: Optional[Path] = ConfigOption) -> None:
    cfg = _load(config)
    if not cfg.screens:
        typer.echo("No screens configured.")
        return
    for p in cfg.screens.profiles:
        typer.echo(
            f"{p.name}: search={p.search!r} target={p.target!r} "
            f"scale={p.scale[0]}x{p.scale[1]} player={p.player[0]}x{p.player[1]} "
            f"align={p.align} crop_ratio={p.crop_ratio:.4f}" + (" force" if p.force else "")
        )


if __name__ == "__main__":
    app()
