from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from screensync.config import SyncConfig
from screensync.dispatcher import TransformDispatcher
from screensync.executors import Executor
from screensync.jsonl_logger import JsonlLogger
from screensync.models import CONVERTED, COPIED, DELETED, FAILED, OUTCOMES, Deletion
from screensync.notify import notify
from screensync.paths import get_log_dir
from screensync.time_utils import local_date_str, local_timestamp_str
from screensync.walker import reconcile_destination, walk_source

EXIT_OK = 0
EXIT_DEGRADED = 1
EXIT_ERROR = 2

BANNER = [
    "------------------------",
    " ___  ___ _ __ ___  ___ _ __  ___ _   _ _ __   ___ ",
    "/ __|/ __| '__/ _ \\/ _ \\ '_ \\/ __| | | | '_ \\ / __|",
    "\\__ \\ (__| | |  __/  __/ | | \\__ \\ |_| | | | | (__ ",
    "|___/\\___|_|  \\___|\\___|_| |_|___/\\__, |_| |_|\\___|",
    "                                  |___/            ",
]


@dataclass
class PassReport:
    run_ts: str
    pass_number: int
    dry_run: bool
    force: bool
    counts: Counter
    deletions: list[Deletion] = field(default_factory=list)
    walk_errors: int = 0

    @property
    def failed_count(self) -> int:
        return int(self.counts.get(FAILED, 0)) + self.walk_errors

    @property
    def work_count(self) -> int:
        """Writes and deletions performed by this pass."""
        return sum(int(self.counts.get(key, 0)) for key in (CONVERTED, COPIED, DELETED))


def print_config(config: SyncConfig) -> None:
    for line in BANNER:
        print(line)
    print("RUN: ")
    for key, value in config.display_items():
        print(f"{key.ljust(10)}: {value}")


def _build_summary(report: PassReport) -> list[str]:
    lines = [
        f"--- Pass Summary [{report.run_ts}] ---",
        f"pass: {report.pass_number}",
        f"dry_run: {report.dry_run}",
        f"force: {report.force}",
    ]
    for key in OUTCOMES:
        lines.append(f"{key}: {report.counts.get(key, 0)}")
    lines.append(f"WALK_ERRORS: {report.walk_errors}")
    return lines


def _status_path(log_dir: Path) -> Path:
    return log_dir / "status.json"


def _write_status(log_dir: Path, report: PassReport, exit_code: int) -> None:
    payload = {
        "last_run": report.run_ts,
        "last_exit_code": exit_code,
        "pass_number": report.pass_number,
        "dry_run": report.dry_run,
        "force": report.force,
        "counts": {key: int(report.counts.get(key, 0)) for key in OUTCOMES},
        "walk_errors": report.walk_errors,
        "deleted": [str(d.relative) for d in report.deletions],
    }
    _status_path(log_dir).write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def read_status(log_dir: Path) -> dict[str, Any] | None:
    path = _status_path(log_dir)
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None


def run_pass(
    config: SyncConfig,
    executor: Executor,
    *,
    first_pass: bool,
    pass_number: int = 1,
    dry_run: bool = False,
) -> PassReport:
    """One reconcile + walk/transform pass over the configured trees."""
    log_dir = get_log_dir(config)
    failed_logger = JsonlLogger(log_dir / "failed.jsonl")
    actions_logger = JsonlLogger(log_dir / "actions.jsonl")
    run_ts = local_timestamp_str()

    deletions = reconcile_destination(
        config.destination,
        config.source,
        config.screens,
        dry_run=dry_run,
        actions_logger=actions_logger,
    )

    dispatcher = TransformDispatcher(config, executor, failed_logger, first_pass=first_pass, dry_run=dry_run)
    walk_errors = walk_source(config.source, dispatcher)

    counts = Counter(dispatcher.counts)
    if not dry_run:
        counts[DELETED] = len(deletions)

    report = PassReport(
        run_ts=run_ts,
        pass_number=pass_number,
        dry_run=dry_run,
        force=first_pass and config.any_force,
        counts=counts,
        deletions=deletions,
        walk_errors=len(walk_errors),
    )

    summary_text = "\n".join(_build_summary(report)) + "\n"
    print(summary_text, end="")
    summary_path = log_dir / f"summary_{local_date_str()}.txt"
    try:
        with summary_path.open("a", encoding="utf-8") as fh:
            fh.write(summary_text)
    except OSError as exc:
        print(f"[Sync] Warning: failed to write summary log: {exc}")

    return report


def evaluate_exit_code(report: PassReport) -> int:
    if report.failed_count > 0:
        return EXIT_DEGRADED
    return EXIT_OK


class PassRunner:
    """Runs passes for the scheduler and tracks the one-shot force window.

    Only the first pass of a runner sees configured force; every later pass
    runs without it, whatever the outcome of the first.
    """

    def __init__(self, config: SyncConfig, executor: Executor, *, dry_run: bool = False) -> None:
        self.config = config
        self.executor = executor
        self.dry_run = dry_run
        self.passes = 0
        self.last_report: PassReport | None = None

    def __call__(self) -> int:
        first_pass = self.passes == 0
        self.passes += 1
        log_dir = get_log_dir(self.config)

        try:
            report = run_pass(
                self.config,
                self.executor,
                first_pass=first_pass,
                pass_number=self.passes,
                dry_run=self.dry_run,
            )
        except Exception as exc:  # noqa: BLE001
            fallback = {
                "last_run": local_timestamp_str(),
                "last_exit_code": EXIT_ERROR,
                "pass_number": self.passes,
                "error": f"{type(exc).__name__}: {exc}",
            }
            try:
                _status_path(log_dir).write_text(json.dumps(fallback, ensure_ascii=False, indent=2), encoding="utf-8")
            except OSError:
                pass
            print(f"[Sync] Fatal error: {type(exc).__name__}: {exc}")
            notify(f"[screensync] ERROR in pass {self.passes}: {type(exc).__name__}: {exc}")
            return EXIT_ERROR

        self.last_report = report
        exit_code = evaluate_exit_code(report)
        try:
            _write_status(log_dir, report, exit_code)
        except OSError as exc:
            print(f"[Sync] Warning: failed to write status: {exc}")

        if exit_code == EXIT_DEGRADED:
            notify(
                f"[screensync] pass {report.pass_number} finished with {report.failed_count} failure(s)",
                extra={"counts": dict(report.counts)},
            )
        print("\nDONE.\n")
        return exit_code
