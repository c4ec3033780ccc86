from __future__ import annotations

import shutil
from collections import Counter
from pathlib import Path
from typing import Any

from screensync.config import ScreenProfile, SyncConfig
from screensync.errors import FilesystemError, TransformError
from screensync.executors import Executor
from screensync.mapping import MANAGED_EXTENSION, converted_relative, destination_path, is_already_processed, matches
from screensync.models import (
    ALREADY_PROCESSED,
    CONVERTED,
    COPIED,
    DRY_RUN,
    FAILED,
    NOSCREEN_SKIPPED,
    SKIPPED,
    TransformRequest,
    TransformResult,
    is_video,
)
from screensync.time_utils import local_timestamp_str


class TransformDispatcher:
    """Per-file pipeline: already-processed check, screen matching, transform or noscreen handling.

    ``first_pass`` gates the one-shot force flags: configured ``force`` (global
    or per screen) only applies to the first pass of the process.
    """

    def __init__(
        self,
        config: SyncConfig,
        executor: Executor,
        failed_logger,
        *,
        first_pass: bool,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.executor = executor
        self.failed_logger = failed_logger
        self.first_pass = first_pass
        self.dry_run = dry_run
        self.counts: Counter = Counter()

    @property
    def global_force(self) -> bool:
        return self.first_pass and self.config.force

    def force_for(self, profile: ScreenProfile) -> bool:
        return self.first_pass and (self.config.force or profile.force)

    def __call__(self, path: Path, relative: Path) -> None:
        self.handle(path, relative)

    def handle(self, path: Path, relative: Path) -> None:
        table = self.config.screens
        if is_already_processed(path.name, table):
            print(f"[Sync] {relative} is a screen output, skipping")
            self.counts[ALREADY_PROCESSED] += 1
            return

        matched = False
        for profile in matches(path.name, table):
            matched = True
            self.transform(path, relative, profile)

        if not matched:
            self.handle_noscreen(path, relative)

    def transform(self, path: Path, relative: Path, profile: ScreenProfile) -> None:
        output = destination_path(self.config.source, self.config.destination, relative, profile)
        if output.exists() and not self.force_for(profile):
            print(f"[Transform] {output.name} exists, skipping")
            self.counts[SKIPPED] += 1
            return

        if self.dry_run:
            print(f"[Transform] (dry-run) would convert {relative} -> {output.name} [{profile.name}]")
            self.counts[DRY_RUN] += 1
            return

        request = TransformRequest(
            input_path=path,
            output_path=output,
            crop_ratio=profile.crop_ratio,
            scale=profile.scale,
            player=profile.player,
            align=profile.align,
        )
        print(f"------\n[Transform] Converting {relative} to {output.relative_to(self.config.destination)} [{profile.name}]")
        self._execute(request, screen=profile.name)

    def handle_noscreen(self, path: Path, relative: Path) -> None:
        mode = self.config.noscreen
        if mode is None:
            print(f"[Sync] No screen matches {relative}, skipping")
            self.counts[NOSCREEN_SKIPPED] += 1
            return

        convert = mode == "convert" and is_video(path) and path.suffix.lower() != MANAGED_EXTENSION
        target_rel = converted_relative(relative) if convert else relative
        output = self.config.destination / target_rel

        if output.exists() and not self.global_force:
            print(f"[Sync] {target_rel} exists, skipping")
            self.counts[SKIPPED] += 1
            return

        if self.dry_run:
            verb = "convert" if convert else "copy"
            print(f"[Sync] (dry-run) would {verb} {relative} -> {target_rel}")
            self.counts[DRY_RUN] += 1
            return

        if convert:
            request = TransformRequest(
                input_path=path,
                output_path=output,
                crop_ratio=None,
                scale=None,
                player=None,
            )
            print(f"------\n[Transform] Converting {relative} to {target_rel}")
            self._execute(request, screen=None)
            return

        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, output)
        except OSError as exc:
            self._fail(FilesystemError(f"copy failed: {exc}", path=str(path)), screen=None)
            return
        print(f"[Sync] Copied {relative}")
        self.counts[COPIED] += 1

    def _execute(self, request: TransformRequest, *, screen: str | None) -> None:
        try:
            request.output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._fail(FilesystemError(f"cannot create {request.output_path.parent}: {exc}"), screen=screen)
            return

        try:
            result = self.executor.execute(request, self.config.timeout)
        except Exception as exc:  # noqa: BLE001
            result = TransformResult(ok=False, code=1, detail=f"{type(exc).__name__}: {exc}")

        if not result.ok:
            # drop partial output
            try:
                request.output_path.unlink(missing_ok=True)
            except OSError:
                pass
            error = TransformError(
                f"transform failed (exit={result.code}): {result.detail}",
                path=str(request.input_path),
                code=result.code,
            )
            self._fail(error, screen=screen)
            return

        size = result.resolution or request.player or request.scale
        label = f"{size[0]}x{size[1]}" if size else "source size"
        print(f"[Transform] Converted {request.output_path.name} in {label} pixels")
        self.counts[CONVERTED] += 1

    def _fail(self, error: TransformError | FilesystemError, *, screen: str | None) -> None:
        print(f"[Transform] ERROR {error}")
        self.counts[FAILED] += 1
        entry: dict[str, Any] = {"time": local_timestamp_str(), "screen": screen, **error.to_dict()}
        self.failed_logger.append(entry)
