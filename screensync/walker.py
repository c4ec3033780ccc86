"""Source tree walking and destination reconciliation.

Reconciliation is split in two: ``plan_reconcile`` is a pure function of two
tree snapshots and the profile table, ``reconcile_destination`` snapshots the
real trees and applies the plan. Only the destination root is ever modified.
"""

from __future__ import annotations

import os
import shutil
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from screensync.config import ProfileTable
from screensync.errors import FilesystemError
from screensync.mapping import resolve_origin
from screensync.models import Deletion

HIDDEN_PREFIX = "."
# Syncthing conflict copies and in-flight temp files.
SYNC_MARKERS = ("sync-conflict", "~syncthing~")

ROOT = Path(".")


def is_ignored(name: str) -> bool:
    if name.startswith(HIDDEN_PREFIX):
        return True
    lowered = name.lower()
    return any(marker in lowered for marker in SYNC_MARKERS)


def _scan(directory: Path) -> list[os.DirEntry]:
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)
    except OSError as exc:
        raise FilesystemError(f"cannot read {directory}: {exc}", path=str(directory)) from exc


def walk_source(root: Path, visit: Callable[[Path, Path], None]) -> list[FilesystemError]:
    """Depth-first walk calling ``visit(absolute, relative)`` once per kept file.

    Unreadable entries are reported and skipped; their siblings are still visited.
    """
    errors: list[FilesystemError] = []

    def _walk(directory: Path, relative: Path) -> None:
        try:
            entries = _scan(directory)
        except FilesystemError as exc:
            print(f"[Sync] WARNING {exc}")
            errors.append(exc)
            return

        for entry in entries:
            if is_ignored(entry.name):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    _walk(Path(entry.path), relative / entry.name)
                elif entry.is_file():
                    visit(Path(entry.path), relative / entry.name)
            except OSError as exc:
                error = FilesystemError(f"cannot stat {entry.path}: {exc}", path=entry.path)
                print(f"[Sync] WARNING {error}")
                errors.append(error)

    _walk(root, ROOT)
    return errors


@dataclass(frozen=True)
class TreeSnapshot:
    dirs: frozenset[Path]
    files: frozenset[Path]

    def children(self) -> dict[Path, list[tuple[Path, bool]]]:
        index: dict[Path, list[tuple[Path, bool]]] = defaultdict(list)
        for d in self.dirs:
            index[d.parent].append((d, True))
        for f in self.files:
            index[f.parent].append((f, False))
        return index

    def file_names(self) -> dict[Path, list[str]]:
        names: dict[Path, list[str]] = defaultdict(list)
        for f in sorted(self.files):
            names[f.parent].append(f.name)
        return names


def snapshot_tree(root: Path, *, skip_ignored: bool = False) -> TreeSnapshot:
    """Relative paths of every directory and file under ``root``.

    Symlinks are recorded as files and never followed.
    """
    dirs: set[Path] = set()
    files: set[Path] = set()

    def _walk(directory: Path, relative: Path) -> None:
        try:
            entries = _scan(directory)
        except FilesystemError as exc:
            print(f"[Reconcile] WARNING {exc}")
            return
        for entry in entries:
            if skip_ignored and is_ignored(entry.name):
                continue
            rel = relative / entry.name
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError as exc:
                print(f"[Reconcile] WARNING cannot stat {entry.path}: {exc}")
                continue
            if is_dir:
                dirs.add(rel)
                _walk(Path(entry.path), rel)
            else:
                files.add(rel)

    _walk(root, ROOT)
    return TreeSnapshot(dirs=frozenset(dirs), files=frozenset(files))


def plan_reconcile(dest: TreeSnapshot, source: TreeSnapshot, table: ProfileTable) -> list[Deletion]:
    """Destination entries with no origin in the source tree.

    A directory missing from the source is deleted whole (no profile
    substitution at directory level) and its contents are not listed. A file
    is deleted when no file in the matching source directory maps onto it.
    """
    children = dest.children()
    names = source.file_names()
    deletions: list[Deletion] = []

    def _siblings(rel_dir: Path) -> list[str]:
        return names.get(rel_dir, [])

    def _visit(directory: Path) -> None:
        for rel, is_dir in sorted(children.get(directory, []), key=lambda item: item[0].name):
            if is_dir:
                if rel not in source.dirs:
                    deletions.append(Deletion(relative=rel, is_dir=True))
                else:
                    _visit(rel)
            elif resolve_origin(rel, table, _siblings) is None:
                deletions.append(Deletion(relative=rel, is_dir=False))

    _visit(ROOT)
    return deletions


def reconcile_destination(
    dest_root: Path,
    source_root: Path,
    table: ProfileTable,
    *,
    dry_run: bool = False,
    actions_logger=None,
) -> list[Deletion]:
    """Remove orphaned destination artifacts. Returns the deletions carried out (or planned, on dry run)."""
    dest = snapshot_tree(dest_root, skip_ignored=True)
    source = snapshot_tree(source_root, skip_ignored=True)
    plan = plan_reconcile(dest, source, table)

    if dry_run:
        for deletion in plan:
            print(f"[Reconcile] (dry-run) would remove {deletion.relative}")
        return plan

    done: list[Deletion] = []
    for deletion in plan:
        target = dest_root / deletion.relative
        try:
            if deletion.is_dir:
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as exc:
            print(f"[Reconcile] WARNING {FilesystemError(f'cannot remove {target}: {exc}', path=str(target))}")
            continue
        kind = "folder" if deletion.is_dir else "file"
        print(f"[Reconcile] Removed orphan {kind} {deletion.relative}")
        done.append(deletion)
        if actions_logger is not None:
            actions_logger.append({"action": "DELETE", "path": str(deletion.relative), "is_dir": deletion.is_dir})
    return done
