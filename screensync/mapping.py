"""Filename matching and source <-> destination path mapping.

Destination names are a pure function of the source relative path and the
screen profile: the first case-insensitive occurrence of ``search`` in the
basename becomes ``target``. The inverse runs that forward mapping over the
real file names of the matching source directory, profiles in table order,
so case variants of ``search`` in source names resolve to their outputs.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from screensync.config import ProfileTable, ScreenProfile
from screensync.models import is_video

MANAGED_EXTENSION = ".mp4"


def _contains(name: str, token: str) -> bool:
    return token.lower() in name.lower()


def replace_first(name: str, old: str, new: str) -> str:
    """Replace the first case-insensitive occurrence of ``old`` with ``new``."""
    return re.sub(re.escape(old), lambda _m: new, name, count=1, flags=re.IGNORECASE)


def is_already_processed(filename: str, table: ProfileTable) -> bool:
    return any(_contains(filename, p.target) for p in table.profiles)


def matches(filename: str, table: ProfileTable) -> Iterator[ScreenProfile]:
    for profile in table.profiles:
        if _contains(filename, profile.search):
            yield profile


def destination_relative(source_relative: Path, profile: ScreenProfile) -> Path:
    return source_relative.parent / replace_first(source_relative.name, profile.search, profile.target)


def destination_path(source_root: Path, dest_root: Path, source_relative: Path, profile: ScreenProfile) -> Path:
    # absolute entries are taken relative to source_root
    if source_relative.is_absolute():
        source_relative = source_relative.relative_to(source_root)
    return dest_root / destination_relative(source_relative, profile)


def converted_relative(source_relative: Path) -> Path:
    """Mirrored path for a baseline conversion (``noscreen = convert``)."""
    return source_relative.with_suffix(MANAGED_EXTENSION)


def _produces(source_name: str, dest_name: str, profile: ScreenProfile) -> bool:
    return _contains(source_name, profile.search) and replace_first(source_name, profile.search, profile.target) == dest_name


def origin_name(dest_name: str, siblings: Iterable[str], table: ProfileTable) -> str | None:
    """Pick the source basename, among ``siblings``, that produced ``dest_name``.

    Profiles are tried in table order, so the first profile whose forward
    mapping of a real sibling gives ``dest_name`` wins. A name carrying no
    target token can only be a plain copy of an unmatched sibling, or a
    ``<stem>.mp4`` conversion of an unmatched video sibling.
    """
    names = [n for n in siblings if not is_already_processed(n, table)]
    for profile in table.profiles:
        if not _contains(dest_name, profile.target):
            continue
        for name in names:
            if _produces(name, dest_name, profile):
                return name

    if is_already_processed(dest_name, table):
        return None
    unmatched = [n for n in names if not any(matches(n, table))]
    if dest_name in unmatched:
        return dest_name

    dest = Path(dest_name)
    if dest.suffix.lower() == MANAGED_EXTENSION:
        for name in unmatched:
            source = Path(name)
            if source.stem == dest.stem and is_video(source) and source.suffix.lower() != MANAGED_EXTENSION:
                return name
    return None


def resolve_origin(
    dest_relative: Path,
    table: ProfileTable,
    siblings: Callable[[Path], Iterable[str]],
) -> Path | None:
    """Source relative path a destination artifact came from, or None.

    ``siblings`` lists the file names of a source relative directory.
    """
    name = origin_name(dest_relative.name, siblings(dest_relative.parent), table)
    if name is None:
        return None
    return dest_relative.parent / name


def source_candidate(dest_root: Path, source_root: Path, dest_relative: Path, table: ProfileTable) -> Path | None:
    if dest_relative.is_absolute():
        dest_relative = dest_relative.relative_to(dest_root)

    def siblings(rel_dir: Path) -> list[str]:
        directory = source_root / rel_dir
        if not directory.is_dir():
            return []
        return sorted(p.name for p in directory.iterdir() if p.is_file())

    origin = resolve_origin(dest_relative, table, siblings)
    return None if origin is None else source_root / origin
