from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Outcome reasons, counted per pass.
CONVERTED = "CONVERTED"
COPIED = "COPIED"
SKIPPED = "SKIPPED"
ALREADY_PROCESSED = "ALREADY_PROCESSED"
NOSCREEN_SKIPPED = "NOSCREEN_SKIPPED"
FAILED = "FAILED"
DELETED = "DELETED"
DRY_RUN = "DRY_RUN"

OUTCOMES = [CONVERTED, COPIED, SKIPPED, ALREADY_PROCESSED, NOSCREEN_SKIPPED, FAILED, DELETED, DRY_RUN]

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tiff"}
VIDEO_EXTENSIONS = {
    ".mp4", ".mov", ".mkv", ".avi", ".m4v", ".webm", ".wmv", ".flv", ".ts", ".mpg", ".mpeg", ".mxf",
}


def is_image(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def is_video(path: Path) -> bool:
    return path.suffix.lower() in VIDEO_EXTENSIONS


@dataclass(frozen=True, slots=True)
class CropSpec:
    width: int
    height: int
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class PadSpec:
    width: int
    height: int
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class TransformRequest:
    input_path: Path
    output_path: Path
    crop_ratio: float | None
    scale: tuple[int, int] | None
    player: tuple[int, int] | None
    align: str = "center"


@dataclass(frozen=True, slots=True)
class TransformResult:
    ok: bool
    code: int
    detail: str = ""
    resolution: tuple[int, int] | None = None


@dataclass(frozen=True, slots=True)
class Deletion:
    relative: Path
    is_dir: bool
