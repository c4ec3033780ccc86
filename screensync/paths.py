from __future__ import annotations

import os
import shutil
from pathlib import Path

from screensync.config import DEFAULT_CONFIG_NAME, SyncConfig


def _expand(path_str: str) -> Path:
    return Path(path_str.replace("$HOME", str(Path.home())).replace('"', "")).expanduser()


def get_config_path(explicit: Path | None = None) -> Path:
    if explicit is not None:
        return explicit.expanduser().resolve()

    env_path = os.getenv("SCREENSYNC_CONFIG")
    if env_path:
        return _expand(env_path).resolve()

    return (Path.cwd() / DEFAULT_CONFIG_NAME).resolve()


def get_ffmpeg() -> str:
    env_bin = os.getenv("FFMPEG_BIN")
    if env_bin:
        return str(_expand(env_bin))
    return shutil.which("ffmpeg") or "ffmpeg"


def get_log_dir(config: SyncConfig) -> Path:
    root = config.log_dir or (Path.cwd() / "logs")
    root.mkdir(parents=True, exist_ok=True)
    return root
