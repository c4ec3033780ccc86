from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from screensync.errors import ConfigError

ALIGNMENTS = ("center", "origin")
NOSCREEN_MODES = ("copy", "convert")

DEFAULT_TIMEOUT_SECONDS = 3600
DEFAULT_CONFIG_NAME = "config.json"


@dataclass(frozen=True)
class ScreenProfile:
    name: str
    search: str
    target: str
    resolution: tuple[int, int]
    player: tuple[int, int]
    h_scale: float = 1.0
    v_scale: float = 1.0
    align: str = "center"
    force: bool = False
    crop_ratio: float = field(init=False)

    def __post_init__(self) -> None:
        width = self.resolution[0] * self.h_scale
        height = self.resolution[1] * self.v_scale
        object.__setattr__(self, "crop_ratio", width / height)

    @property
    def scale(self) -> tuple[int, int]:
        return (
            int(round(self.resolution[0] * self.h_scale)),
            int(round(self.resolution[1] * self.v_scale)),
        )


class ProfileTable(Mapping[str, ScreenProfile]):
    """Read-only, insertion-ordered mapping of screen name to profile."""

    def __init__(self, profiles: list[ScreenProfile]) -> None:
        self._profiles: dict[str, ScreenProfile] = {}
        for profile in profiles:
            if profile.name in self._profiles:
                raise ConfigError(f'Duplicate screen name "{profile.name}"', key="screens")
            self._profiles[profile.name] = profile

    def __getitem__(self, name: str) -> ScreenProfile:
        return self._profiles[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def profiles(self) -> tuple[ScreenProfile, ...]:
        return tuple(self._profiles.values())


@dataclass(frozen=True)
class SyncConfig:
    source: Path
    destination: Path
    screens: ProfileTable
    force: bool = False
    retry: float = 0
    noscreen: str | None = None
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    log_dir: Path | None = None

    @property
    def any_force(self) -> bool:
        return self.force or any(p.force for p in self.screens.profiles)

    def display_items(self) -> list[tuple[str, str]]:
        items = [
            ("source", str(self.source)),
            ("destination", str(self.destination)),
            ("force", json.dumps(self.force)),
            ("retry", json.dumps(self.retry)),
            ("noscreen", json.dumps(self.noscreen)),
            ("timeout", json.dumps(self.timeout)),
        ]
        for p in self.screens.profiles:
            desc = {
                "search": p.search,
                "target": p.target,
                "resolution": list(p.resolution),
                "player": list(p.player),
                "h_scale": p.h_scale,
                "v_scale": p.v_scale,
                "align": p.align,
                "force": p.force,
            }
            items.append((f"screen {p.name}", json.dumps(desc)))
        return items


def _pair(value: Any, *, name: str, key: str) -> tuple[int, int]:
    if (
        not isinstance(value, (list, tuple))
        or len(value) != 2
        or not all(isinstance(v, int) and not isinstance(v, bool) and v > 0 for v in value)
    ):
        raise ConfigError(f'Screen "{name}": "{key}" must be a [width, height] pair of positive integers', key=key)
    return value[0], value[1]


def _flag(raw: Mapping[str, Any], key: str, *, where: str = "") -> bool:
    value = raw.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f'{where}"{key}" must be true or false', key=key)
    return value


def _scale(value: Any, *, name: str, key: str) -> float:
    if value is None:
        return 1.0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f'Screen "{name}": "{key}" must be a positive number', key=key)
    return float(value)


def parse_profile(name: str, raw: Mapping[str, Any]) -> ScreenProfile:
    if not isinstance(raw, Mapping):
        raise ConfigError(f'Screen "{name}" must be an object', key="screens")
    if not raw.get("resolution"):
        raise ConfigError('You must set the "resolution" for each screen', key="resolution")
    if not raw.get("search"):
        raise ConfigError('You must set the "search" string for each screen', key="search")
    if not raw.get("target"):
        raise ConfigError('You must set the "target" name for each screen', key="target")

    resolution = _pair(raw["resolution"], name=name, key="resolution")
    player = _pair(raw["player"], name=name, key="player") if raw.get("player") else resolution

    align = raw.get("align") or "center"
    if align not in ALIGNMENTS:
        raise ConfigError(f'Screen "{name}": "align" must be one of {", ".join(ALIGNMENTS)}', key="align")

    profile = ScreenProfile(
        name=str(name),
        search=str(raw["search"]),
        target=str(raw["target"]),
        resolution=resolution,
        player=player,
        h_scale=_scale(raw.get("h_scale"), name=name, key="h_scale"),
        v_scale=_scale(raw.get("v_scale"), name=name, key="v_scale"),
        align=align,
        force=_flag(raw, "force", where=f'Screen "{name}": '),
    )
    # pad cannot shrink the scaled picture
    if profile.scale[0] > player[0] or profile.scale[1] > player[1]:
        raise ConfigError(
            f'Screen "{name}": scaled size {profile.scale[0]}x{profile.scale[1]} '
            f"does not fit player {player[0]}x{player[1]}",
            key="player",
        )
    if profile.search.lower() == profile.target.lower():
        raise ConfigError(f'Screen "{name}": "search" and "target" must differ', key="target")
    return profile


def build_profile_table(screens: Mapping[str, Any] | None) -> ProfileTable:
    if screens is None:
        screens = {}
    if not isinstance(screens, Mapping):
        raise ConfigError('"screens" must be an object of name -> screen settings', key="screens")
    return ProfileTable([parse_profile(name, raw) for name, raw in screens.items()])


def _existing_dir(raw: Mapping[str, Any], key: str, base: Path) -> Path:
    value = raw.get(key)
    if not value or not isinstance(value, str):
        raise ConfigError(f'You must set a valid "{key}" path', key=key)
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    if not path.is_dir():
        raise ConfigError(f'"{key}" does not exist or is not a directory: {path}', key=key)
    return path.resolve()


def parse_config(raw: Mapping[str, Any], base_dir: Path) -> SyncConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError("Config document must be a JSON object")

    source = _existing_dir(raw, "source", base_dir)
    destination = _existing_dir(raw, "destination", base_dir)
    if source == destination or source in destination.parents or destination in source.parents:
        raise ConfigError('"source" and "destination" must be separate, non-nested directories', key="destination")

    noscreen = raw.get("noscreen") or None
    if noscreen is not None and noscreen not in NOSCREEN_MODES:
        raise ConfigError(f'"noscreen" must be one of {", ".join(NOSCREEN_MODES)} or absent', key="noscreen")

    try:
        retry = float(raw.get("retry") or 0)
        timeout = int(raw.get("timeout") or DEFAULT_TIMEOUT_SECONDS)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'"retry" and "timeout" must be numbers ({exc})') from exc

    log_dir = raw.get("log_dir")
    log_path = Path(log_dir).expanduser() if log_dir else base_dir / "logs"
    if not log_path.is_absolute():
        log_path = base_dir / log_path

    return SyncConfig(
        source=source,
        destination=destination,
        screens=build_profile_table(raw.get("screens")),
        force=_flag(raw, "force"),
        retry=retry,
        noscreen=noscreen,
        timeout=max(1, timeout),
        log_dir=log_path,
    )


def load_config(path: Path) -> SyncConfig:
    if not path.exists():
        raise ConfigError(f"No config file found at {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    return parse_config(raw, path.resolve().parent)
