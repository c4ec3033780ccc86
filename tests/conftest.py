from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from screensync.config import SyncConfig, parse_config
from screensync.models import TransformRequest, TransformResult

LED_256 = {"search": "_LED_", "target": "_LED256_", "resolution": [256, 256], "player": [800, 600], "align": "center"}
LED_512 = {"search": "_LED_", "target": "_LED512_", "resolution": [512, 256], "align": "origin"}


class FakeExecutor:
    """Writes a small marker file instead of transcoding."""

    def __init__(self, fail_on: tuple[str, ...] = (), raise_on: tuple[str, ...] = ()) -> None:
        self.fail_on = fail_on
        self.raise_on = raise_on
        self.requests: list[TransformRequest] = []

    def execute(self, request: TransformRequest, timeout: float) -> TransformResult:
        self.requests.append(request)
        name = request.input_path.name
        if any(token in name for token in self.raise_on):
            raise RuntimeError("executor exploded")
        if any(token in name for token in self.fail_on):
            request.output_path.write_bytes(b"partial")
            return TransformResult(ok=False, code=1, detail="boom")
        request.output_path.write_bytes(b"out:" + name.encode())
        return TransformResult(ok=True, code=0, resolution=request.player or request.scale)


class ListLogger:
    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []

    def append(self, data: dict[str, Any]) -> None:
        self.rows.append(data)


@pytest.fixture
def trees(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "src"
    dest = tmp_path / "dst"
    source.mkdir()
    dest.mkdir()
    return source, dest


@pytest.fixture
def make_config(tmp_path: Path, trees):
    source, dest = trees

    def _make(screens: dict[str, Any] | None = None, **overrides: Any) -> SyncConfig:
        raw: dict[str, Any] = {
            "source": str(source),
            "destination": str(dest),
            "log_dir": str(tmp_path / "logs"),
            "screens": {"256": dict(LED_256)} if screens is None else screens,
        }
        raw.update(overrides)
        return parse_config(raw, tmp_path)

    return _make


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def list_logger() -> ListLogger:
    return ListLogger()


def touch(path: Path, data: bytes = b"data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path
