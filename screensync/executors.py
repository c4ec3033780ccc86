from __future__ import annotations

import signal
import subprocess
from pathlib import Path
from typing import Protocol

from PIL import Image

from screensync.geometry import crop_window, pad_box, video_filter
from screensync.models import TransformRequest, TransformResult, is_image

EXIT_TIMEOUT = 124

# Fixed encode parameters for LED players: CBR-ish H.264 main@4.1, AAC audio.
ENCODE_ARGS = [
    "-c:a", "aac", "-b:a", "128k", "-ar", "44100",
    "-c:v", "libx264", "-profile:v", "main", "-level:v", "4.1",
    "-b:v", "8M", "-maxrate", "10M", "-bufsize", "12M",
    "-tune", "fastdecode", "-g", "50", "-keyint_min", "25",
    "-metadata:s:v:0", "pixel_aspect=1/1",
    "-movflags", "+faststart",
    "-x264-params", "no-scenecut=1:nal-hrd=cbr",
    "-pix_fmt", "yuv420p",
]


class Executor(Protocol):
    def execute(self, request: TransformRequest, timeout: float) -> TransformResult: ...


class FfmpegExecutor:
    def __init__(self, ffmpeg_bin: str = "ffmpeg") -> None:
        self.ffmpeg_bin = ffmpeg_bin

    def build_command(self, request: TransformRequest) -> list[str]:
        vf = video_filter(request.crop_ratio, request.scale, request.player, request.align)
        return [
            self.ffmpeg_bin,
            "-y",
            "-nostdin",
            "-loglevel", "error",
            "-i", str(request.input_path),
            "-vf", vf,
            *ENCODE_ARGS,
            str(request.output_path),
        ]

    def execute(self, request: TransformRequest, timeout: float) -> TransformResult:
        cmd = self.build_command(request)
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as exc:
            return TransformResult(ok=False, code=127, detail=f"{type(exc).__name__}: {exc}")

        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.send_signal(signal.SIGTERM)
            try:
                output, _ = proc.communicate(timeout=10)
            except subprocess.TimeoutExpired:
                proc.kill()
                output, _ = proc.communicate()
            return TransformResult(ok=False, code=EXIT_TIMEOUT, detail=f"timed out after {timeout}s\n{output or ''}")

        if proc.returncode != 0:
            return TransformResult(ok=False, code=int(proc.returncode), detail=(output or "").strip())
        return TransformResult(ok=True, code=0, resolution=request.player or request.scale)


class PillowExecutor:
    """Crop/scale/pad still images in-process. ``timeout`` is not enforced."""

    def execute(self, request: TransformRequest, timeout: float) -> TransformResult:
        try:
            with Image.open(request.input_path) as img:
                img = img.convert("RGB")
                if request.crop_ratio is not None:
                    box = crop_window(img.width, img.height, request.crop_ratio)
                    img = img.crop((box.x, box.y, box.x + box.width, box.y + box.height))
                if request.scale is not None:
                    img = img.resize(request.scale, Image.Resampling.LANCZOS)
                if request.player is not None:
                    pad = pad_box(img.size, request.player, request.align)
                    canvas = Image.new("RGB", (pad.width, pad.height), (0, 0, 0))
                    canvas.paste(img, (pad.x, pad.y))
                    img = canvas
                img.save(request.output_path)
                size = img.size
        except Exception as exc:  # noqa: BLE001
            return TransformResult(ok=False, code=1, detail=f"{type(exc).__name__}: {exc}")
        return TransformResult(ok=True, code=0, resolution=size)


class MediaTransformExecutor:
    """Routes still images to Pillow and everything else to ffmpeg."""

    def __init__(self, video: Executor | None = None, image: Executor | None = None) -> None:
        self.video = video or FfmpegExecutor()
        self.image = image or PillowExecutor()

    def execute(self, request: TransformRequest, timeout: float) -> TransformResult:
        if is_image(request.input_path):
            return self.image.execute(request, timeout)
        return self.video.execute(request, timeout)
