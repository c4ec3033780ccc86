from __future__ import annotations

from screensync.errors import TransformError
from screensync.models import CropSpec, PadSpec


def crop_window(in_width: int, in_height: int, ratio: float) -> CropSpec:
    """Centered crop of the input matching ``ratio`` (width / height).

    Wider inputs lose columns, taller inputs lose rows.
    """
    if in_width <= 0 or in_height <= 0 or ratio <= 0:
        raise TransformError(f"cannot crop {in_width}x{in_height} to ratio {ratio}")

    if in_width / in_height > ratio:
        width = int(round(in_height * ratio))
        height = in_height
    else:
        width = in_width
        height = int(round(in_width / ratio))

    if width <= 0 or height <= 0:
        raise TransformError(f"zero-sized crop for {in_width}x{in_height} at ratio {ratio}")

    return CropSpec(width=width, height=height, x=(in_width - width) // 2, y=(in_height - height) // 2)


def pad_box(content: tuple[int, int], player: tuple[int, int], align: str) -> PadSpec:
    width, height = content
    out_w, out_h = player
    if width > out_w or height > out_h:
        raise TransformError(f"content {width}x{height} does not fit player {out_w}x{out_h}")
    if align == "origin":
        return PadSpec(width=out_w, height=out_h, x=0, y=0)
    return PadSpec(width=out_w, height=out_h, x=(out_w - width) // 2, y=(out_h - height) // 2)


def crop_filter(ratio: float) -> str:
    # evaluated by ffmpeg against the real input size
    return (
        f"crop=w='if(gt(a,{ratio}),ih*{ratio},iw)'"
        f":h='if(gt(a,{ratio}),ih,iw/{ratio})'"
        f":x='(iw-min(iw,ih*{ratio}))/2'"
        f":y='(ih-min(ih,iw/{ratio}))/2'"
    )


def pad_filter(player: tuple[int, int], align: str) -> str:
    if align == "origin":
        return f"pad={player[0]}:{player[1]}:0:0:black"
    return f"pad={player[0]}:{player[1]}:(ow-iw)/2:(oh-ih)/2:black"


def video_filter(ratio: float | None, scale: tuple[int, int] | None, player: tuple[int, int] | None, align: str) -> str:
    parts: list[str] = []
    if ratio is not None:
        parts.append(crop_filter(ratio))
    if scale is not None:
        parts.append(f"scale={scale[0]}:{scale[1]}")
    parts.append("setsar=1/1")
    if player is not None:
        parts.append(pad_filter(player, align))
    return ",".join(parts)
