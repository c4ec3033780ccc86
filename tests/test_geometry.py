import pytest

from screensync.errors import TransformError
from screensync.geometry import crop_window, pad_box, video_filter
from screensync.models import CropSpec, PadSpec


class TestCropWindow:
    def test_wide_input_loses_columns(self):
        assert crop_window(1920, 1080, 1.0) == CropSpec(width=1080, height=1080, x=420, y=0)

    def test_tall_input_loses_rows(self):
        assert crop_window(1080, 1920, 1.0) == CropSpec(width=1080, height=1080, x=0, y=420)

    def test_wide_ratio(self):
        assert crop_window(1000, 1000, 2.0) == CropSpec(width=1000, height=500, x=0, y=250)

    def test_matching_aspect_is_identity(self):
        assert crop_window(800, 400, 2.0) == CropSpec(width=800, height=400, x=0, y=0)

    def test_zero_sized_crop_is_an_error(self):
        with pytest.raises(TransformError):
            crop_window(1, 1000, 10000.0)


class TestPadBox:
    def test_origin(self):
        assert pad_box((256, 256), (800, 600), "origin") == PadSpec(width=800, height=600, x=0, y=0)

    def test_center(self):
        assert pad_box((256, 256), (800, 600), "center") == PadSpec(width=800, height=600, x=272, y=172)

    def test_too_large(self):
        with pytest.raises(TransformError):
            pad_box((900, 600), (800, 600), "center")


class TestVideoFilter:
    def test_full_chain_order(self):
        vf = video_filter(1.0, (256, 256), (800, 600), "center")
        crop_at = vf.index("crop=")
        scale_at = vf.index("scale=256:256")
        pad_at = vf.index("pad=800:600:(ow-iw)/2:(oh-ih)/2:black")
        assert crop_at < scale_at < pad_at
        assert "setsar=1/1" in vf

    def test_origin_pad(self):
        assert video_filter(None, None, (800, 600), "origin").endswith("pad=800:600:0:0:black")

    def test_plain_conversion(self):
        assert video_filter(None, None, None, "center") == "setsar=1/1"
