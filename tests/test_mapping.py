"""Tests for filename matching and path mapping."""

from pathlib import Path

from screensync.config import build_profile_table
from screensync.mapping import (
    destination_path,
    is_already_processed,
    matches,
    origin_name,
    replace_first,
    resolve_origin,
    source_candidate,
)

from conftest import LED_256, LED_512, touch

TABLE = build_profile_table({"256": LED_256, "512": LED_512})


class TestReplaceFirst:
    def test_case_insensitive_first_only(self):
        assert replace_first("clip_led_1_LED_.mp4", "_LED_", "_LED256_") == "clip_LED256_1_LED_.mp4"

    def test_target_is_literal(self):
        assert replace_first("a_X_b", "_X_", r"_\1_") == r"a_\1_b"

    def test_no_match(self):
        assert replace_first("plain.mp4", "_LED_", "_LED256_") == "plain.mp4"


class TestMatcher:
    def test_matches_in_table_order(self):
        assert [p.name for p in matches("clip_LED_1.mp4", TABLE)] == ["256", "512"]

    def test_matches_case_insensitive(self):
        assert [p.name for p in matches("clip_led_1.mp4", TABLE)] == ["256", "512"]

    def test_matches_restartable(self):
        first = [p.name for p in matches("clip_LED_1.mp4", TABLE)]
        second = [p.name for p in matches("clip_LED_1.mp4", TABLE)]
        assert first == second

    def test_no_match(self):
        assert list(matches("holiday.mp4", TABLE)) == []

    def test_already_processed(self):
        assert is_already_processed("clip_LED256_1.mp4", TABLE)
        assert is_already_processed("clip_led512_1.mp4", TABLE)
        assert not is_already_processed("clip_LED_1.mp4", TABLE)


class TestDestinationPath:
    def test_preserves_directories(self, tmp_path):
        src, dst = tmp_path / "s", tmp_path / "d"
        out = destination_path(src, dst, Path("show/clip_LED_1.mp4"), TABLE["256"])
        assert out == dst / "show" / "clip_LED256_1.mp4"

    def test_only_basename_rewritten(self, tmp_path):
        src, dst = tmp_path / "s", tmp_path / "d"
        out = destination_path(src, dst, Path("_LED_dir/clip_LED_1.mp4"), TABLE["512"])
        assert out == dst / "_LED_dir" / "clip_LED512_1.mp4"

    def test_accepts_absolute_source(self, tmp_path):
        src, dst = tmp_path / "s", tmp_path / "d"
        out = destination_path(src, dst, src / "a" / "clip_LED_1.mp4", TABLE["256"])
        assert out == dst / "a" / "clip_LED256_1.mp4"

    def test_deterministic(self, tmp_path):
        args = (tmp_path / "s", tmp_path / "d", Path("x/clip_LED_1.mp4"), TABLE["256"])
        assert destination_path(*args) == destination_path(*args)


class TestInverseMapping:
    def test_origin_is_a_real_sibling(self):
        siblings = ["clip_led_1.mp4", "holiday.mov", "notes.txt"]
        assert origin_name("clip_LED256_1.mp4", siblings, TABLE) == "clip_led_1.mp4"
        assert origin_name("clip_LED512_1.mp4", siblings, TABLE) == "clip_led_1.mp4"
        assert origin_name("notes.txt", siblings, TABLE) == "notes.txt"
        assert origin_name("holiday.mp4", siblings, TABLE) == "holiday.mov"

    def test_output_named_file_never_maps_to_itself(self):
        assert origin_name("clip_LED256_1.mp4", ["clip_LED256_1.mp4"], TABLE) is None

    def test_matched_file_is_never_a_plain_copy(self):
        assert origin_name("clip_LED_1.mp4", ["clip_LED_1.mp4"], TABLE) is None

    def test_source_candidate_case_variant(self, trees):
        src, dst = trees
        origin = touch(src / "a" / "clip_led_1.mp4")
        assert source_candidate(dst, src, Path("a/clip_LED256_1.mp4"), TABLE) == origin

    def test_source_candidate_found(self, trees):
        src, dst = trees
        origin = touch(src / "a" / "clip_LED_1.mp4")
        assert source_candidate(dst, src, Path("a/clip_LED256_1.mp4"), TABLE) == origin

    def test_source_candidate_missing(self, trees):
        src, dst = trees
        assert source_candidate(dst, src, Path("a/clip_LED256_1.mp4"), TABLE) is None

    def test_plain_copy_maps_to_itself(self, trees):
        src, dst = trees
        origin = touch(src / "notes.txt")
        assert source_candidate(dst, src, dst / "notes.txt", TABLE) == origin

    def test_converted_mp4_maps_to_any_video_stem(self, trees):
        src, dst = trees
        origin = touch(src / "v" / "holiday.mov")
        assert source_candidate(dst, src, Path("v/holiday.mp4"), TABLE) == origin

    def test_first_profile_wins_when_ambiguous(self):
        table = build_profile_table(
            {
                "a": {"search": "_S1_", "target": "_T_", "resolution": [1, 1]},
                "b": {"search": "_S2_", "target": "_T_", "resolution": [1, 1]},
            }
        )
        siblings = ["x_S2_.mp4", "x_S1_.mp4"]
        assert resolve_origin(Path("d/x_T_.mp4"), table, lambda rel_dir: siblings) == Path("d/x_S1_.mp4")
