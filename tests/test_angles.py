"""Tests for the sagittal sprint angle engine."""

import math

import pytest

from conftest import (
    make_height_data,
    make_landmarks,
    make_standing_landmarks,
    mirror_landmarks,
)

from sprintgait.angles import (
    SIDED_FIELDS,
    angle_lookup,
    compute_angles,
    compute_frame_angles,
)


def _all_values(sample):
    yield sample["trunk_angle"]
    for field in SIDED_FIELDS:
        yield from sample[field].values()


class TestStanding:

    def test_upright_trunk(self):
        sample = compute_frame_angles(make_standing_landmarks())
        assert sample["trunk_angle"] == pytest.approx(90.0)

    def test_straight_leg(self):
        sample = compute_frame_angles(make_standing_landmarks())
        for side in ("left", "right"):
            assert sample["knee_flex"][side] == pytest.approx(180.0)
            assert sample["thigh_angle"][side] == pytest.approx(0.0)
            assert sample["shank_angle"][side] == pytest.approx(0.0)

    def test_straight_arm(self):
        sample = compute_frame_angles(make_standing_landmarks())
        assert sample["elbow_angle"]["left"] == pytest.approx(180.0)

    def test_toe_distance_scaled_by_thigh(self):
        # toe 0.03 ahead of the hip, thigh 0.15 long: 10 cm forward.
        sample = compute_frame_angles(make_standing_landmarks())
        assert sample["toe_horizontal_distance_cm"]["left"] == pytest.approx(-10.0)


class TestRunner:

    def test_forward_lean(self):
        sample = compute_frame_angles(make_landmarks())
        expected = 90.0 - math.degrees(math.atan2(0.03, 0.25))
        assert sample["trunk_angle"] == pytest.approx(expected)
        assert sample["trunk_angle"] < 90.0

    def test_thigh_sign_convention(self):
        sample = compute_frame_angles(make_landmarks())
        # Left knee ahead of the hip (+x): negative; right knee behind: positive.
        assert sample["thigh_angle"]["left"] < 0
        assert sample["thigh_angle"]["right"] > 0
        assert sample["thigh_angle"]["left"] == pytest.approx(
            -math.degrees(math.atan2(0.05, 0.14)))

    def test_knee_flexed(self):
        sample = compute_frame_angles(make_landmarks())
        assert 90.0 < sample["knee_flex"]["left"] < 180.0

    def test_translation_invariant(self):
        a = compute_frame_angles(make_landmarks())
        b = compute_frame_angles(make_landmarks(dx=0.2, dy=-0.1))
        for va, vb in zip(_all_values(a), _all_values(b)):
            assert va == pytest.approx(vb)


class TestMirrorSymmetry:

    def test_trunk_and_joints_unchanged(self):
        lm = make_landmarks()
        a = compute_frame_angles(lm)
        b = compute_frame_angles(mirror_landmarks(lm))
        assert b["trunk_angle"] == pytest.approx(a["trunk_angle"])
        for field in ("knee_flex", "ankle_flex", "elbow_angle"):
            for side in ("left", "right"):
                assert b[field][side] == pytest.approx(a[field][side])

    def test_segment_angles_negated(self):
        lm = make_landmarks()
        a = compute_frame_angles(lm)
        b = compute_frame_angles(mirror_landmarks(lm))
        for field in ("thigh_angle", "shank_angle", "toe_horizontal_distance_cm"):
            for side in ("left", "right"):
                assert b[field][side] == pytest.approx(-a[field][side])


class TestConfidenceGate:

    @pytest.mark.parametrize("name", ["LEFT_HIP", "RIGHT_HIP", "LEFT_SHOULDER", "RIGHT_SHOULDER"])
    def test_low_visibility_trunk_landmark_nulls_frame(self, name):
        lm = make_landmarks()
        lm[name]["visibility"] = 0.2
        sample = compute_frame_angles(lm)
        assert all(v is None for v in _all_values(sample))

    def test_missing_hip_nulls_frame(self):
        lm = make_landmarks()
        del lm["LEFT_HIP"]
        assert all(v is None for v in _all_values(compute_frame_angles(lm)))

    def test_no_landmarks(self):
        assert all(v is None for v in _all_values(compute_frame_angles(None)))

    def test_elbow_gated_per_side(self):
        lm = make_landmarks()
        lm["LEFT_WRIST"]["visibility"] = 0.3
        sample = compute_frame_angles(lm)
        assert sample["elbow_angle"]["left"] is None
        assert sample["elbow_angle"]["right"] is not None
        assert sample["trunk_angle"] is not None


class TestDegenerateInput:

    def test_all_landmarks_at_origin(self):
        lm = make_landmarks()
        for point in lm.values():
            point["x"], point["y"] = 0.0, 0.0
        sample = compute_frame_angles(lm)
        assert all(v is None for v in _all_values(sample))

    def test_coincident_joints_give_none_not_nan(self):
        lm = make_landmarks()
        lm["LEFT_KNEE"].update(x=lm["LEFT_HIP"]["x"], y=lm["LEFT_HIP"]["y"])
        sample = compute_frame_angles(lm)
        assert sample["knee_flex"]["left"] is None
        assert sample["thigh_angle"]["left"] is None
        assert sample["toe_horizontal_distance_cm"]["left"] is None
        for v in _all_values(sample):
            assert v is None or math.isfinite(v)

    def test_nan_coordinates(self):
        lm = make_landmarks()
        lm["LEFT_ANKLE"]["x"] = float("nan")
        sample = compute_frame_angles(lm)
        assert sample["knee_flex"]["left"] is None
        assert sample["knee_flex"]["right"] is not None


class TestComputeAngles:

    def test_stores_one_sample_per_frame(self):
        data = make_height_data([0.5, None, 0.5, 0.4])
        compute_angles(data)
        frames = data["angles"]["frames"]
        assert [f["frame_idx"] for f in frames] == [0, 1, 2, 3]
        assert frames[1]["trunk_angle"] is None
        assert frames[0]["trunk_angle"] is not None
        assert data["angles"]["method"] == "sagittal_2d"

    def test_lookup_skips_failed_detections(self):
        data = make_height_data([0.5, None, 0.5])
        compute_angles(data)
        lookup = angle_lookup(data)
        assert sorted(lookup) == [0, 2]

    def test_lookup_without_stored_angles(self):
        data = make_height_data([0.5, 0.5])
        lookup = angle_lookup(data)
        assert lookup[0]["trunk_angle"] == pytest.approx(lookup[1]["trunk_angle"])

    def test_no_frames(self):
        with pytest.raises(ValueError):
            compute_angles({"frames": []})

    def test_not_a_dict(self):
        with pytest.raises(TypeError):
            compute_angles(None)
