import math

import numpy as np
import pytest

from rtmtrack.keypoints import Keypoint, PoseResult, decode_simcc, filter_keypoints


def simcc(peaks, bins, score=0.9):
    arr = np.zeros((1, len(peaks), bins), dtype=np.float32)
    for i, pos in enumerate(peaks):
        arr[0, i, pos] = score
    return arr


def test_decode_positions_divided_by_ratio():
    x_peaks, y_peaks = [40, 100, 300], [60, 250, 12]
    keypoints = decode_simcc(simcc(x_peaks, 512), simcc(y_peaks, 512), 2.0)
    assert [kp.x for kp in keypoints] == [p / 2.0 for p in x_peaks]
    assert [kp.y for kp in keypoints] == [p / 2.0 for p in y_peaks]
    assert [kp.label_id for kp in keypoints] == [0, 1, 2]


def test_decode_confidence_is_larger_score():
    x = simcc([10], 64, score=0.25)
    y = simcc([20], 64, score=0.75)
    (kp,) = decode_simcc(x, y, 2.0)
    assert kp.confidence == pytest.approx(0.75)


def test_decode_first_maximum_wins():
    x = np.zeros((1, 1, 32), dtype=np.float32)
    x[0, 0, [5, 9]] = 1.0
    (kp,) = decode_simcc(x, x, 1.0)
    assert kp.x == 5.0


def test_decode_rejects_wrong_rank():
    with pytest.raises(ValueError):
        decode_simcc(np.zeros((3, 64)), np.zeros((3, 64)))


def test_decode_rejects_mismatched_counts():
    with pytest.raises(ValueError):
        decode_simcc(np.zeros((1, 3, 64)), np.zeros((1, 2, 64)))


def test_filter_drops_low_confidence():
    kps = [Keypoint(50, 50, 0.9, 0), Keypoint(50, 50, 0.01, 1)]
    assert filter_keypoints(kps, 0.05, 256, 256) == kps[:1]


@pytest.mark.parametrize(
    "x, y",
    [(4.0, 50.0), (50.0, 4.0), (252.0, 50.0), (50.0, 252.0)],
)
def test_filter_drops_border_points(x, y):
    assert filter_keypoints([Keypoint(x, y, 0.9, 0)], 0.05, 256, 256) == []


def test_filter_keeps_points_on_margin():
    kp = Keypoint(5.0, 251.0, 0.9, 0)
    assert filter_keypoints([kp], 0.05, 256, 256) == [kp]


def test_filter_drops_nan():
    assert filter_keypoints([Keypoint(50, 50, math.nan, 0)], 0.05, 256, 256) == []


def test_pose_result_filters_decoded():
    x = simcc([100, 2, 200], 512)
    y = simcc([100, 100, 505], 512)
    result = PoseResult(x, y)
    assert [kp.label_id for kp in result.filtered_keypoints] == [0]
    kp = result.filtered_keypoints[0]
    assert (kp.x, kp.y) == (100 / 2.0, 100 / 2.0)


def test_pose_result_custom_size_and_ratio():
    x = simcc([300], 512)
    y = simcc([300], 512)
    small = PoseResult(x, y, [], 0.05, [], 1.0, 256.0, 256.0)
    large = PoseResult(x, y, [], 0.05, [], 1.0, 512.0, 512.0)
    assert small.filtered_keypoints == []
    assert [kp.x for kp in large.filtered_keypoints] == [300.0]
    assert large.process() == large.filtered_keypoints