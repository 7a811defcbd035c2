import numpy as np
import pytest

from rtmtrack.boxes import DetectBox, apply_affine
from rtmtrack.model import ModelNotLoadedError
from rtmtrack.pose import PoseEstimator, PoseMode, crop_image_by_detect_box


def _box(left, top, right, bottom, score=0.9, label=0):
    return DetectBox(left=left, top=top, right=right, bottom=bottom, score=score, label=label)


def _simcc(x_pos, y_pos, bins=512, value=0.8):
    x = np.zeros((1, 1, bins), dtype=np.float32)
    y = np.zeros((1, 1, bins), dtype=np.float32)
    x[0, 0, x_pos] = value
    y[0, 0, y_pos] = value
    return x, y


@pytest.mark.parametrize(
    ("mode", "value"),
    [(PoseMode.BODY, 0), (PoseMode.FACE, 1), (PoseMode.HAND, 2)],
)
def test_estimator_keeps_given_mode(mode, value):
    estimator = PoseEstimator(mode=mode)
    assert estimator.mode is mode
    assert estimator.mode.value == value


def test_default_mode_is_hand():
    assert PoseEstimator().mode is PoseMode.HAND


def test_crop_maps_safe_region_corners():
    image = np.zeros((400, 400, 3), dtype=np.uint8)
    cropped, matrix = crop_image_by_detect_box(image, _box(50, 50, 150, 150))
    assert cropped.shape == (256, 256, 3)
    x, y = apply_affine(matrix, 40, 40)
    assert (x, y) == pytest.approx((0.0, 0.0), abs=1e-6)
    x, y = apply_affine(matrix, 160, 40)
    assert (x, y) == pytest.approx((256.0, 0.0), abs=1e-6)


def test_crop_inside_uniform_image_keeps_value():
    image = np.full((400, 400, 3), 7, dtype=np.uint8)
    cropped, _ = crop_image_by_detect_box(image, _box(50, 50, 150, 150))
    inner = cropped[:250, :250]
    assert inner.shape == (250, 250, 3)
    assert np.unique(inner).tolist() == [7]


def test_crop_tiny_image_falls_back_to_identity():
    image = np.full((1, 1, 3), 9, dtype=np.uint8)
    cropped, matrix = crop_image_by_detect_box(image, _box(0, 0, 5, 5))
    assert np.array_equal(matrix, np.eye(2, 3))
    assert cropped.shape == (256, 256, 3)
    assert not cropped.any()


def test_infer_maps_keypoint_back_to_image():
    image = np.zeros((400, 400, 3), dtype=np.uint8)
    x, y = _simcc(256, 256)
    estimator = PoseEstimator(lambda t: [x, y])
    results = estimator.infer(image, [_box(50, 50, 150, 150)])
    assert len(results) == 1
    assert len(results[0]) == 1
    point = results[0][0]
    assert abs(point.x - 100) <= 1
    assert abs(point.y - 100) <= 1
    assert point.score == pytest.approx(0.8)


def test_infer_drops_border_keypoints():
    image = np.zeros((400, 400, 3), dtype=np.uint8)
    x, y = _simcc(2, 256)
    results = PoseEstimator(lambda t: [x, y]).infer(image, [_box(50, 50, 150, 150)])
    assert results == [[]]


def test_infer_keeps_index_for_invalid_box():
    image = np.zeros((400, 400, 3), dtype=np.uint8)
    x, y = _simcc(256, 256)
    results = PoseEstimator(lambda t: [x, y]).infer(image, [DetectBox(), _box(50, 50, 150, 150)])
    assert len(results) == 2
    assert results[0] == []
    assert len(results[1]) == 1


def test_infer_empty_boxes():
    assert PoseEstimator(lambda t: []).infer(np.zeros((4, 4, 3), dtype=np.uint8), []) == []


def test_infer_failing_runner_gives_empty_result():
    def runner(tensor):
        raise RuntimeError("inference failed")

    image = np.zeros((400, 400, 3), dtype=np.uint8)
    results = PoseEstimator(runner).infer(image, [_box(50, 50, 150, 150)])
    assert results == [[]]


def test_infer_passes_pose_input_shape():
    seen = []
    x, y = _simcc(256, 256)

    def runner(tensor):
        seen.append(tensor.shape)
        return [x, y]

    results = PoseEstimator(runner).infer(
        np.zeros((400, 400, 3), dtype=np.uint8), [_box(50, 50, 150, 150)]
    )
    assert seen == [(1, 3, 256, 256)]
    assert len(results) == 1
    assert len(results[0]) == 1
    assert results[0][0].score == pytest.approx(0.8)


def test_infer_without_model_raises():
    with pytest.raises(ModelNotLoadedError):
        PoseEstimator().infer(np.zeros((400, 400, 3), dtype=np.uint8), [_box(50, 50, 150, 150)])