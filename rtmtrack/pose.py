"""Top-down pose estimation on detected boxes."""

from __future__ import annotations

import enum
import logging
import time
from typing import Optional, Sequence

import numpy as np
from PIL import Image

from rtmtrack.boxes import (
    DetectBox,
    PosePoint,
    affine_from_points,
    apply_affine,
    invert_affine,
)
from rtmtrack.detector import to_blob
from rtmtrack.keypoints import PoseResult
from rtmtrack.model import ModelBase, Runner

logger = logging.getLogger(__name__)

INPUT_WIDTH = 256
INPUT_HEIGHT = 256
_TARGET_SIZE = 256.0


class PoseMode(enum.Enum):
    """Which kind of keypoints the pose model produces."""

    BODY = 0
    FACE = 1
    HAND = 2


def _warp_affine(image: np.ndarray, matrix: np.ndarray, width: int, height: int) -> np.ndarray:
    """Warp an image with bilinear sampling; pixels outside the source are black."""
    src = np.asarray(image)
    squeeze = src.ndim == 2
    img = src[:, :, np.newaxis] if squeeze else src
    padded = np.pad(img.astype(np.float64), ((1, 1), (1, 1), (0, 0)))
    ph, pw = padded.shape[:2]

    inv = invert_affine(matrix)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    px = inv[0, 0] * xs + inv[0, 1] * ys + inv[0, 2] + 1.0
    py = inv[1, 0] * xs + inv[1, 1] * ys + inv[1, 2] + 1.0

    x0 = np.floor(px)
    y0 = np.floor(py)
    fx = (px - x0)[..., np.newaxis]
    fy = (py - y0)[..., np.newaxis]
    inside = (x0 >= 0) & (x0 + 1 < pw) & (y0 >= 0) & (y0 + 1 < ph)
    xi = np.clip(x0, 0, pw - 2).astype(np.intp)
    yi = np.clip(y0, 0, ph - 2).astype(np.intp)

    top = padded[yi, xi] * (1 - fx) + padded[yi, xi + 1] * fx
    bottom = padded[yi + 1, xi] * (1 - fx) + padded[yi + 1, xi + 1] * fx
    out = top * (1 - fy) + bottom * fy
    out[~inside] = 0.0

    if np.issubdtype(src.dtype, np.integer):
        info = np.iinfo(src.dtype)
        out = np.clip(np.rint(out), info.min, info.max)
    out = out.astype(src.dtype)
    return out[:, :, 0] if squeeze else out


def crop_image_by_detect_box(
    image: np.ndarray,
    box: DetectBox,
    output_width: int = INPUT_WIDTH,
    output_height: int = INPUT_HEIGHT,
) -> tuple[np.ndarray, np.ndarray]:
    """Crop a 1.2x enlarged box region and warp it to the pose input size.

    Returns the warped image and the 2x3 matrix mapping image coordinates onto
    it. When no usable transform exists a black image and the identity are
    returned.
    """
    img = np.asarray(image)
    img_height, img_width = img.shape[:2]

    left = max(0, min(box.left, img_width - 2))
    top = max(0, min(box.top, img_height - 2))
    right = max(left + 2, min(box.right, img_width - 1))
    bottom = max(top + 2, min(box.bottom, img_height - 1))

    center_x = (left + right) / 2.0
    center_y = (top + bottom) / 2.0
    box_width = max(float(right - left), 10.0)
    box_height = max(float(bottom - top), 10.0)
    scaled_width = box_width * 1.2
    scaled_height = box_height * 1.2

    max_x = float(img_width - 1)
    max_y = float(img_height - 1)
    safe_left = max(0.0, center_x - scaled_width / 2.0)
    safe_top = max(0.0, center_y - scaled_height / 2.0)
    safe_right = min(max_x, center_x + scaled_width / 2.0)
    safe_bottom = min(max_y, center_y + scaled_height / 2.0)

    if safe_right - safe_left < 4.0 or safe_bottom - safe_top < 4.0:
        safe_left = max(0.0, img_width / 2.0 - 50.0)
        safe_top = max(0.0, img_height / 2.0 - 50.0)
        safe_right = min(max_x, img_width / 2.0 + 50.0)
        safe_bottom = min(max_y, img_height / 2.0 + 50.0)

    src_points = [(safe_left, safe_top), (safe_right, safe_top), (safe_left, safe_bottom)]
    dst_points = [(0.0, 0.0), (_TARGET_SIZE, 0.0), (0.0, _TARGET_SIZE)]

    try:
        matrix = affine_from_points(src_points, dst_points)
        warped = _warp_affine(img, matrix, output_width, output_height)
    except (ValueError, np.linalg.LinAlgError) as exc:
        logger.error("affine transformation error: %s", exc)
        warped = np.zeros((output_width, output_height) + img.shape[2:], dtype=img.dtype)
        matrix = np.eye(2, 3)
    return warped, matrix


class PoseEstimator(ModelBase):
    """Runs the pose model on each detected box."""

    def __init__(
        self,
        runner: Optional[Runner] = None,
        confidence_threshold: float = 0.05,
        mode: PoseMode = PoseMode.HAND,
    ):
        super().__init__(runner)
        self.confidence_threshold = confidence_threshold
        self.mode = mode

    def _estimate(self, image: np.ndarray, box: DetectBox) -> list[PosePoint]:
        cropped, matrix = crop_image_by_detect_box(image, box, INPUT_WIDTH, INPUT_HEIGHT)
        if cropped.shape[:2] != (INPUT_HEIGHT, INPUT_WIDTH):
            cropped = np.asarray(
                Image.fromarray(np.ascontiguousarray(cropped)).resize(
                    (INPUT_WIDTH, INPUT_HEIGHT), Image.Resampling.BILINEAR
                )
            )
        outputs = self.run(to_blob(cropped))
        if len(outputs) < 2:
            raise ValueError("the pose model must produce simcc_x and simcc_y outputs")

        result = PoseResult(
            outputs[0][1],
            outputs[1][1],
            (),
            self.confidence_threshold,
            (),
            2.0,
            float(INPUT_WIDTH),
            float(INPUT_HEIGHT),
        )
        inverse = invert_affine(matrix)
        points = []
        for kp in result.filtered_keypoints:
            x, y = apply_affine(inverse, kp.x, kp.y)
            points.append(PosePoint(x=int(x), y=int(y), score=kp.confidence))
        return points

    def infer(self, image: np.ndarray, boxes: Sequence[DetectBox]) -> list[list[PosePoint]]:
        """Return one keypoint list per box, in box order.

        Invalid boxes and boxes whose inference fails give an empty list.
        """
        results: list[list[PosePoint]] = []
        if not boxes:
            return results
        start = time.perf_counter()
        for box in boxes:
            if not box.is_valid():
                results.append([])
                continue
            try:
                results.append(self._estimate(image, box))
            except (ValueError, RuntimeError, IndexError) as exc:
                logger.error("error processing box: %s - adding empty pose result", exc)
                results.append([])
        logger.debug(
            "pose inference on %d boxes took %.3fms",
            len(boxes),
            (time.perf_counter() - start) * 1000,
        )
        return results