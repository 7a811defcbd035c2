"""Box and keypoint records, affine helpers and letterbox preprocessing."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
from PIL import Image

IMAGE_MEAN = (123.675, 116.28, 103.53)
IMAGE_STD = (58.395, 57.12, 57.375)

Point = tuple[float, float]


@dataclass
class DetectBox:
    """An integer bounding box with a score and a class label.

    A field left at -1 marks the box as unset.
    """

    left: int = -1
    top: int = -1
    right: int = -1
    bottom: int = -1
    score: float = -1.0
    label: int = -1

    def is_valid(self) -> bool:
        """Return True when every field has been set."""
        return (
            self.left != -1
            and self.top != -1
            and self.right != -1
            and self.bottom != -1
            and self.score != -1.0
            and self.label != -1
        )


@dataclass
class PosePoint:
    """A keypoint in image coordinates with its score."""

    x: int = 0
    y: int = 0
    score: float = 0.0


def sort_boxes(boxes: Iterable[DetectBox]) -> list[DetectBox]:
    """Return the boxes ordered by descending score."""
    return sorted(boxes, key=lambda box: box.score, reverse=True)


def affine_from_points(src: Sequence[Point], dst: Sequence[Point]) -> np.ndarray:
    """Return the 2x3 affine matrix that maps three source points onto three targets."""
    if len(src) != 3 or len(dst) != 3:
        raise ValueError("exactly three source and three destination points are needed")
    a = np.array([[float(x), float(y), 1.0] for x, y in src])
    b = np.array([[float(x), float(y)] for x, y in dst])
    if abs(np.linalg.det(a)) < 1e-12:
        raise ValueError("source points are collinear")
    return np.linalg.solve(a, b).T


def invert_affine(matrix: np.ndarray) -> np.ndarray:
    """Return the inverse of a 2x3 affine matrix; a singular matrix gives zeros."""
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape != (2, 3):
        raise ValueError("an affine matrix must have shape (2, 3)")
    linear = m[:, :2]
    det = np.linalg.det(linear)
    if det == 0:
        return np.zeros((2, 3))
    inv = np.linalg.inv(linear)
    return np.hstack([inv, (-inv @ m[:, 2]).reshape(2, 1)])


def apply_affine(matrix: np.ndarray, x: float, y: float) -> tuple[float, float]:
    """Map a point through a 2x3 affine matrix."""
    m = np.asarray(matrix, dtype=np.float64)
    out = m @ np.array([x, y, 1.0])
    return float(out[0]), float(out[1])


def get_affine_transform(
    center_x: float,
    center_y: float,
    scale_width: float,
    scale_height: float,
    output_width: int,
    output_height: int,
    inverse: bool = False,
) -> np.ndarray:
    """Return the matrix mapping a scaled box around a centre onto an output image.

    The height scale is accepted for symmetry but, as the width alone sets the
    scale, it does not affect the result.
    """
    src_1 = (center_x, center_y)
    src_2 = (center_x, center_y - scale_width * 0.5)
    src_3 = (src_2[0] - (src_1[1] - src_2[1]), src_2[1] + (src_1[0] - src_2[0]))

    out_cx = float(output_width // 2)
    out_cy = float(output_height // 2)
    dst_1 = (out_cx, out_cy)
    dst_2 = (out_cx, out_cy - output_width * 0.5)
    dst_3 = (dst_2[0] - (dst_1[1] - dst_2[1]), dst_2[1] + (dst_1[0] - dst_2[0]))

    src = [src_1, src_2, src_3]
    dst = [dst_1, dst_2, dst_3]
    if inverse:
        return affine_from_points(dst, src)
    return affine_from_points(src, dst)


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def letterbox_image(
    image: np.ndarray,
    new_shape: tuple[int, int] = (640, 640),
    stride: int = 32,
    color: Sequence[float] = (114, 114, 114),
    fixed_shape: bool = False,
    scale_up: bool = True,
) -> tuple[np.ndarray, float]:
    """Resize an image keeping its aspect ratio and pad it on the right and bottom.

    ``new_shape`` is ``(width, height)``. Returns the padded image and the factor
    that maps coordinates in it back to the original image.
    """
    img = np.asarray(image)
    height, width = img.shape[:2]
    new_width, new_height = new_shape
    r = min(new_height / height, new_width / width)
    if not scale_up:
        r = min(r, 1.0)

    unpad_w = _round_half_away(width * r)
    unpad_h = _round_half_away(height * r)

    if (width, height) != (unpad_w, unpad_h):
        resized = Image.fromarray(np.ascontiguousarray(img)).resize(
            (unpad_w, unpad_h), Image.Resampling.BILINEAR
        )
        tmp = np.asarray(resized)
    else:
        tmp = img.copy()

    dw = float(new_width - unpad_w)
    dh = float(new_height - unpad_h)
    if not fixed_shape:
        dw = float(int(dw) % stride)
        dh = float(int(dh) % stride)

    bottom = _round_half_away(dh + 0.1)
    right = _round_half_away(dw + 0.1)

    out_shape = (unpad_h + bottom, unpad_w + right) + tmp.shape[2:]
    out = np.empty(out_shape, dtype=tmp.dtype)
    fill = list(color) + [0] * 4
    if tmp.ndim == 3:
        out[...] = np.asarray(fill[: tmp.shape[2]], dtype=tmp.dtype)
    else:
        out[...] = fill[0]
    out[:unpad_h, :unpad_w] = tmp
    return out, 1.0 / r