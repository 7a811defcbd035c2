"""Decoding of SimCC pose outputs into keypoints.

Each keypoint's x and y are classified independently: the arg-max position in
the x and y vectors, divided by the split ratio, gives the coordinate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

BORDER_MARGIN = 5.0


@dataclass
class Keypoint:
    """A keypoint in pose model input coordinates."""

    x: float
    y: float
    confidence: float
    label_id: int


def decode_simcc(simcc_x, simcc_y, simcc_split_ratio: float = 2.0) -> list[Keypoint]:
    """Decode every keypoint of the first batch item."""
    x_arr = np.asarray(simcc_x, dtype=np.float32)
    y_arr = np.asarray(simcc_y, dtype=np.float32)
    if x_arr.ndim != 3 or y_arr.ndim != 3:
        raise ValueError("SimCC outputs must have shape [batch, keypoints, bins]")
    if x_arr.shape[1] != y_arr.shape[1]:
        raise ValueError("SimCC outputs disagree on the number of keypoints")

    keypoints = []
    for i, (x_features, y_features) in enumerate(zip(x_arr[0], y_arr[0])):
        x_pos = int(np.argmax(x_features))
        y_pos = int(np.argmax(y_features))
        x_score = float(x_features[x_pos])
        y_score = float(y_features[y_pos])
        keypoints.append(
            Keypoint(
                x=x_pos / simcc_split_ratio,
                y=y_pos / simcc_split_ratio,
                confidence=max(x_score, y_score),
                label_id=i,
            )
        )
    return keypoints


def filter_keypoints(
    keypoints: Iterable[Keypoint],
    confidence_threshold: float,
    input_width: float,
    input_height: float,
) -> list[Keypoint]:
    """Keep confident, finite keypoints that lie away from the input border."""
    kept = []
    for kp in keypoints:
        if math.isnan(kp.confidence) or kp.confidence < confidence_threshold:
            continue
        if (
            kp.x < BORDER_MARGIN
            or kp.x > input_width - BORDER_MARGIN
            or kp.y < BORDER_MARGIN
            or kp.y > input_height - BORDER_MARGIN
        ):
            continue
        kept.append(kp)
    return kept


class PoseResult:
    """Filtered keypoints computed from SimCC outputs on construction."""

    def __init__(
        self,
        simcc_x,
        simcc_y,
        image_names: Sequence[str] = (),
        confidence_threshold: float = 0.05,
        class_names: Sequence[str] = (),
        simcc_split_ratio: float = 2.0,
        input_width: float = 256.0,
        input_height: float = 256.0,
    ):
        self.simcc_x = simcc_x
        self.simcc_y = simcc_y
        self.image_names = list(image_names)
        self.confidence_threshold = confidence_threshold
        self.class_names = list(class_names)
        self.simcc_split_ratio = simcc_split_ratio
        self.input_width = input_width
        self.input_height = input_height
        self.filtered_keypoints: list[Keypoint] = []
        self.process()

    def process(self) -> list[Keypoint]:
        """Decode and filter the keypoints, storing and returning them."""
        decoded = decode_simcc(self.simcc_x, self.simcc_y, self.simcc_split_ratio)
        self.filtered_keypoints = filter_keypoints(
            decoded, self.confidence_threshold, self.input_width, self.input_height
        )
        return self.filtered_keypoints