"""Frame-by-frame tracking: periodic detection followed by pose estimation."""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from rtmtrack.boxes import DetectBox, PosePoint
from rtmtrack.detector import Detector
from rtmtrack.pose import PoseEstimator, PoseMode

logger = logging.getLogger(__name__)

MAX_TRACKED_BOXES = 10

HAND_JOINT_LINKS: tuple[tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4), (0, 5), (0, 9), (0, 13), (0, 17), (5, 6), (6, 7),
    (7, 8), (9, 10), (10, 11), (11, 12), (13, 14), (14, 15), (15, 16), (17, 18),
    (18, 19), (19, 20),
)

BODY_JOINT_LINKS: tuple[tuple[int, int], ...] = (
    (0, 1), (0, 2), (0, 17), (0, 18), (18, 5), (2, 4), (1, 3), (6, 18), (6, 8), (8, 10),
    (5, 7), (7, 9), (18, 19), (19, 12), (19, 11), (12, 14), (14, 16), (16, 21),
    (16, 23), (16, 25), (11, 13), (13, 15), (15, 20), (15, 22), (15, 24),
)


class PoseTracker:
    """Runs the detector every few frames and the pose model on every frame.

    Boxes found by the last detection are reused between detections. When no
    boxes are held, detection is forced on the next frame.
    """

    def __init__(
        self,
        detector: Optional[Detector] = None,
        pose_estimator: Optional[PoseEstimator] = None,
        detect_interval: int = 10,
        mode: PoseMode = PoseMode.HAND,
    ):
        if detect_interval <= 0:
            raise ValueError("detect_interval must be positive")
        self.detector = detector
        self.pose_estimator = pose_estimator
        self.detect_interval = detect_interval
        self.frame_num = 0
        self.detect_boxes: list[DetectBox] = []
        self.mode = mode
        self.set_mode(mode)

    def set_mode(self, mode: PoseMode) -> None:
        """Select the pose mode, passing it on to the pose estimator."""
        self.mode = PoseMode(mode)
        if self.pose_estimator is not None:
            self.pose_estimator.mode = self.mode

    def joint_links(self) -> list[tuple[int, int]]:
        """Return the keypoint pairs to connect for the current mode."""
        if self.mode is PoseMode.BODY:
            return list(BODY_JOINT_LINKS)
        if self.mode is PoseMode.HAND:
            return list(HAND_JOINT_LINKS)
        return []

    def infer(self, image: np.ndarray) -> tuple[list[DetectBox], list[list[PosePoint]]]:
        """Process one frame, returning the tracked boxes and one keypoint list per box."""
        if self.detector is None or self.pose_estimator is None:
            return [], []

        start = time.perf_counter()
        if self.frame_num % self.detect_interval == 0:
            self.detect_boxes = list(self.detector.infer(image))[:MAX_TRACKED_BOXES]
            logger.debug("detection took %.3fms", (time.perf_counter() - start) * 1000)
        elif not self.detect_boxes:
            self.detect_boxes = list(self.detector.infer(image))
            logger.debug("forced detection took %.3fms", (time.perf_counter() - start) * 1000)

        pose_start = time.perf_counter()
        self.pose_estimator.mode = self.mode
        poses = self.pose_estimator.infer(image, self.detect_boxes)
        end = time.perf_counter()
        logger.debug(
            "pose inference took %.3fms, total %.3fms",
            (end - pose_start) * 1000,
            (end - start) * 1000,
        )

        self.frame_num += 1
        return list(self.detect_boxes), poses