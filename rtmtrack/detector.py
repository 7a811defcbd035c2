"""Object detection: preprocessing, output selection and box decoding."""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from rtmtrack.boxes import DetectBox
from rtmtrack.detection import DetectionResult
from rtmtrack.model import ModelBase, Outputs, Runner

logger = logging.getLogger(__name__)


def to_blob(image: np.ndarray) -> np.ndarray:
    """Turn a BGR ``HxWx3`` image into an RGB NCHW float32 tensor scaled to [0, 1]."""
    img = np.asarray(image)
    if img.ndim != 3 or img.shape[2] != 3:
        raise ValueError("expected an image of shape (height, width, 3)")
    rgb = img[:, :, ::-1].astype(np.float32) / np.float32(255.0)
    return np.ascontiguousarray(rgb.transpose(2, 0, 1)[np.newaxis])


def select_outputs(outputs: Outputs) -> tuple[np.ndarray, np.ndarray]:
    """Pick the detections and labels arrays out of the model outputs.

    The first two outputs are taken in order when the first looks like
    detections; otherwise outputs are matched by name, and failing that the
    first two are taken in swapped order.
    """
    if len(outputs) < 2:
        raise ValueError("the detector must produce at least two outputs")

    dets = outputs[0][1]
    if dets.ndim in (2, 3):
        return dets, outputs[1][1]

    by_name_dets: Optional[np.ndarray] = None
    by_name_labels: Optional[np.ndarray] = None
    for name, value in outputs:
        if "dets" in name:
            by_name_dets = value
        elif "labels" in name:
            by_name_labels = value
    if by_name_dets is not None and by_name_labels is not None:
        return by_name_dets, by_name_labels

    return outputs[1][1], outputs[0][1]


class Detector(ModelBase):
    """Runs the detection model and returns filtered boxes."""

    def __init__(
        self,
        runner: Optional[Runner] = None,
        confidence_threshold: float = 0.4,
        iou_threshold: float = 0.45,
        top_k: int = 10,
    ):
        super().__init__(runner)
        self.confidence_threshold = confidence_threshold
        self.iou_threshold = iou_threshold
        self.top_k = top_k

    def infer(self, image: np.ndarray) -> list[DetectBox]:
        """Detect objects in a BGR image, best score first.

        Malformed model outputs are logged and give no boxes.
        """
        start = time.perf_counter()
        tensor = to_blob(image)
        preprocessed = time.perf_counter()
        outputs = self.run(tensor)
        inferred = time.perf_counter()

        try:
            dets, labels = select_outputs(outputs)
            result = DetectionResult(
                dets,
                labels,
                ["input_image"],
                self.confidence_threshold,
                ["hand"],
                self.iou_threshold,
                self.top_k,
            )
        except (ValueError, RuntimeError, IndexError) as exc:
            logger.error("error during detection inference: %s", exc)
            return []

        boxes = [
            DetectBox(
                left=int(bbox.x_min),
                top=int(bbox.y_min),
                right=int(bbox.x_max),
                bottom=int(bbox.y_max),
                score=bbox.confidence,
                label=int(bbox.label_id),
            )
            for bbox in result.filtered_boxes
        ]
        finished = time.perf_counter()
        logger.debug(
            "detection: preprocessing=%.3fms inference=%.3fms postprocessing=%.3fms total=%.3fms",
            (preprocessed - start) * 1000,
            (inferred - preprocessed) * 1000,
            (finished - inferred) * 1000,
            (finished - start) * 1000,
        )
        return boxes