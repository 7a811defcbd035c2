"""Decoding of detector outputs: thresholding, top-k and class-wise NMS."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np


@dataclass
class BoundingBox:
    """A detection in model input coordinates."""

    x_min: float
    y_min: float
    x_max: float
    y_max: float
    confidence: float
    label_id: int
    index: int


def calculate_iou(box1: BoundingBox, box2: BoundingBox) -> float:
    """Return the intersection over union of two boxes."""
    inter_x_min = max(box1.x_min, box2.x_min)
    inter_y_min = max(box1.y_min, box2.y_min)
    inter_x_max = min(box1.x_max, box2.x_max)
    inter_y_max = min(box1.y_max, box2.y_max)

    if inter_x_max < inter_x_min or inter_y_max < inter_y_min:
        return 0.0

    inter_area = (inter_x_max - inter_x_min) * (inter_y_max - inter_y_min)
    area1 = (box1.x_max - box1.x_min) * (box1.y_max - box1.y_min)
    area2 = (box2.x_max - box2.x_min) * (box2.y_max - box2.y_min)
    union = area1 + area2 - inter_area
    if union <= 0:
        # Degenerate boxes never suppress each other.
        return 0.0
    return inter_area / union


def non_max_suppression(
    boxes: Sequence[BoundingBox], iou_threshold: float, top_k: int
) -> list[BoundingBox]:
    """Suppress same-class overlaps in already score-ordered boxes, keeping at most top_k."""
    suppressed = [False] * len(boxes)
    selected: list[BoundingBox] = []
    for i, current in enumerate(boxes):
        if suppressed[i]:
            continue
        selected.append(current)
        for j in range(i + 1, len(boxes)):
            if suppressed[j]:
                continue
            other = boxes[j]
            if current.label_id == other.label_id and calculate_iou(current, other) > iou_threshold:
                suppressed[j] = True
    return selected[:top_k]


def extract_boxes(dets, labels, confidence_threshold: float) -> list[BoundingBox]:
    """Read the boxes of the first image whose confidence reaches the threshold.

    ``dets`` has shape ``[batch, n, elements]`` or ``[n, elements]``; each row is
    ``x_min, y_min, x_max, y_max, confidence``. Any other shape gives no boxes.
    """
    dets_arr = np.asarray(dets, dtype=np.float32)
    if dets_arr.ndim == 3:
        rows = dets_arr[0]
    elif dets_arr.ndim == 2:
        rows = dets_arr
    else:
        return []

    label_values = np.asarray(labels).reshape(-1)
    box_elements = rows.shape[1]
    conf_index = 4 if box_elements >= 5 else box_elements - 1

    boxes = []
    for i, row in enumerate(rows):
        confidence = float(row[conf_index])
        if confidence < confidence_threshold:
            continue
        label_id = int(label_values[i]) if i < label_values.size else 0
        boxes.append(
            BoundingBox(
                x_min=float(row[0]),
                y_min=float(row[1]),
                x_max=float(row[2]),
                y_max=float(row[3]),
                confidence=confidence,
                label_id=label_id,
                index=i,
            )
        )
    return boxes


@dataclass
class DetectionResult:
    """Filtered detections computed from raw detector outputs on construction."""

    dets: object
    labels: object
    image_names: Sequence[str] = ()
    confidence_threshold: float = 0.5
    class_names: Sequence[str] = ()
    iou_threshold: float = 0.45
    top_k: int = 10
    filtered_boxes: list[BoundingBox] = field(init=False, default_factory=list)

    def __init__(
        self,
        dets,
        labels,
        image_names: Sequence[str] = (),
        confidence_threshold: float = 0.5,
        class_names: Sequence[str] = (),
        iou_threshold: float = 0.45,
        top_k: int = 10,
    ):
        self.dets = dets
        self.labels = labels
        self.image_names = list(image_names)
        self.confidence_threshold = confidence_threshold
        self.class_names = list(class_names)
        self.iou_threshold = iou_threshold
        self.top_k = top_k
        self.filtered_boxes = []
        self.process()

    def process(self) -> list[BoundingBox]:
        """Threshold, keep the top_k by confidence, run NMS and store the result."""
        boxes = extract_boxes(self.dets, self.labels, self.confidence_threshold)
        boxes.sort(key=lambda box: box.confidence, reverse=True)
        boxes = boxes[: self.top_k]
        self.filtered_boxes = non_max_suppression(boxes, self.iou_threshold, self.top_k)
        return self.filtered_boxes