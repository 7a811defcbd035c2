# rtmtrack

A small top-down pose pipeline. A box detector finds objects in a frame.
A SimCC keypoint model then estimates a pose inside each box. A tracker ties
the two together and re-runs detection only every few frames.

The package holds no inference engine of its own. You drive each model with
a *runner*. A runner is any callable that takes an `NCHW` float32 array and
returns the model's outputs. It may return them in either of two forms:

- a mapping of output name to array;
- a sequence of arrays in output order, which are then named `output0`, `output1` and so on.

## Installation

```
pip install rtmtrack
```

The test suite uses pytest. The `test` extra installs it: `pip install "rtmtrack[test]"`.

## Modules

### `rtmtrack.boxes`

- `DetectBox` holds an integer box (`left`, `top`, `right`, `bottom`) with a `score` and a `label`. Every field defaults to -1, and `is_valid()` is true only when all of them have been set.
- `PosePoint` holds an integer `x` and `y` with a `score`.
- `sort_boxes(boxes)` orders boxes by descending score.
- `affine_from_points(src, dst)` solves the 2x3 matrix that maps three points onto three points. It raises `ValueError` for collinear source points.
- `invert_affine(matrix)` inverts a 2x3 matrix. A singular matrix gives zeros.
- `apply_affine(matrix, x, y)` maps a single point through a matrix.
- `get_affine_transform(center_x, center_y, scale_width, scale_height, output_width, output_height, inverse=False)` builds the transform from a scaled region around a centre. Only the width scale affects the result.
- `letterbox_image(image, new_shape=(640, 640), stride=32, color=(114, 114, 114), fixed_shape=False, scale_up=True)` resizes an image with bilinear sampling and keeps its aspect ratio.
  - `new_shape` is `(width, height)`.
  - It pads on the right and bottom only.
  - It returns `(padded_image, scale)`, where `scale` maps padded-image coordinates back to the original.

### `rtmtrack.detection`

- `BoundingBox` holds one detection.
- `calculate_iou(box1, box2)` returns the intersection over union of two boxes.
- `non_max_suppression(boxes, iou_threshold, top_k)` suppresses overlapping boxes of the same label. It expects boxes already ordered by score.
- `extract_boxes(dets, labels, confidence_threshold)` reads `dets` of shape `[batch, n, elements]` or `[n, elements]`, using the first image only.
  - Each row is `x_min, y_min, x_max, y_max, confidence`.
  - Rows with fewer than five elements use the last element as the confidence.
  - A row with no matching label gets label 0.
  - Any other `dets` shape gives no boxes.
- `DetectionResult(dets, labels, image_names=(), confidence_threshold=0.5, class_names=(), iou_threshold=0.45, top_k=10)` does its work on construction, in this order:
  1. applies the confidence threshold;
  2. sorts by confidence and keeps the top `top_k`;
  3. runs NMS.

  The result is stored in `filtered_boxes`.

### `rtmtrack.keypoints`

- `Keypoint` holds `x`, `y`, `confidence` and `label_id`.
- `decode_simcc(simcc_x, simcc_y, simcc_split_ratio=2.0)` decodes each keypoint of the first batch item.
  - The arg-max positions, divided by the split ratio, give the coordinates.
  - The larger of the two peak values gives the confidence.
  - It raises `ValueError` for inputs that are not 3-D or that disagree on the keypoint count.
- `filter_keypoints(keypoints, confidence_threshold, input_width, input_height)` drops three kinds of keypoint:
  - NaN confidences;
  - keypoints below the threshold;
  - keypoints within 5 pixels of the input border.
- `PoseResult(simcc_x, simcc_y, image_names=(), confidence_threshold=0.05, class_names=(), simcc_split_ratio=2.0, input_width=256.0, input_height=256.0)` decodes and filters on construction. The result is stored in `filtered_keypoints`.

### `rtmtrack.model`

- `ModelBase(runner=None)` wraps a runner.
  - `load(runner)` installs a runner. It raises `TypeError` if the runner is not callable.
  - `run(tensor)` returns `(name, array)` pairs. It raises `ModelNotLoadedError` when no runner is loaded.

### `rtmtrack.detector`

- `to_blob(image)` turns a BGR `HxWx3` image into an RGB `1x3xHxW` float32 tensor scaled to [0, 1].
- `select_outputs(outputs)` chooses the detections and labels outputs:
  1. It takes the first two outputs in order when the first output is 2-D or 3-D.
  2. Otherwise it matches outputs whose names contain `dets` and `labels`.
  3. Failing that, it takes the first two outputs swapped.
- `Detector(runner=None, confidence_threshold=0.4, iou_threshold=0.45, top_k=10)`: `infer(image)` returns `DetectBox` objects, best score first.
  - Malformed outputs are logged and give an empty list.
  - Exceptions raised by the runner itself are not caught.

### `rtmtrack.pose`

- `PoseMode` takes one of `BODY`, `FACE` or `HAND`.
- `crop_image_by_detect_box(image, box, output_width=256, output_height=256)` warps a region to the output size and returns `(warped_image, matrix)`.
  - The region is the box clamped to the image and enlarged 1.2 times.
  - If the region is too small, a 100x100 area at the image centre is used instead.
  - If no transform can be built, it returns a black image and the identity matrix.
- `PoseEstimator(runner=None, confidence_threshold=0.05, mode=PoseMode.HAND)`: `infer(image, boxes)` returns one list of `PosePoint` per box, in box order.
  - Keypoints are mapped back into image coordinates.
  - An invalid box gives an empty list.
  - A box whose processing raises `ValueError`, `RuntimeError` or `IndexError` also gives an empty list.

### `rtmtrack.tracker`

- `PoseTracker(detector=None, pose_estimator=None, detect_interval=10, mode=PoseMode.HAND)` combines a detector and a pose estimator.
- `infer(image)` returns `(boxes, poses)`:
  - The detector runs on every `detect_interval`-th frame and at most 10 boxes are kept.
  - Between detections the last boxes are reused.
  - If no boxes are held, detection is forced.
  - When either model is missing, it returns `([], [])`.
- `set_mode(mode)` changes the pose mode and passes it to the pose estimator.
- `joint_links()` returns the keypoint pairs to connect for the current mode:
  - the hand skeleton for `HAND`;
  - the body skeleton for `BODY`;
  - nothing for `FACE`.
- A `detect_interval` that is not positive raises `ValueError`.

Timings and recoverable errors go to the standard `logging` module, under each module's name.

## Example

```python
import numpy as np

from rtmtrack.boxes import letterbox_image
from rtmtrack.detector import Detector
from rtmtrack.pose import PoseEstimator, PoseMode
from rtmtrack.tracker import PoseTracker


def det_runner(blob):
    # Return dets [1, N, 5] and labels [1, N], in that order or by name.
    ...


def pose_runner(blob):
    # Return simcc_x [1, K, 512] and simcc_y [1, K, 512] for a 256x256 input.
    ...


tracker = PoseTracker(
    Detector(det_runner, 0.4, 0.45, 10),
    PoseEstimator(pose_runner, 0.05, PoseMode.HAND),
    2,
    PoseMode.HAND,
)

frame = np.zeros((480, 640, 3), dtype=np.uint8)  # a BGR image
padded, scale = letterbox_image(frame, (640, 640), 32, (128, 128, 128), True, True)
boxes, poses = tracker.infer(padded)

for box, points in zip(boxes, poses):
    print(box, [(p.x * scale, p.y * scale, p.score) for p in points])
print(tracker.joint_links())
```

The tracker returns coordinates in the image it was given. Here that is the letterboxed image. Multiply them by `scale` to place them on the original frame.

## What the package does not do

- It does not load or run model files. You supply the runners.
- It does not capture video from files or cameras.
- It does not draw boxes or skeletons, or display frames.
- It has no command-line program. Reading frames, drawing results and showing them are left to the calling code.