"""Box decoding with NMS, SimCC keypoint decoding and a detect-then-track pose pipeline."""

__version__ = "0.1.0"

__all__ = ["boxes", "detection", "keypoints", "model", "detector", "pose", "tracker"]