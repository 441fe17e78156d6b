# src/letterpose/pose/types.py
#
# Model-agnostic pose types shared by the decoder, the letter board and the
# drawing helpers. Coordinates are in frame pixels.

from dataclasses import dataclass, field
from typing import Optional, Tuple


# PoseNet-style COCO-17 part names, in canonical order.
PART_NAMES = (
    "nose",
    "leftEye",
    "rightEye",
    "leftEar",
    "rightEar",
    "leftShoulder",
    "rightShoulder",
    "leftElbow",
    "rightElbow",
    "leftWrist",
    "rightWrist",
    "leftHip",
    "rightHip",
    "leftKnee",
    "rightKnee",
    "leftAnkle",
    "rightAnkle",
)

# Pairs of parts joined by a bone when drawing the skeleton.
CONNECTED_PARTS = (
    ("leftHip", "leftShoulder"),
    ("leftElbow", "leftShoulder"),
    ("leftElbow", "leftWrist"),
    ("leftHip", "leftKnee"),
    ("leftKnee", "leftAnkle"),
    ("rightHip", "rightShoulder"),
    ("rightElbow", "rightShoulder"),
    ("rightElbow", "rightWrist"),
    ("rightHip", "rightKnee"),
    ("rightKnee", "rightAnkle"),
    ("leftShoulder", "rightShoulder"),
    ("leftHip", "rightHip"),
)


@dataclass(frozen=True)
class Keypoint:
    """A single body part position with its confidence."""

    part: str
    x: float
    y: float
    score: float


@dataclass(frozen=True)
class Pose:
    """
    One detected person.

    Single-pose estimation always carries all 17 parts; multi-pose estimation
    only carries the parts that were actually found.
    """

    keypoints: Tuple[Keypoint, ...] = field(default_factory=tuple)
    score: float = 0.0

    def get(self, part: str) -> Optional[Keypoint]:
        for kp in self.keypoints:
            if kp.part == part:
                return kp
        return None

    def confident(self, min_part_confidence: float) -> Tuple[Keypoint, ...]:
        return tuple(kp for kp in self.keypoints if kp.score >= min_part_confidence)
