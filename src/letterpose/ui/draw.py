# src/letterpose/ui/draw.py
#
# Overlays for the output canvas: keypoints, skeleton, bounding box, HUD.

import time
from typing import Optional, Sequence

import cv2 as cv

from ..pose.types import CONNECTED_PARTS, Keypoint


POINT_COLOR = (255, 255, 0)
SKELETON_COLOR = (255, 255, 0)
BBOX_COLOR = (0, 0, 255)
HUD_COLOR = (255, 255, 255)


def _by_part(keypoints: Sequence[Keypoint], min_confidence: float):
    return {kp.part: kp for kp in keypoints if kp.score >= min_confidence}


def draw_keypoints(frame, keypoints: Sequence[Keypoint], min_confidence: float, radius: int = 3) -> None:
    for kp in keypoints:
        if kp.score < min_confidence:
            continue
        cv.circle(frame, (int(kp.x), int(kp.y)), radius, POINT_COLOR, -1)


def draw_skeleton(frame, keypoints: Sequence[Keypoint], min_confidence: float, line_width: int = 2) -> None:
    parts = _by_part(keypoints, min_confidence)
    for a, b in CONNECTED_PARTS:
        if a in parts and b in parts:
            pa, pb = parts[a], parts[b]
            cv.line(frame, (int(pa.x), int(pa.y)), (int(pb.x), int(pb.y)), SKELETON_COLOR, line_width)


def draw_bounding_box(frame, keypoints: Sequence[Keypoint]) -> None:
    if not keypoints:
        return
    xs = [kp.x for kp in keypoints]
    ys = [kp.y for kp in keypoints]
    cv.rectangle(frame, (int(min(xs)), int(min(ys))), (int(max(xs)), int(max(ys))), BBOX_COLOR, 1)


def draw_hud(frame, lines: Sequence[str]) -> None:
    y = 25
    for line in lines:
        cv.putText(frame, line, (10, y), cv.FONT_HERSHEY_SIMPLEX, 0.6, HUD_COLOR, 2, cv.LINE_AA)
        y += 22


class FpsMeter:
    """Smoothed frames per second (EMA over frame intervals)."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last: Optional[float] = None
        self.fps = 0.0

    def tick(self) -> float:
        now = self._clock()
        if self._last is not None:
            dt = now - self._last
            if dt > 0:
                self.fps = 0.9 * self.fps + 0.1 * (1.0 / dt) if self.fps > 0 else (1.0 / dt)
        self._last = now
        return self.fps
