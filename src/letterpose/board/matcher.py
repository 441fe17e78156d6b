import math
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from ..pose.types import Keypoint


@dataclass(frozen=True)
class Assignment:
    index: int
    distance: float


def find_nearest(body_part: Keypoint, layout: Mapping[int, Tuple[float, float]]) -> Optional[Assignment]:
    """
    Letter closest to the body part. Indices are scanned in ascending order and
    only a strictly smaller distance replaces the best, so ties go to the
    lowest index. Empty layout -> None.
    """
    best = None
    best_dist = math.inf

    for index in sorted(layout):
        cx, cy = layout[index]
        dist = math.hypot(cx - body_part.x, cy - body_part.y)
        if dist < best_dist:
            best, best_dist = index, dist

    if best is None:
        return None
    return Assignment(index=best, distance=best_dist)
