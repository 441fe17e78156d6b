# src/letterpose/board/board.py
#
# The sentence drawn over the video. Responsibilities:
# - typeset the text into per-letter glyph boxes (word wrap to the canvas)
# - keep each letter's current weight (persists until changed or reset)
# - apply poses: nearest letter per body part -> weight
# - draw letters (weight -> stroke thickness) and optional center markers

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import cv2 as cv

from ..pose.types import Pose
from .layout import GlyphBox
from .matcher import Assignment, find_nearest
from .weights import map_weight, weight_to_thickness


logger = logging.getLogger(__name__)


class LetterBoard:
    def __init__(
        self,
        text: str,
        origin: Tuple[int, int] = (20, 60),
        max_width: int = 560,
        font_scale: float = 1.4,
        line_gap: int = 18,
        color: Tuple[int, int, int] = (209, 223, 239),
        marker_color: Tuple[int, int, int] = (75, 32, 27),
        max_weight: float = 150.0,
        max_thickness: int = 6,
    ):
        self.text = text
        self.origin = origin
        self.max_width = int(max_width)
        self.font = cv.FONT_HERSHEY_SIMPLEX
        self.font_scale = float(font_scale)
        self.line_gap = int(line_gap)
        self.color = color
        self.marker_color = marker_color
        self.max_weight = float(max_weight)
        self.max_thickness = int(max_thickness)

        self.revision = 0
        self.weights: Dict[int, float] = {}
        self._boxes: Dict[int, GlyphBox] = {}
        self.typeset()

    def whitespace_indices(self) -> List[int]:
        return [i for i, ch in enumerate(self.text) if ch.isspace()]

    def _char_size(self, ch: str) -> Tuple[int, int]:
        (w, h), _baseline = cv.getTextSize(ch, self.font, self.font_scale, 1)
        return w, h

    def typeset(self) -> None:
        """Lay the text out in lines no wider than max_width, breaking at spaces."""
        x0, y0 = self.origin
        _, line_h = self._char_size("H")

        x = x0
        baseline = y0 + line_h
        boxes: Dict[int, GlyphBox] = {}

        i = 0
        n = len(self.text)
        while i < n:
            ch = self.text[i]

            if ch.isspace():
                # width of the following word decides whether to wrap here
                j = i + 1
                while j < n and not self.text[j].isspace():
                    j += 1
                word_w = sum(self._char_size(c)[0] for c in self.text[i + 1:j])
                w, _ = self._char_size(ch)
                boxes[i] = GlyphBox(i, ch, (x, baseline - line_h, w, line_h), baseline)
                x += w
                if x + word_w > x0 + self.max_width and j > i + 1:
                    x = x0
                    baseline += line_h + self.line_gap
                i += 1
                continue

            w, h = self._char_size(ch)
            boxes[i] = GlyphBox(i, ch, (x, baseline - h, w, h), baseline)
            x += w
            i += 1

        self._boxes = boxes
        self.revision += 1
        logger.debug("typeset %d glyphs (revision %d)", len(boxes), self.revision)

    def resize(self, max_width: int) -> None:
        if int(max_width) == self.max_width:
            return
        self.max_width = int(max_width)
        self.typeset()

    def glyph_box(self, index: int) -> Optional[GlyphBox]:
        return self._boxes.get(index)

    def reset_weights(self) -> None:
        self.weights.clear()

    def apply_pose(
        self,
        pose: Pose,
        layout: Mapping[int, Tuple[float, float]],
        min_part_confidence: float,
        threshold_radius: float,
        max_weight: Optional[float] = None,
    ) -> List[Tuple[str, Assignment, float]]:
        """
        Assign each confident body part to its nearest letter and set that
        letter's weight when the part is strictly inside the threshold radius.
        Returns (part, assignment, weight) for every weight that was set.
        """
        if max_weight is None:
            max_weight = self.max_weight
        applied = []
        for kp in pose.confident(min_part_confidence):
            match = find_nearest(kp, layout)
            if match is None or match.distance >= threshold_radius:
                continue
            weight = map_weight(match.distance, threshold_radius, max_weight)
            self.weights[match.index] = weight
            applied.append((kp.part, match, weight))
        return applied

    def draw(self, canvas, max_weight: Optional[float] = None) -> None:
        if max_weight is None:
            max_weight = self.max_weight
        for i, box in self._boxes.items():
            if box.char.isspace():
                continue
            thickness = weight_to_thickness(self.weights.get(i, 0.0), max_weight, 1, self.max_thickness)
            x, _, _, _ = box.rect
            cv.putText(canvas, box.char, (x, box.baseline), self.font, self.font_scale, self.color, thickness, cv.LINE_AA)

    def draw_centers(self, canvas, layout: Mapping[int, Tuple[float, float]], container_origin: Tuple[float, float] = (0.0, 0.0), radius: int = 5) -> None:
        ox, oy = container_origin
        for cx, cy in layout.values():
            cv.circle(canvas, (int(cx + ox), int(cy + oy)), radius, self.marker_color, -1)
