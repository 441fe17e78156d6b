# src/letterpose/board/layout.py
#
# Letter centers relative to the board container, cached until the board is
# typeset again.

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlyphBox:
    index: int
    char: str
    rect: Tuple[int, int, int, int]  # x, y, w, h (top-left in canvas px)
    baseline: int

    @property
    def center(self) -> Tuple[float, float]:
        x, y, w, h = self.rect
        return x + w / 2.0, y + h / 2.0

    def contains(self, x: float, y: float) -> bool:
        rx, ry, rw, rh = self.rect
        return (rx <= x <= rx + rw) and (ry <= y <= ry + rh)


def compute_layout(
    glyph_box: Callable[[int], Optional[GlyphBox]],
    container_origin: Tuple[float, float],
    excluded_indices: Iterable[int],
    total_count: int,
) -> Dict[int, Tuple[float, float]]:
    """
    Center of every non-excluded letter in [0, total_count), relative to the
    container origin. Indices with no glyph are skipped.
    """
    ox, oy = container_origin
    excluded = set(excluded_indices)
    centers: Dict[int, Tuple[float, float]] = {}

    for i in range(total_count):
        if i in excluded:
            continue
        box = glyph_box(i)
        if box is None:
            logger.debug("no glyph for letter %d, skipping", i)
            continue
        x, y, w, h = box.rect
        centers[i] = (x - ox + w / 2.0, y - oy + h / 2.0)

    return centers


class LayoutRegistry:
    """
    Caches compute_layout() for a board. The cache is dropped when the board's
    revision changes (re-typeset after resize/text change) or on invalidate().
    """

    def __init__(self, board, container_origin: Tuple[float, float] = (0.0, 0.0), excluded_indices: Optional[Iterable[int]] = None, total_count: Optional[int] = None):
        self.board = board
        self.container_origin = container_origin
        self._excluded = None if excluded_indices is None else frozenset(excluded_indices)
        self._total_count = None if total_count is None else int(total_count)

        self._cache: Optional[Dict[int, Tuple[float, float]]] = None
        self._revision = -1

    @property
    def excluded_indices(self) -> FrozenSet[int]:
        # follows the board text unless given explicitly
        if self._excluded is None:
            return frozenset(self.board.whitespace_indices())
        return self._excluded

    @property
    def total_count(self) -> int:
        if self._total_count is None:
            return len(self.board.text)
        return self._total_count

    def invalidate(self) -> None:
        self._cache = None

    def get(self) -> Dict[int, Tuple[float, float]]:
        if self._cache is None or self._revision != self.board.revision:
            self._cache = compute_layout(
                self.board.glyph_box,
                self.container_origin,
                self.excluded_indices,
                self.total_count,
            )
            self._revision = self.board.revision
            logger.debug("letter layout recomputed: %d letters (revision %d)", len(self._cache), self._revision)
        return self._cache
