import pytest

from letterpose.board.layout import GlyphBox, LayoutRegistry, compute_layout
from letterpose.main.config import TEXT


STOCK_SPACES = [5, 14, 18, 24, 27, 33, 36, 40, 45, 47, 54, 61, 64, 73, 77]


def boxes_lookup(boxes):
    return lambda i: boxes.get(i)


def test_center_is_relative_to_container():
    boxes = {0: GlyphBox(0, "a", (10, 20, 10, 20), 40)}
    layout = compute_layout(boxes_lookup(boxes), (5, 5), (), 1)
    assert layout == {0: (10.0, 25.0)}


def test_excluded_and_missing_glyphs_are_skipped():
    boxes = {
        0: GlyphBox(0, "a", (0, 0, 10, 10), 10),
        1: GlyphBox(1, " ", (10, 0, 5, 10), 10),
        2: GlyphBox(2, "b", (15, 0, 10, 10), 10),
    }
    # index 3 has no glyph at all
    layout = compute_layout(boxes_lookup(boxes), (0, 0), {1}, 4)
    assert sorted(layout) == [0, 2]


def test_stock_board_layout_size(board):
    assert board.whitespace_indices() == STOCK_SPACES
    registry = LayoutRegistry(board)
    layout = registry.get()
    assert len(TEXT) == 84
    assert len(layout) == 84 - len(STOCK_SPACES)
    assert not set(layout) & set(STOCK_SPACES)


def test_total_count_beyond_text_does_not_raise(board):
    registry = LayoutRegistry(board, excluded_indices=(), total_count=100)
    layout = registry.get()
    assert max(layout) == 83
    assert len(layout) == 84


class CountingBoard:
    text = "ab"
    revision = 1

    def __init__(self):
        self.lookups = 0

    def whitespace_indices(self):
        return []

    def glyph_box(self, i):
        self.lookups += 1
        return GlyphBox(i, self.text[i], (i * 10, 0, 10, 10), 10)


def test_registry_caches_until_revision_changes():
    b = CountingBoard()
    registry = LayoutRegistry(b)

    first = registry.get()
    registry.get()
    assert b.lookups == 2

    b.revision += 1
    assert registry.get() == first
    assert b.lookups == 4

    registry.invalidate()
    registry.get()
    assert b.lookups == 6


def test_glyph_box_geometry():
    box = GlyphBox(0, "x", (10, 10, 20, 40), 50)
    assert box.center == pytest.approx((20.0, 30.0))
    assert box.contains(15, 45)
    assert not box.contains(31, 20)


def test_registry_follows_new_text(board):
    registry = LayoutRegistry(board)
    registry.get()

    board.text = "hi there"
    board.typeset()
    assert sorted(registry.get()) == [0, 1, 3, 4, 5, 6, 7]
