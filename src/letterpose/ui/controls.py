# src/letterpose/ui/controls.py
# Parameter panel: OpenCV trackbars in their own window + keyboard shortcuts.
# Nothing here touches the running config; every change is queued as
# (field, value) and picked up by the loop at the start of the next frame.

import logging
import queue
from dataclasses import dataclass
from typing import Any, Callable, List, Sequence

import cv2

from ..main.config import ALGORITHMS, DemoConfig
from ..pose.openpose_wrapper import MODEL_VARIANTS, OUTPUT_STRIDES


logger = logging.getLogger(__name__)


@dataclass
class Slider:
    key: str          # DemoConfig field
    label: str
    max_pos: int
    to_value: Callable[[int], Any]
    to_pos: Callable[[Any], int]


def choice_slider(key: str, label: str, options: Sequence[Any]) -> Slider:
    options = tuple(options)
    return Slider(
        key,
        label,
        len(options) - 1,
        lambda pos: options[max(0, min(len(options) - 1, pos))],
        lambda value: options.index(value),
    )


def range_slider(key: str, label: str, lo: float, hi: float, steps: int = 100) -> Slider:
    span = float(hi - lo)
    return Slider(
        key,
        label,
        steps,
        lambda pos: round(lo + span * pos / steps, 4),
        lambda value: int(round((float(value) - lo) * steps / span)),
    )


def int_slider(key: str, label: str, lo: int, hi: int) -> Slider:
    # trackbars start at 0, so positions are offset by lo
    return Slider(key, label, hi - lo, lambda pos: max(lo, pos + lo), lambda value: int(value) - lo)


def toggle_slider(key: str, label: str) -> Slider:
    return Slider(key, label, 1, lambda pos: bool(pos), lambda value: int(bool(value)))


SLIDERS: List[Slider] = [
    choice_slider("algorithm", "algorithm", ALGORITHMS),
    # Input
    choice_slider("model_variant", "model", tuple(MODEL_VARIANTS)),
    choice_slider("output_stride", "stride", OUTPUT_STRIDES),
    range_slider("image_scale_factor", "scale", 0.2, 1.0, steps=80),
    # Single pose
    range_slider("single_min_pose_confidence", "1p pose conf", 0.0, 1.0),
    range_slider("single_min_part_confidence", "1p part conf", 0.0, 1.0),
    # Multi pose
    int_slider("multi_max_pose_detections", "np max poses", 1, 20),
    range_slider("multi_min_pose_confidence", "np pose conf", 0.0, 1.0),
    range_slider("multi_min_part_confidence", "np part conf", 0.0, 1.0),
    range_slider("multi_nms_radius", "np nms radius", 0.0, 40.0, steps=40),
    # Output
    toggle_slider("show_video", "video"),
    toggle_slider("show_skeleton", "skeleton"),
    toggle_slider("show_points", "points"),
    toggle_slider("show_bounding_box", "bbox"),
]


# key -> field toggled
TOGGLE_KEYS = {
    ord("v"): "show_video",
    ord("s"): "show_skeleton",
    ord("p"): "show_points",
    ord("b"): "show_bounding_box",
    ord("c"): "show_letter_centers",
}

QUIT_KEYS = (ord("q"), 27)
RESET_KEY = ord("r")
MODE_KEY = ord("m")


def handle_key(key: int, config: DemoConfig, changes: "queue.Queue") -> str:
    """
    Translate a key press into queued changes.
    Returns "quit", "reset" or "" (nothing for the loop to do itself).
    """
    if key in QUIT_KEYS:
        return "quit"
    if key == RESET_KEY:
        return "reset"
    if key == MODE_KEY:
        other = "multi-pose" if config.algorithm == "single-pose" else "single-pose"
        changes.put(("algorithm", other))
    elif key in TOGGLE_KEYS:
        name = TOGGLE_KEYS[key]
        changes.put((name, not getattr(config, name)))
    return ""


class ControlPanel:
    def __init__(self, changes: "queue.Queue", window: str = "letterpose controls", sliders: Sequence[Slider] = SLIDERS):
        self.changes = changes
        self.window = window
        self.sliders = list(sliders)

    def open(self, config: DemoConfig) -> None:
        cv2.namedWindow(self.window, cv2.WINDOW_NORMAL)
        for s in self.sliders:
            cv2.createTrackbar(s.label, self.window, s.to_pos(getattr(config, s.key)), s.max_pos, self._callback(s))
        logger.info("control panel ready (%d controls)", len(self.sliders))

    def _callback(self, slider: Slider):
        def on_change(pos: int) -> None:
            self.changes.put((slider.key, slider.to_value(pos)))
        return on_change

    def sync(self, config: DemoConfig) -> None:
        """Move trackbars to match config (after keyboard toggles)."""
        for s in self.sliders:
            pos = s.to_pos(getattr(config, s.key))
            if cv2.getTrackbarPos(s.label, self.window) != pos:
                cv2.setTrackbarPos(s.label, self.window, pos)
