# config.py
# =========================
# Application configuration
# =========================

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Iterable, Tuple

from ..pose.openpose_wrapper import DEFAULT_MODEL_PATH, MODEL_VARIANTS, OUTPUT_STRIDES


logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


# -------- Video --------
WIDTH = 600
HEIGHT = 500
CAM_INDEX = int(os.getenv("LETTERPOSE_CAMERA", "0"))
# Constrained devices keep the camera's default resolution
CONSTRAINED = _env_flag("LETTERPOSE_CONSTRAINED")
WINDOW_NAME = "letterpose"
CONTROLS_WINDOW = "letterpose controls"

# -------- Model --------
MODEL_PATH = os.getenv("LETTERPOSE_MODEL", DEFAULT_MODEL_PATH)

# -------- Logging --------
LOG_LEVEL = os.getenv("LETTERPOSE_LOG_LEVEL", "INFO")

# -------- Letters --------
TEXT = "We're changing the world of work, so you have a better chance of changing the world."
TEXT_ORIGIN = (20, 60)
FONT_SCALE = 1.4
LINE_GAP = 18
LETTER_COLOR = (209, 223, 239)   # BGR of #EFDFD1
MARKER_COLOR = (75, 32, 27)      # BGR of #1B204B
MAX_THICKNESS = 6

ALGORITHMS = ("single-pose", "multi-pose")


@dataclass(frozen=True)
class DemoConfig:
    """Every runtime parameter. Never mutated: changes produce a new instance."""

    algorithm: str = "single-pose"

    # Input
    model_variant: str = "small" if CONSTRAINED else "medium"
    output_stride: int = 16
    image_scale_factor: float = 0.5
    flip_horizontal: bool = True

    # Single pose detection
    single_min_pose_confidence: float = 0.1
    single_min_part_confidence: float = 0.5

    # Multi pose detection
    multi_max_pose_detections: int = 5
    multi_min_pose_confidence: float = 0.15
    multi_min_part_confidence: float = 0.1
    multi_nms_radius: float = 30.0

    # Output
    show_video: bool = True
    show_skeleton: bool = True
    show_points: bool = True
    show_bounding_box: bool = False
    show_letter_centers: bool = True

    # Letter effect
    threshold_radius: float = 20.0
    max_weight: float = 150.0

    @property
    def min_pose_confidence(self) -> float:
        if self.algorithm == "multi-pose":
            return self.multi_min_pose_confidence
        return self.single_min_pose_confidence

    @property
    def min_part_confidence(self) -> float:
        if self.algorithm == "multi-pose":
            return self.multi_min_part_confidence
        return self.single_min_part_confidence

    def validate(self) -> "DemoConfig":
        if self.algorithm not in ALGORITHMS:
            raise ValueError(f"algorithm must be one of {ALGORITHMS}, got {self.algorithm!r}")
        if self.model_variant not in MODEL_VARIANTS:
            raise ValueError(f"model_variant must be one of {tuple(MODEL_VARIANTS)}, got {self.model_variant!r}")
        if self.output_stride not in OUTPUT_STRIDES:
            raise ValueError(f"output_stride must be one of {OUTPUT_STRIDES}, got {self.output_stride}")
        if not 0.2 <= self.image_scale_factor <= 1.0:
            raise ValueError(f"image_scale_factor must be in [0.2, 1.0], got {self.image_scale_factor}")
        for name in (
            "single_min_pose_confidence",
            "single_min_part_confidence",
            "multi_min_pose_confidence",
            "multi_min_part_confidence",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value}")
        if not 1 <= self.multi_max_pose_detections <= 20:
            raise ValueError(f"multi_max_pose_detections must be in [1, 20], got {self.multi_max_pose_detections}")
        if not 0.0 <= self.multi_nms_radius <= 40.0:
            raise ValueError(f"multi_nms_radius must be in [0.0, 40.0], got {self.multi_nms_radius}")
        if self.threshold_radius <= 0:
            raise ValueError(f"threshold_radius must be positive, got {self.threshold_radius}")
        if self.max_weight <= 0:
            raise ValueError(f"max_weight must be positive, got {self.max_weight}")
        return self

    def with_changes(self, changes: Iterable[Tuple[str, Any]]) -> "DemoConfig":
        """
        Apply (field, value) pairs in order; later values win. Unknown fields
        are logged and ignored. The result is validated.
        """
        types = {f.name: f.type for f in fields(self)}
        updates = {}
        for name, value in changes:
            if name not in types:
                logger.warning("ignoring unknown parameter %r", name)
                continue
            updates[name] = _coerce(types[name], value)
        if not updates:
            return self
        return replace(self, **updates).validate()


def _coerce(type_, value):
    # annotations may be strings depending on how the module was compiled
    name = type_ if isinstance(type_, str) else type_.__name__
    if name == "bool":
        return bool(value)
    if name == "int":
        return int(value)
    if name == "float":
        return float(value)
    return value
