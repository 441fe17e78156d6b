# src/letterpose/pose/openpose_wrapper.py
#
# OpenPose (CMU COCO-style) via the OpenCV DNN backend.
# Backend: TensorFlow graph (.pb) such as graph_opt.pb (as in LearnOpenCV tutorial).
#
# API:
#   - load_model(variant, model_path) -> OpenPoseModel
#   - OpenPoseModel.estimate_single_pose(frame, scale, flip, stride) -> Pose
#   - OpenPoseModel.estimate_multiple_poses(frame, scale, flip, stride, ...) -> [Pose]
#   - OpenPoseModel.dispose()
#
# Variants trade accuracy for speed through the network input resolution.

import logging
import os
from dataclasses import dataclass
from typing import List

import cv2 as cv
import numpy as np

from .decoding import decode_multiple_poses, decode_single_pose
from .types import Pose


logger = logging.getLogger(__name__)


# Network input size (square) per quality tier, fastest first.
MODEL_VARIANTS = {
    "small": 192,
    "medium": 256,
    "large": 368,
    "xlarge": 432,
}

OUTPUT_STRIDES = (8, 16, 32)

DEFAULT_MODEL_PATH = os.path.join(os.path.dirname(__file__), "graph_opt.pb")


class ModelLoadError(RuntimeError):
    """The pose network could not be loaded."""


@dataclass
class OpenPoseConfig:
    # Path to TensorFlow graph (.pb)
    model_path: str = DEFAULT_MODEL_PATH

    # Quality tier, key of MODEL_VARIANTS
    variant: str = "medium"

    # If True, uses OpenCV DNN backend/target if available
    prefer_backend: bool = True


def input_size(variant: str, image_scale_factor: float, output_stride: int) -> int:
    """
    Network input side for a variant, scaled and snapped down to a multiple of
    the output stride (never below one stride).
    """
    if variant not in MODEL_VARIANTS:
        raise ValueError(f"unknown model variant: {variant!r}")
    if output_stride not in OUTPUT_STRIDES:
        raise ValueError(f"output stride must be one of {OUTPUT_STRIDES}, got {output_stride}")

    scaled = int(MODEL_VARIANTS[variant] * float(image_scale_factor))
    return max(output_stride, (scaled // output_stride) * output_stride)


class OpenPoseModel:
    """
    OpenPose model via OpenCV DNN (TensorFlow .pb).

    - init loads the network once.
    - dispose() drops the network; any later estimate raises RuntimeError.
    """

    def __init__(self, cfg: OpenPoseConfig):
        self.cfg = cfg

        if cfg.variant not in MODEL_VARIANTS:
            raise ModelLoadError(f"unknown model variant: {cfg.variant!r}")

        if not os.path.isfile(cfg.model_path):
            raise ModelLoadError(
                f"OpenPose model not found: {cfg.model_path}\n"
                f"Tip: set LETTERPOSE_MODEL or put graph_opt.pb next to openpose_wrapper.py."
            )

        try:
            self.net = cv.dnn.readNetFromTensorflow(cfg.model_path)
        except cv.error as e:
            raise ModelLoadError(f"could not read OpenPose graph {cfg.model_path}: {e}") from e

        if cfg.prefer_backend:
            try:
                self.net.setPreferableBackend(cv.dnn.DNN_BACKEND_OPENCV)
                self.net.setPreferableTarget(cv.dnn.DNN_TARGET_CPU)
            except cv.error:
                logger.warning("could not select OpenCV DNN backend, using defaults")

    @property
    def variant(self) -> str:
        return self.cfg.variant

    @property
    def disposed(self) -> bool:
        return self.net is None

    def dispose(self) -> None:
        self.net = None

    # -------------------------
    # Internal: run network, return (C, H, W) output for the frame
    # -------------------------
    def _infer(self, frame_bgr: np.ndarray, image_scale_factor: float, flip_horizontal: bool, output_stride: int) -> np.ndarray:
        if self.net is None:
            raise RuntimeError("pose model has been disposed")

        if flip_horizontal:
            frame_bgr = cv.flip(frame_bgr, 1)

        side = input_size(self.cfg.variant, image_scale_factor, output_stride)
        blob = cv.dnn.blobFromImage(
            frame_bgr,
            1.0,
            (side, side),
            (127.5, 127.5, 127.5),
            swapRB=True,
            crop=False,
        )
        self.net.setInput(blob)
        return self.net.forward()[0]

    def estimate_single_pose(
        self,
        frame_bgr: np.ndarray,
        image_scale_factor: float = 0.5,
        flip_horizontal: bool = True,
        output_stride: int = 16,
    ) -> Pose:
        frame_h, frame_w = frame_bgr.shape[:2]
        out = self._infer(frame_bgr, image_scale_factor, flip_horizontal, output_stride)
        return decode_single_pose(out, frame_w, frame_h)

    def estimate_multiple_poses(
        self,
        frame_bgr: np.ndarray,
        image_scale_factor: float = 0.5,
        flip_horizontal: bool = True,
        output_stride: int = 16,
        max_pose_detections: int = 5,
        min_part_confidence: float = 0.1,
        nms_radius: float = 30.0,
    ) -> List[Pose]:
        frame_h, frame_w = frame_bgr.shape[:2]
        out = self._infer(frame_bgr, image_scale_factor, flip_horizontal, output_stride)
        return decode_multiple_poses(
            out,
            frame_w,
            frame_h,
            max_pose_detections=max_pose_detections,
            min_part_confidence=min_part_confidence,
            nms_radius=nms_radius,
        )


def load_model(variant: str, model_path: str = DEFAULT_MODEL_PATH) -> OpenPoseModel:
    logger.info("loading OpenPose variant %s (%dpx) from %s", variant, MODEL_VARIANTS.get(variant, 0), model_path)
    return OpenPoseModel(OpenPoseConfig(model_path=model_path, variant=variant))
