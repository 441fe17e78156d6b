# src/letterpose/main/loop.py
#
# Frame loop: camera -> pose model -> letter board -> window.
#
#   IDLE --start()--> RUNNING --stop()--> STOPPED
#
# One frame at a time, on the calling thread. Parameter changes arrive through
# a queue (trackbars, keys, other threads) and are applied at the top of each
# frame, which is also the only place the model can be swapped:
# dispose -> load -> continue.

import logging
import queue
import threading
from typing import Callable, List, Optional

import cv2 as cv
import numpy as np

from ..board.board import LetterBoard
from ..board.layout import LayoutRegistry
from ..pose.openpose_wrapper import ModelLoadError, load_model
from ..pose.types import Pose
from ..ui.controls import handle_key
from ..ui.draw import FpsMeter, draw_bounding_box, draw_hud, draw_keypoints, draw_skeleton
from ..ui.state import LoopState
from .config import DemoConfig


logger = logging.getLogger(__name__)


class CvPresenter:
    """Shows the canvas in a HighGUI window; waitKey(1) paces the loop."""

    def __init__(self, window: str):
        self.window = window

    def show(self, canvas: np.ndarray) -> int:
        cv.imshow(self.window, canvas)
        return cv.waitKey(1) & 0xFF


class PoseLoop:
    def __init__(
        self,
        camera,
        board: LetterBoard,
        config: DemoConfig = DemoConfig(),
        changes: Optional["queue.Queue"] = None,
        model_loader: Callable[[str], object] = load_model,
        presenter=None,
        controls=None,
        container_origin=(0.0, 0.0),
        model=None,
    ):
        self.camera = camera
        self.board = board
        self.config = config.validate()
        self.changes = changes if changes is not None else queue.Queue()
        self.model_loader = model_loader
        self.presenter = presenter
        self.controls = controls
        self.container_origin = container_origin

        self.layout = LayoutRegistry(board, container_origin)
        self.fps = FpsMeter()
        self.model = model
        self.state = LoopState.IDLE
        self.frames = 0

    # -------------------------
    # Lifecycle
    # -------------------------
    def start(self) -> None:
        if self.state is not LoopState.IDLE:
            raise RuntimeError(f"cannot start loop in state {self.state.name}")
        if self.model is not None and self.model.variant != self.config.model_variant:
            self.model.dispose()
            self.model = None
        if self.model is None:
            self.model = self.model_loader(self.config.model_variant)
        self.state = LoopState.RUNNING
        logger.info("loop running (%s, %s)", self.config.algorithm, self.config.model_variant)

    def stop(self) -> None:
        if self.model is not None:
            self.model.dispose()
            self.model = None
            logger.info("pose model disposed")
        self.state = LoopState.STOPPED

    def run(self, cancel: Optional[threading.Event] = None) -> int:
        """
        Run until `cancel` is set, the user quits or the camera stops delivering
        frames. Returns the number of frames shown.
        """
        if cancel is None:
            cancel = threading.Event()
        if self.state is LoopState.IDLE:
            self.start()

        try:
            while not cancel.is_set():
                if not self.step():
                    break
        finally:
            self.stop()
        logger.info("loop stopped after %d frames", self.frames)
        return self.frames

    # -------------------------
    # One frame
    # -------------------------
    def step(self) -> bool:
        """Process one frame. False means the loop should end."""
        if self.state is not LoopState.RUNNING:
            raise RuntimeError(f"cannot step loop in state {self.state.name}")

        self.apply_pending_changes()

        ok, frame = self.camera.read()
        if not ok or frame is None:
            logger.warning("camera returned no frame, stopping")
            return False

        try:
            canvas = self.process_frame(frame)
        except Exception:
            logger.exception("frame %d failed, skipping", self.frames)
            canvas = None

        self.frames += 1
        if self.presenter is None or canvas is None:
            return True

        key = self.presenter.show(canvas)
        action = handle_key(key, self.config, self.changes)
        if action == "quit":
            return False
        if action == "reset":
            self.board.reset_weights()
        return True

    def apply_pending_changes(self) -> None:
        pending = []
        while True:
            try:
                pending.append(self.changes.get_nowait())
            except queue.Empty:
                break
        if not pending:
            return

        try:
            config = self.config.with_changes(pending)
        except ValueError as e:
            logger.warning("rejected parameter change: %s", e)
            return

        if self.model is not None and config.model_variant != self.model.variant:
            self._swap_model(config.model_variant)
        self.config = config

        if self.controls is not None:
            self.controls.sync(config)

    def _swap_model(self, variant: str) -> None:
        logger.info("switching pose model %s -> %s", self.model.variant, variant)
        # free the old network before loading the new one
        self.model.dispose()
        self.model = None
        try:
            self.model = self.model_loader(variant)
        except Exception as e:
            self.state = LoopState.STOPPED
            raise ModelLoadError(f"could not load pose model variant {variant!r}: {e}") from e

    def estimate(self, frame: np.ndarray) -> List[Pose]:
        cfg = self.config
        if cfg.algorithm == "single-pose":
            pose = self.model.estimate_single_pose(frame, cfg.image_scale_factor, cfg.flip_horizontal, cfg.output_stride)
            return [pose]
        return self.model.estimate_multiple_poses(
            frame,
            cfg.image_scale_factor,
            cfg.flip_horizontal,
            cfg.output_stride,
            cfg.multi_max_pose_detections,
            cfg.multi_min_part_confidence,
            cfg.multi_nms_radius,
        )

    def process_frame(self, frame: np.ndarray) -> np.ndarray:
        cfg = self.config
        self.fps.tick()

        poses = self.estimate(frame)

        if cfg.show_video:
            canvas = cv.flip(frame, 1) if cfg.flip_horizontal else frame.copy()
        else:
            canvas = np.zeros_like(frame)

        self.board.resize(canvas.shape[1] - 2 * self.board.origin[0])
        layout = self.layout.get()

        min_part = cfg.min_part_confidence
        for pose in poses:
            if pose.score < cfg.min_pose_confidence:
                continue
            if cfg.show_points:
                draw_keypoints(canvas, pose.keypoints, min_part)
            if cfg.show_skeleton:
                draw_skeleton(canvas, pose.keypoints, min_part)
            if cfg.show_bounding_box:
                draw_bounding_box(canvas, pose.keypoints)

            applied = self.board.apply_pose(pose, layout, min_part, cfg.threshold_radius, cfg.max_weight)
            for part, match, weight in applied:
                logger.debug("%s -> letter %d (%.1fpx) weight %.0f", part, match.index, match.distance, weight)

        self.board.draw(canvas, cfg.max_weight)
        if cfg.show_letter_centers:
            self.board.draw_centers(canvas, layout, self.container_origin)

        draw_hud(canvas, [f"FPS: {self.fps.fps:.1f}", f"{cfg.algorithm} / {cfg.model_variant}"])
        return canvas
