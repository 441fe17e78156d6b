# src/letterpose/main/main.py
#
# Webcam demo: OpenPose keypoints push the letters of a sentence into bold.
#
#   python -m letterpose.main.main      (or the `letterpose` script)
#
# Keys:
#   q / ESC  - quit
#   m        - single-pose <-> multi-pose
#   v s p b  - toggle video / skeleton / points / bounding box
#   c        - toggle letter center markers
#   r        - reset letter weights
#
# Environment: LETTERPOSE_CAMERA, LETTERPOSE_MODEL, LETTERPOSE_CONSTRAINED,
#              LETTERPOSE_LOG_LEVEL

import logging
import queue
import sys
from functools import partial

import cv2 as cv

from ..board.board import LetterBoard
from ..pose.openpose_wrapper import ModelLoadError, load_model
from ..ui.controls import ControlPanel
from . import config as C
from .camera import CameraUnavailableError, open_camera
from .loop import CvPresenter, PoseLoop


logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(
        level=getattr(logging, C.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    demo_cfg = C.DemoConfig().validate()
    loader = partial(load_model, model_path=C.MODEL_PATH)

    # Model first, then camera
    logger.info("loading pose model...")
    try:
        model = loader(demo_cfg.model_variant)
    except ModelLoadError as e:
        logger.error("pose model unavailable: %s", e)
        print(f"Could not load the pose model.\n{e}", file=sys.stderr)
        return 1

    try:
        cap = open_camera(C.CAM_INDEX, C.WIDTH, C.HEIGHT, constrained=C.CONSTRAINED)
    except CameraUnavailableError as e:
        model.dispose()
        logger.error("%s", e)
        print("This device does not support video capture, or it has no camera.", file=sys.stderr)
        return 1

    board = LetterBoard(
        C.TEXT,
        origin=C.TEXT_ORIGIN,
        max_width=C.WIDTH - 2 * C.TEXT_ORIGIN[0],
        font_scale=C.FONT_SCALE,
        line_gap=C.LINE_GAP,
        color=C.LETTER_COLOR,
        marker_color=C.MARKER_COLOR,
        max_weight=demo_cfg.max_weight,
        max_thickness=C.MAX_THICKNESS,
    )

    changes: "queue.Queue" = queue.Queue()
    controls = ControlPanel(changes, window=C.CONTROLS_WINDOW)
    controls.open(demo_cfg)

    loop = PoseLoop(
        cap,
        board,
        config=demo_cfg,
        changes=changes,
        model_loader=loader,
        presenter=CvPresenter(C.WINDOW_NAME),
        controls=controls,
        model=model,
    )

    print("Keys: q quit | m mode | v video | s skeleton | p points | b bbox | c centers | r reset")
    try:
        loop.run()
    except ModelLoadError as e:
        logger.error("%s", e)
        print(f"Pose model failed while switching variants.\n{e}", file=sys.stderr)
        return 1
    finally:
        cap.release()
        cv.destroyAllWindows()
    return 0


if __name__ == "__main__":
    sys.exit(main())
