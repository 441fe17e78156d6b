# src/letterpose/main/camera.py

import logging

import cv2 as cv


logger = logging.getLogger(__name__)


class CameraUnavailableError(RuntimeError):
    """No usable video capture device."""


def open_camera(index: int = 0, width: int = 600, height: int = 500, constrained: bool = False, backend: int = cv.CAP_ANY):
    """
    Open a webcam and request width x height. Constrained devices keep the
    camera's default resolution. Raises CameraUnavailableError.
    """
    cap = cv.VideoCapture(index, backend)
    if not cap.isOpened():
        cap.release()
        raise CameraUnavailableError(
            f"could not open camera {index}: this device has no camera, "
            f"or it is in use by another application"
        )

    if not constrained:
        cap.set(cv.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv.CAP_PROP_FRAME_HEIGHT, height)

    got_w = int(cap.get(cv.CAP_PROP_FRAME_WIDTH))
    got_h = int(cap.get(cv.CAP_PROP_FRAME_HEIGHT))
    if constrained:
        logger.info("camera %d opened at default resolution %dx%d", index, got_w, got_h)
    elif (got_w, got_h) != (width, height):
        logger.warning("camera %d delivers %dx%d instead of %dx%d", index, got_w, got_h, width, height)
    else:
        logger.info("camera %d opened at %dx%d", index, got_w, got_h)

    return cap
