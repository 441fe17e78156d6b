import numpy as np
import pytest

from letterpose.board.board import LetterBoard
from letterpose.main.config import TEXT
from letterpose.pose.types import Keypoint, Pose


class FakeCamera:
    def __init__(self, n_frames, shape=(500, 600, 3)):
        self.remaining = n_frames
        self.shape = shape
        self.reads = 0

    def read(self):
        if self.remaining <= 0:
            return False, None
        self.remaining -= 1
        self.reads += 1
        return True, np.zeros(self.shape, dtype=np.uint8)


class FakeModel:
    """Records every call into a shared log as (action, variant)."""

    def __init__(self, variant, log, poses=None, on_estimate=None):
        self.variant = variant
        self.log = log
        self.poses = poses if poses is not None else [Pose()]
        self.on_estimate = on_estimate
        self.disposed = False

    def _estimate(self):
        if self.disposed:
            raise RuntimeError("pose model has been disposed")
        self.log.append(("estimate", self.variant))
        if self.on_estimate is not None:
            self.on_estimate(self)
        return list(self.poses)

    def estimate_single_pose(self, frame, image_scale_factor, flip_horizontal, output_stride):
        return self._estimate()[0]

    def estimate_multiple_poses(self, frame, image_scale_factor, flip_horizontal, output_stride,
                                max_pose_detections, min_part_confidence, nms_radius):
        return self._estimate()

    def dispose(self):
        self.disposed = True
        self.log.append(("dispose", self.variant))


class FakePresenter:
    def __init__(self, keys=()):
        self.keys = list(keys)
        self.shown = []

    def show(self, canvas):
        self.shown.append(canvas)
        return self.keys.pop(0) if self.keys else 255


@pytest.fixture
def board():
    return LetterBoard(TEXT, origin=(20, 60), max_width=560)


@pytest.fixture
def call_log():
    return []


@pytest.fixture
def make_loader(call_log):
    def factory(**model_kwargs):
        def loader(variant):
            call_log.append(("load", variant))
            return FakeModel(variant, call_log, **model_kwargs)
        return loader
    return factory


def _pose_at(*points, score=0.9, part_score=0.9):
    parts = ("nose", "leftWrist", "rightWrist", "leftEye", "rightEye")
    kps = tuple(Keypoint(part=parts[i], x=float(x), y=float(y), score=part_score) for i, (x, y) in enumerate(points))
    return Pose(keypoints=kps, score=score)


@pytest.fixture
def pose_at():
    """Build a Pose whose keypoints sit at the given (x, y) positions."""
    return _pose_at


@pytest.fixture
def make_camera():
    return FakeCamera


@pytest.fixture
def make_presenter():
    return FakePresenter


@pytest.fixture
def model_cls():
    return FakeModel
