import pytest

from letterpose.main import camera
from letterpose.main.camera import CameraUnavailableError, open_camera


class StubCapture:
    def __init__(self, opened=True, size=(600, 500)):
        self.opened = opened
        self.size = list(size)
        self.released = False
        self.requested = []

    def isOpened(self):
        return self.opened

    def release(self):
        self.released = True

    def set(self, prop, value):
        self.requested.append((prop, value))
        return True

    def get(self, prop):
        if prop == camera.cv.CAP_PROP_FRAME_WIDTH:
            return float(self.size[0])
        return float(self.size[1])


def test_unopened_device_raises_and_releases(monkeypatch):
    stub = StubCapture(opened=False)
    monkeypatch.setattr(camera.cv, "VideoCapture", lambda index, backend: stub)

    with pytest.raises(CameraUnavailableError):
        open_camera(3)
    assert stub.released


def test_requests_resolution_unless_constrained(monkeypatch):
    stub = StubCapture()
    monkeypatch.setattr(camera.cv, "VideoCapture", lambda index, backend: stub)

    assert open_camera(0, 600, 500) is stub
    assert len(stub.requested) == 2

    stub.requested.clear()
    open_camera(0, 600, 500, constrained=True)
    assert stub.requested == []
