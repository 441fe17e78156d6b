import threading

import pytest

from letterpose.main.config import DemoConfig
from letterpose.main.loop import PoseLoop
from letterpose.pose.openpose_wrapper import ModelLoadError
from letterpose.ui.state import LoopState


def test_start_loads_model_and_stop_disposes(board, make_camera, make_loader, call_log):
    loop = PoseLoop(make_camera(0), board, model_loader=make_loader())
    assert loop.state is LoopState.IDLE

    loop.start()
    assert loop.state is LoopState.RUNNING
    loop.stop()

    assert loop.state is LoopState.STOPPED
    assert call_log == [("load", "medium"), ("dispose", "medium")]


def test_run_until_camera_ends(board, make_camera, make_loader, make_presenter):
    presenter = make_presenter()
    loop = PoseLoop(make_camera(3), board, model_loader=make_loader(), presenter=presenter)

    assert loop.run() == 3
    assert len(presenter.shown) == 3
    assert loop.state is LoopState.STOPPED


def test_variant_change_mid_frame_swaps_before_next_estimate(board, make_camera, make_loader, call_log):
    loop = None

    def request_swap(model):
        # arrives while the first frame is being processed
        if model.variant == "medium":
            loop.changes.put(("model_variant", "large"))
            loop.changes.put(("model_variant", "xlarge"))

    loop = PoseLoop(make_camera(2), board, model_loader=make_loader(on_estimate=request_swap))
    loop.run()

    assert call_log == [
        ("load", "medium"),
        ("estimate", "medium"),
        ("dispose", "medium"),
        ("load", "xlarge"),
        ("estimate", "xlarge"),
        ("dispose", "xlarge"),
    ]
    assert loop.config.model_variant == "xlarge"


def test_failed_swap_is_fatal(board, make_camera, model_cls, call_log):
    def loader(variant):
        call_log.append(("load", variant))
        if variant != "medium":
            raise ModelLoadError("no graph")
        return model_cls(variant, call_log)

    loop = PoseLoop(make_camera(5), board, model_loader=loader)
    loop.start()
    loop.changes.put(("model_variant", "large"))

    with pytest.raises(ModelLoadError):
        loop.run()
    assert loop.state is LoopState.STOPPED
    assert call_log == [("load", "medium"), ("dispose", "medium"), ("load", "large")]


def test_cancel_is_checked_before_each_frame(board, make_camera, make_loader, make_presenter):
    cancel = threading.Event()

    class CancellingPresenter(make_presenter):
        def show(self, canvas):
            cancel.set()
            return super().show(canvas)

    camera = make_camera(10)
    loop = PoseLoop(camera, board, model_loader=make_loader(), presenter=CancellingPresenter())

    assert loop.run(cancel) == 1
    assert camera.reads == 1


def test_already_cancelled_runs_no_frames(board, make_camera, make_loader, call_log):
    cancel = threading.Event()
    cancel.set()
    camera = make_camera(10)

    assert PoseLoop(camera, board, model_loader=make_loader()).run(cancel) == 0
    assert camera.reads == 0
    assert call_log == [("load", "medium"), ("dispose", "medium")]


def test_bad_frame_does_not_stop_the_loop(board, make_camera, make_loader, make_presenter):
    calls = {"n": 0}

    def fail_once(model):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("inference blew up")

    presenter = make_presenter()
    loop = PoseLoop(make_camera(3), board, model_loader=make_loader(on_estimate=fail_once), presenter=presenter)

    assert loop.run() == 3
    assert len(presenter.shown) == 2


def test_quit_and_reset_keys(board, make_camera, make_loader, make_presenter):
    board.weights[0] = 150.0
    presenter = make_presenter(keys=[ord("r"), ord("q")])
    loop = PoseLoop(make_camera(10), board, model_loader=make_loader(), presenter=presenter)

    assert loop.run() == 2
    assert board.weights == {}


def test_keyboard_toggle_applies_next_frame(board, make_camera, make_loader, make_presenter):
    presenter = make_presenter(keys=[ord("m")])
    loop = PoseLoop(make_camera(2), board, model_loader=make_loader(), presenter=presenter)
    loop.run()
    assert loop.config.algorithm == "multi-pose"


def test_frame_pushes_touched_letter_to_full_weight(board, make_camera, make_loader, pose_at):
    cx, cy = board.glyph_box(0).center
    loader = make_loader(poses=[pose_at((cx, cy))])
    loop = PoseLoop(make_camera(1), board, model_loader=loader)
    loop.run()

    assert board.weights == {0: 150.0}


def test_low_confidence_pose_is_ignored(board, make_camera, make_loader, pose_at):
    cx, cy = board.glyph_box(0).center
    loader = make_loader(poses=[pose_at((cx, cy), score=0.05)])
    PoseLoop(make_camera(1), board, model_loader=loader).run()

    assert board.weights == {}


def test_multi_pose_mode_uses_every_pose(board, make_camera, make_loader, pose_at):
    a = board.glyph_box(0).center
    b = board.glyph_box(2).center
    loader = make_loader(poses=[pose_at(a), pose_at(b)])
    cfg = DemoConfig(algorithm="multi-pose")
    PoseLoop(make_camera(1), board, config=cfg, model_loader=loader).run()

    assert set(board.weights) == {0, 2}


def test_hidden_video_still_renders(board, make_camera, make_loader, make_presenter):
    presenter = make_presenter()
    cfg = DemoConfig(show_video=False, show_bounding_box=True)
    PoseLoop(make_camera(1), board, config=cfg, model_loader=make_loader(), presenter=presenter).run()

    assert presenter.shown[0].shape == (500, 600, 3)


def test_max_weight_change_reaches_the_board(board, make_camera, make_loader, pose_at):
    cx, cy = board.glyph_box(0).center
    loop = PoseLoop(make_camera(1), board, model_loader=make_loader(poses=[pose_at((cx, cy))]))
    loop.changes.put(("max_weight", 300.0))
    loop.run()

    assert loop.config.max_weight == 300.0
    assert board.weights == {0: 300.0}
