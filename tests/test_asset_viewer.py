import numpy as np
import pytest
import pyvista as pv

from sciencelab.controller.asset_viewer import AssetViewer, SynchronousExecutor
from sciencelab.controller.scene_host import SceneHost
from sciencelab.errors import AssetLoadError, UnsupportedFormatError
from sciencelab.model.animation import AnimationChannel, AnimationClip, AnimationTrack, TargetPath
from sciencelab.model.assets import AssetFormat, AssetNode, ViewerAsset

from conftest import DeferredExecutor


def make_asset(url: str, animated: bool = False) -> ViewerAsset:
    box = AssetNode(name="box", geometry=pv.Cube())
    root = AssetNode(name="world", children=[box])
    clips = []
    if animated:
        channel = AnimationChannel(
            path=TargetPath.TRANSLATION,
            times=[0.0, 1.0],
            values=[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]],
        )
        clips = [AnimationClip(name="slide", tracks=[AnimationTrack(node="box", channels={channel.path: channel})])]
    return ViewerAsset(url=url, format=AssetFormat.GLTF, root=root, clips=clips)


class FakeSource:
    def __init__(self, failures=(), animated=()) -> None:
        self.failures = set(failures)
        self.animated = set(animated)
        self.requests: list = []

    def load(self, url: str, fmt) -> ViewerAsset:
        self.requests.append((url, fmt))
        if url in self.failures:
            raise AssetLoadError(url, message="404 Not Found")
        return make_asset(url, animated=url in self.animated)


@pytest.fixture
def host(backend, scheduler, surface) -> SceneHost:
    host = SceneHost(backend, scheduler)
    host.initialize(surface)
    return host


def test_load_attaches_asset(host) -> None:
    viewer = AssetViewer(host, source=FakeSource(), executor=SynchronousExecutor())

    token = viewer.load("a.glb", "gltf")

    assert token == viewer.request_token
    assert viewer.asset.url == "a.glb"
    assert viewer.is_loading is False
    assert viewer.error is None
    assert viewer.scene_object("box").name in host.context.objects


def test_last_request_wins(host) -> None:
    executor = DeferredExecutor()
    viewer = AssetViewer(host, source=FakeSource(), executor=executor)

    viewer.load("first.glb")
    viewer.load("second.glb")
    assert viewer.is_loading

    executor.complete(1)
    assert viewer.asset.url == "second.glb"
    assert viewer.is_loading is False

    executor.complete(0)
    assert viewer.asset.url == "second.glb"


def test_stale_result_never_shows_even_if_it_arrives_first(host) -> None:
    executor = DeferredExecutor()
    viewer = AssetViewer(host, source=FakeSource(), executor=executor)

    viewer.load("first.glb")
    viewer.load("second.glb")

    executor.complete(0)
    assert viewer.asset is None
    assert viewer.is_loading

    executor.complete(1)
    assert viewer.asset.url == "second.glb"


def test_failure_keeps_previous_asset(host) -> None:
    viewer = AssetViewer(host, source=FakeSource(failures=["broken.glb"]), executor=SynchronousExecutor())
    viewer.load("good.glb")
    shown = viewer.asset

    viewer.load("broken.glb")

    assert viewer.asset is shown
    assert isinstance(viewer.error, AssetLoadError)
    assert "404" in str(viewer.error)
    assert viewer.is_loading is False
    assert viewer.scene_object("box").name in host.context.objects


def test_backend_failure_while_attaching_keeps_previous_asset(host, backend) -> None:
    class TwoPartSource:
        def load(self, url, fmt):
            parts = [AssetNode(name="a", geometry=pv.Cube()), AssetNode(name="b", geometry=pv.Sphere())]
            return ViewerAsset(url=url, format=AssetFormat.GLTF, root=AssetNode(name="world", children=parts))

    viewer = AssetViewer(host, source=TwoPartSource(), executor=SynchronousExecutor())
    viewer.load("first.glb")
    shown = viewer.asset
    shown_names = sorted(host.context.objects)

    backend.fail_add_suffix = ":b"
    viewer.load("second.glb")

    assert viewer.asset is shown
    assert shown.root.children[0].geometry is not None
    assert sorted(host.context.objects) == shown_names
    assert sorted(backend.objects) == shown_names
    assert isinstance(viewer.error, AssetLoadError)
    assert viewer.error.url == "second.glb"
    assert isinstance(viewer.error.cause, RuntimeError)
    assert viewer.is_loading is False


def test_unexpected_errors_are_wrapped(host) -> None:
    class ExplodingSource:
        def load(self, url, fmt):
            raise OSError("disk on fire")

    viewer = AssetViewer(host, source=ExplodingSource(), executor=SynchronousExecutor())
    viewer.load("x.obj", AssetFormat.OBJ)

    assert isinstance(viewer.error, AssetLoadError)
    assert isinstance(viewer.error.cause, OSError)
    assert viewer.error.url == "x.obj"


def test_unsupported_format_raises_before_io(host) -> None:
    source = FakeSource()
    executor = DeferredExecutor()
    viewer = AssetViewer(host, source=source, executor=executor)

    with pytest.raises(UnsupportedFormatError):
        viewer.load("model.stl", "stl")

    assert source.requests == []
    assert executor.jobs == []
    assert viewer.request_token == 0


def test_toggle_playback_without_animations_is_noop(host) -> None:
    viewer = AssetViewer(host, source=FakeSource(), executor=SynchronousExecutor())
    assert viewer.toggle_playback() is False

    viewer.load("static.glb")
    assert viewer.has_animations is False
    assert viewer.toggle_playback() is False
    assert viewer.playing is False


def test_playback_moves_animated_nodes(host) -> None:
    viewer = AssetViewer(host, source=FakeSource(animated=["anim.glb"]), executor=SynchronousExecutor())
    viewer.load("anim.glb")
    obj = viewer.scene_object("box")

    # Clips start paused
    viewer.update(0.5)
    assert obj.user_matrix[0, 3] == pytest.approx(0.0)

    assert viewer.toggle_playback() is True
    viewer.update(0.5)
    assert obj.user_matrix[0, 3] == pytest.approx(0.5)

    assert viewer.toggle_playback() is False
    viewer.update(0.25)
    assert obj.user_matrix[0, 3] == pytest.approx(0.5)


def test_new_asset_replaces_scene_objects(host, backend) -> None:
    viewer = AssetViewer(host, source=FakeSource(), executor=SynchronousExecutor())
    viewer.load("one.glb")
    first = viewer.asset
    first_name = viewer.scene_object("box").name

    viewer.load("two.glb")

    assert ("remove", first_name) in backend.calls
    assert first_name not in host.context.objects
    assert first.root.children[0].geometry is None
    assert viewer.asset.url == "two.glb"


def test_dispose_discards_late_results(host) -> None:
    executor = DeferredExecutor()
    viewer = AssetViewer(host, source=FakeSource(), executor=executor)
    viewer.load("late.glb")

    viewer.dispose()
    executor.complete(0)

    assert executor.shut_down
    assert viewer.asset is None
    assert viewer.scene_object("box") is None
    assert list(host.context.objects) == []
    assert viewer.load("again.glb") == viewer.request_token
    assert len(executor.jobs) == 1


def test_change_callback_errors_do_not_escape(host) -> None:
    seen = []

    def on_change() -> None:
        seen.append(viewer.is_loading)
        raise ValueError("ui gone")

    viewer = AssetViewer(host, source=FakeSource(), executor=SynchronousExecutor(), on_change=on_change)
    viewer.load("a.glb")

    assert seen == [True, False]
    assert viewer.asset is not None


def test_camera_controls_delegate_to_host(host, backend) -> None:
    viewer = AssetViewer(host, source=FakeSource(), executor=SynchronousExecutor())

    viewer.zoom(-0.5)
    assert host.context.camera.position[2] < host.initial_camera.position[2]

    viewer.reset_view()
    assert host.context.camera.position == host.initial_camera.position
    assert np.allclose(host.context.camera.focal_point, (0.0, 0.0, 0.0))

    assert viewer.toggle_fullscreen() is True
