import json
import os
import struct
from typing import Any, Callable, Optional

import numpy as np
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from sciencelab.controller.asset_viewer import LoadExecutor  # noqa: E402
from sciencelab.controller.scene_host import FrameHandle, FrameScheduler, RenderBackend  # noqa: E402
from sciencelab.model.scene import CameraState, SceneContext, SceneObject  # noqa: E402


class FakeSurface:
    def __init__(self, width: int = 800, height: int = 600) -> None:
        self._width = width
        self._height = height

    def width(self) -> int:
        return self._width

    def height(self) -> int:
        return self._height


class FakeBackend(RenderBackend):
    """Records every call into `calls`; the user camera can be moved through `user_camera`."""

    def __init__(self, calls: Optional[list] = None) -> None:
        self.calls: list = calls if calls is not None else []
        self.fail_attach = False
        self.fail_add_suffix: Optional[str] = None
        self.refuse_fullscreen = False
        self.attached = False
        self.applied: Optional[CameraState] = None
        self.user_camera: Optional[CameraState] = None
        self.objects: dict[str, SceneObject] = {}

    def attach(self, surface: Any, context: SceneContext) -> None:
        self.calls.append("attach")
        if self.fail_attach:
            raise RuntimeError("no GL context")
        self.attached = True

    def resize(self, width: int, height: int) -> None:
        self.calls.append(("resize", width, height))

    def apply_camera(self, camera: CameraState) -> None:
        self.calls.append("apply_camera")
        self.applied = camera.copy()
        self.user_camera = camera.copy()

    def read_camera(self, camera: CameraState) -> None:
        self.calls.append("read_camera")
        if self.user_camera is not None:
            camera.position = self.user_camera.position
            camera.focal_point = self.user_camera.focal_point
            camera.view_up = self.user_camera.view_up

    def add_object(self, obj: SceneObject) -> None:
        self.calls.append(("add", obj.name))
        if self.fail_add_suffix is not None and obj.name.endswith(self.fail_add_suffix):
            raise RuntimeError("mapper failed")
        obj.handle = object()
        self.objects[obj.name] = obj

    def update_object(self, obj: SceneObject) -> None:
        self.calls.append(("update", obj.name))

    def remove_object(self, obj: SceneObject) -> None:
        self.calls.append(("remove", obj.name))
        self.objects.pop(obj.name, None)

    def draw(self) -> None:
        self.calls.append("draw")

    def set_fullscreen(self, enabled: bool) -> bool:
        self.calls.append(("fullscreen", enabled))
        return not self.refuse_fullscreen

    def release(self) -> None:
        self.calls.append("release")
        self.attached = False


class ManualHandle(FrameHandle):
    def __init__(self, callback: Callable[[float], None], calls: list) -> None:
        self.callback = callback
        self.calls = calls
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self.calls.append("cancel")
        self._active = False


class ManualScheduler(FrameScheduler):
    """Frame loop driven by explicit `tick()` calls."""

    def __init__(self, calls: Optional[list] = None) -> None:
        self.calls: list = calls if calls is not None else []
        self.handles: list[ManualHandle] = []

    def start(self, callback: Callable[[float], None]) -> ManualHandle:
        handle = ManualHandle(callback, self.calls)
        self.handles.append(handle)
        return handle

    def tick(self, elapsed: float = 1.0 / 60.0) -> None:
        for handle in self.handles:
            if handle.active:
                handle.callback(elapsed)


class DeferredExecutor(LoadExecutor):
    """Keeps submitted jobs until a test completes them, in any order."""

    def __init__(self) -> None:
        self.jobs: list = []
        self.shut_down = False

    def submit(self, job, on_done) -> None:
        self.jobs.append((job, on_done))

    def complete(self, index: int) -> None:
        job, on_done = self.jobs[index]
        try:
            asset = job()
        except Exception as e:
            on_done(None, e)
            return
        on_done(asset, None)

    def shutdown(self) -> None:
        self.shut_down = True


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def backend(calls) -> FakeBackend:
    return FakeBackend(calls)


@pytest.fixture
def scheduler(calls) -> ManualScheduler:
    return ManualScheduler(calls)


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


def make_glb(document: dict, binary: bytes) -> bytes:
    """Pack a glTF document and its BIN chunk into GLB bytes."""
    json_chunk = json.dumps(document).encode("utf-8")
    json_chunk += b" " * (-len(json_chunk) % 4)
    binary += b"\x00" * (-len(binary) % 4)

    body = struct.pack("<II", len(json_chunk), 0x4E4F534A) + json_chunk
    body += struct.pack("<II", len(binary), 0x004E4942) + binary
    return struct.pack("<4sII", b"glTF", 2, 12 + len(body)) + body


def animated_triangle_gltf() -> tuple[dict, bytes]:
    """A one-triangle mesh on node 'mover' with a 1 s translation clip."""
    positions = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float32).tobytes()  # 36 bytes
    indices = np.array([0, 1, 2], dtype=np.uint16).tobytes() + b"\x00\x00"  # 8 bytes
    times = np.array([0.0, 1.0], dtype=np.float32).tobytes()  # 8 bytes
    translations = np.array([[0, 0, 0], [2, 0, 0]], dtype=np.float32).tobytes()  # 24 bytes
    binary = positions + indices + times + translations

    document = {
        "asset": {"version": "2.0"},
        "scene": 0,
        "scenes": [{"nodes": [0]}],
        "nodes": [{"name": "mover", "mesh": 0}],
        "meshes": [{"name": "triangle", "primitives": [{"attributes": {"POSITION": 0}, "indices": 1}]}],
        "buffers": [{"byteLength": len(binary)}],
        "bufferViews": [
            {"buffer": 0, "byteOffset": 0, "byteLength": 36},
            {"buffer": 0, "byteOffset": 36, "byteLength": 6},
            {"buffer": 0, "byteOffset": 44, "byteLength": 8},
            {"buffer": 0, "byteOffset": 52, "byteLength": 24},
        ],
        "accessors": [
            {"bufferView": 0, "componentType": 5126, "count": 3, "type": "VEC3",
             "min": [0, 0, 0], "max": [1, 1, 0]},
            {"bufferView": 1, "componentType": 5123, "count": 3, "type": "SCALAR"},
            {"bufferView": 2, "componentType": 5126, "count": 2, "type": "SCALAR", "min": [0.0], "max": [1.0]},
            {"bufferView": 3, "componentType": 5126, "count": 2, "type": "VEC3"},
        ],
        "animations": [{
            "name": "slide",
            "samplers": [{"input": 2, "output": 3, "interpolation": "LINEAR"}],
            "channels": [{"sampler": 0, "target": {"node": 0, "path": "translation"}}],
        }],
    }
    return document, binary
