"""
Scene Host
==========
Owns one 3D scene (camera, lights, render target, objects) and drives its
render loop.

Why is this file needed?
------------------------
1. Ownership: Camera, renderer and render-loop handle are fields of a single
   SceneHost instance, created in `initialize()` and torn down in `dispose()`.
2. Ordering: Every tick runs camera controls -> frame updater -> draw, so
   control input affects the frame it was issued in.
3. Isolation: A faulty tick is logged and skipped; it never escapes into the
   scheduler that drives the loop.

The host is independent of Qt and VTK. Rendering goes through a
`RenderBackend` and frame timing through a `FrameScheduler`; the PyVista/Qt
implementations live in `sciencelab.view.widgets`.

Classes:
    RenderBackend: Abstract render target (GPU side).
    FrameScheduler / FrameHandle: Abstract per-frame callback scheduling.
    FrameUpdater: Anything with `update(elapsed_seconds)`.
    SceneHost: The lifecycle owner.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol

from sciencelab import config
from sciencelab.errors import SetupError
from sciencelab.model.scene import CameraState, SceneContext, SceneObject, default_lights

logger = logging.getLogger(__name__)


class FrameUpdater(Protocol):
    def update(self, elapsed_seconds: float) -> None:
        ...


class FrameHandle(ABC):
    """Handle of a running frame loop."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering frames. Must be idempotent."""

    @property
    @abstractmethod
    def active(self) -> bool:
        ...


class FrameScheduler(ABC):
    @abstractmethod
    def start(self, callback: Callable[[float], None]) -> FrameHandle:
        """Call `callback(elapsed_seconds)` once per display refresh until cancelled."""


class RenderBackend(ABC):
    """
    GPU-side render target. One backend instance serves exactly one SceneHost.
    """

    @abstractmethod
    def attach(self, surface: Any, context: SceneContext) -> None:
        """Create the render target inside `surface` and set up camera and lights."""

    @abstractmethod
    def resize(self, width: int, height: int) -> None:
        ...

    @abstractmethod
    def apply_camera(self, camera: CameraState) -> None:
        """Push the camera state to the renderer."""

    @abstractmethod
    def read_camera(self, camera: CameraState) -> None:
        """Pull interactive (mouse) camera changes into `camera`, in place."""

    @abstractmethod
    def add_object(self, obj: SceneObject) -> None:
        ...

    @abstractmethod
    def update_object(self, obj: SceneObject) -> None:
        """Re-sync transform/visibility/dataset of an already added object."""

    @abstractmethod
    def remove_object(self, obj: SceneObject) -> None:
        ...

    @abstractmethod
    def draw(self) -> None:
        ...

    @abstractmethod
    def set_fullscreen(self, enabled: bool) -> bool:
        """Enter/leave full-surface presentation. Returns False if the platform refused."""

    @abstractmethod
    def release(self) -> None:
        """Free all GPU resources and detach from the surface. Must be idempotent."""


def surface_size(surface: Any) -> tuple[int, int]:
    """
    Width and height of a display surface.

    Accepts Qt-style surfaces (`width()`/`height()` methods) and plain objects
    with `width`/`height` attributes.

    Raises:
        SetupError: If the surface is missing or reports no size.
    """
    if surface is None:
        raise SetupError("Display surface is not available.")
    try:
        width = surface.width() if callable(getattr(surface, "width", None)) else surface.width
        height = surface.height() if callable(getattr(surface, "height", None)) else surface.height
    except (AttributeError, RuntimeError) as e:
        # RuntimeError: the underlying C++ widget has already been deleted
        raise SetupError(f"Display surface is not available: {e}") from e
    return max(1, int(width)), max(1, int(height))


class SceneHost:
    """
    Lifecycle owner of one scene.

    Args:
        backend: Render target implementation.
        scheduler: Frame loop implementation.
        fov: Vertical field of view in degrees.
        camera_position: Initial (and reset) camera position.
        focal_point: Initial camera focal point.
        light_position: Position of the directional light.
        light_intensity: Intensity of the directional light.
        background: Background colour.
    """

    def __init__(
        self,
        backend: RenderBackend,
        scheduler: FrameScheduler,
        fov: float = config.PENDULUM_FOV,
        camera_position: tuple[float, float, float] = config.PENDULUM_CAMERA_POSITION,
        focal_point: tuple[float, float, float] = (0.0, 0.0, 0.0),
        light_position: tuple[float, float, float] = config.PENDULUM_LIGHT_POSITION,
        light_intensity: float = config.PENDULUM_LIGHT_INTENSITY,
        background: str = config.BACKGROUND_COLOR,
    ) -> None:
        self._backend = backend
        self._scheduler = scheduler
        self._initial_camera = CameraState(
            position=camera_position,
            focal_point=focal_point,
            fov=fov,
            near=config.CAMERA_NEAR,
            far=config.CAMERA_FAR,
        )
        self._light_position = light_position
        self._light_intensity = light_intensity
        self._background = background

        self.context: Optional[SceneContext] = None
        self._loop: Optional[FrameHandle] = None
        self._updaters: list[FrameUpdater] = []
        self._surface: Any = None
        self.fullscreen: bool = False
        self.tick_count: int = 0
        self.skipped_ticks: int = 0

    # ------------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self.context is not None

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.active

    @property
    def initial_camera(self) -> CameraState:
        return self._initial_camera.copy()

    def initialize(self, surface: Any) -> SceneContext:
        """
        Build camera, lights and render target inside `surface` and start the
        render loop.

        Raises:
            SetupError: If the surface is unavailable, the render target cannot
                be created, or the host is already initialized.
        """
        if self.context is not None:
            raise SetupError("Scene host is already initialized; dispose() it first.")

        width, height = surface_size(surface)

        camera = self._initial_camera.copy()
        context = SceneContext(
            camera=camera,
            lights=default_lights(self._light_position, self._light_intensity),
            background=self._background,
        )
        context.set_surface_size(width, height)

        try:
            self._backend.attach(surface, context)
        except Exception as e:
            logger.error(f"Failed to attach render target: {e}")
            self._release_backend()
            raise SetupError(f"Could not create render target: {e}") from e

        try:
            self._backend.apply_camera(context.camera)
            loop = self._scheduler.start(self.render_loop_tick)
        except Exception as e:
            logger.error(f"Failed to start render loop: {e}")
            self._release_backend()
            raise SetupError(f"Could not start render loop: {e}") from e

        self.context = context
        self._surface = surface
        self._loop = loop
        logger.info(f"Scene initialized ({width}x{height}, fov={camera.fov}).")
        return context

    def dispose(self) -> None:
        """
        Cancel the render loop, then release every object and the render
        target. Safe to call repeatedly and after a failed `initialize()`.
        """
        if self._loop is not None:
            self._loop.cancel()
            self._loop = None

        if self.context is not None:
            for obj in list(self.context.objects.values()):
                self._safe_remove(obj)
            self.context.objects.clear()

        self._release_backend()
        self._updaters.clear()
        self._surface = None
        self.fullscreen = False
        if self.context is not None:
            logger.info("Scene disposed.")
        self.context = None

    def _release_backend(self) -> None:
        try:
            self._backend.release()
        except Exception as e:
            logger.warning(f"Render target release failed: {e}")

    # ------------------------------------------------------------------------------
    # Updaters & objects
    # ------------------------------------------------------------------------------

    def attach(self, updater: FrameUpdater) -> None:
        """Register a per-frame updater (simulation engine, asset viewer, ...)."""
        if updater not in self._updaters:
            self._updaters.append(updater)

    def detach(self, updater: FrameUpdater) -> None:
        if updater in self._updaters:
            self._updaters.remove(updater)

    def add_object(self, obj: SceneObject) -> SceneObject:
        context = self._require_context()
        if obj.name in context.objects:
            self.remove_object(obj.name)
        self._backend.add_object(obj)
        context.objects[obj.name] = obj
        return obj

    def update_object(self, obj: SceneObject) -> None:
        context = self._require_context()
        if obj.name not in context.objects:
            raise KeyError(f"Unknown scene object '{obj.name}'.")
        self._backend.update_object(obj)

    def remove_object(self, name: str) -> None:
        if self.context is None:
            return
        obj = self.context.objects.pop(name, None)
        if obj is not None:
            self._safe_remove(obj)

    def _safe_remove(self, obj: SceneObject) -> None:
        try:
            self._backend.remove_object(obj)
        except Exception as e:
            logger.warning(f"Could not remove scene object '{obj.name}': {e}")
        obj.handle = None

    def _require_context(self) -> SceneContext:
        if self.context is None:
            raise SetupError("Scene host is not initialized.")
        return self.context

    # ------------------------------------------------------------------------------
    # Per-frame
    # ------------------------------------------------------------------------------

    def on_resize(self, width: int, height: int) -> None:
        """Keep the camera aspect equal to the surface aspect."""
        if self.context is None:
            return
        self.context.set_surface_size(width, height)
        self._backend.resize(self.context.width, self.context.height)
        self._backend.apply_camera(self.context.camera)
        logger.debug(f"Scene resized to {self.context.width}x{self.context.height}.")

    def render_loop_tick(self, elapsed_seconds: float) -> bool:
        """
        One frame: camera controls, updaters, draw.

        Returns:
            True if the frame was drawn, False if it was skipped.
        """
        if self.context is None:
            return False
        try:
            self._backend.read_camera(self.context.camera)
            for updater in list(self._updaters):
                updater.update(elapsed_seconds)
            self._backend.draw()
        except Exception:
            self.skipped_ticks += 1
            logger.exception("Render tick failed; skipping frame.")
            return False
        self.tick_count += 1
        return True

    # ------------------------------------------------------------------------------
    # Camera conveniences
    # ------------------------------------------------------------------------------

    def reset_camera(self) -> None:
        """Restore the initial camera position exactly."""
        context = self._require_context()
        camera = self._initial_camera.copy()
        camera.aspect = context.camera.aspect
        context.camera = camera
        self._backend.apply_camera(camera)

    def zoom(self, delta: float) -> None:
        """Move the camera along its view axis by `delta` (negative = closer)."""
        context = self._require_context()
        self._backend.read_camera(context.camera)
        context.camera.dolly(delta)
        self._backend.apply_camera(context.camera)

    def toggle_fullscreen(self) -> bool:
        """
        Enter or leave fullscreen. A refusal by the platform leaves the
        current mode unchanged.

        Returns:
            The fullscreen state after the call.
        """
        self._require_context()
        target = not self.fullscreen
        try:
            accepted = self._backend.set_fullscreen(target)
        except Exception as e:
            logger.warning(f"Fullscreen request refused: {e}")
            accepted = False
        if accepted:
            self.fullscreen = target
        return self.fullscreen
