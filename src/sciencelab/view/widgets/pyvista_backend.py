"""
3D Render Backend (PyVista Wrapper)
===================================
RenderBackend implementation drawing a SceneContext into a pyvistaqt
QtInteractor embedded in a SceneSurface.

Why is this file needed?
------------------------
1. Isolation: SceneHost only knows the RenderBackend interface; everything
   VTK specific (actors, lights, camera, fullscreen) stays here.
2. Interaction: The QtInteractor provides mouse orbit/pan/zoom. Its camera is
   read back every frame so that reset and zoom start from what the user sees.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import pyvista as pv
from pyvistaqt import QtInteractor
from PySide6.QtCore import Qt

from sciencelab.controller.scene_host import RenderBackend
from sciencelab.model.scene import CameraState, LightKind, SceneContext, SceneObject

logger = logging.getLogger(__name__)


class PyVistaBackend(RenderBackend):
    def __init__(self) -> None:
        self.plotter: Optional[QtInteractor] = None
        self._surface: Any = None
        self._ambient: float = 0.0
        self._fullscreen: bool = False

    # ------------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------------

    def attach(self, surface: Any, context: SceneContext) -> None:
        layout = surface.layout()
        if layout is None:
            raise RuntimeError("Scene surface has no layout to host the render target.")

        self.plotter = QtInteractor(surface)
        layout.addWidget(self.plotter)
        self._surface = surface

        self.plotter.set_background(context.background)
        self._init_lights(context)
        logger.debug(f"Render target attached ({context.width}x{context.height}).")

    def _init_lights(self, context: SceneContext) -> None:
        self.plotter.remove_all_lights()
        for spec in context.lights:
            if spec.kind is LightKind.AMBIENT:
                # VTK has no ambient light; it is applied as the ambient term of every actor
                self._ambient = spec.intensity
                continue
            light = pv.Light(
                position=spec.position,
                focal_point=(0.0, 0.0, 0.0),
                color=spec.color,
                intensity=spec.intensity,
                light_type="scene light",
            )
            light.positional = False
            self.plotter.add_light(light)

    def release(self) -> None:
        if self.plotter is None:
            return
        if self._fullscreen:
            self.set_fullscreen(False)
        self.plotter.close()
        if self._surface is not None and self._surface.layout() is not None:
            self._surface.layout().removeWidget(self.plotter)
        self.plotter.setParent(None)
        self.plotter.deleteLater()
        self.plotter = None
        self._surface = None
        logger.debug("Render target released.")

    # ------------------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        # The interactor follows the surface layout; VTK derives the aspect from the viewport
        if self.plotter is not None:
            self.plotter.render()

    def apply_camera(self, camera: CameraState) -> None:
        if self.plotter is None:
            return
        cam = self.plotter.camera
        cam.position = camera.position
        cam.focal_point = camera.focal_point
        cam.up = camera.view_up
        cam.view_angle = camera.fov
        cam.clipping_range = (camera.near, camera.far)

    def read_camera(self, camera: CameraState) -> None:
        if self.plotter is None:
            return
        cam = self.plotter.camera
        camera.position = tuple(float(v) for v in cam.position)
        camera.focal_point = tuple(float(v) for v in cam.focal_point)
        camera.view_up = tuple(float(v) for v in cam.up)

    # ------------------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------------------

    def add_object(self, obj: SceneObject) -> None:
        actor = self.plotter.add_mesh(
            obj.dataset,
            color=obj.color,
            opacity=obj.opacity,
            line_width=obj.line_width,
            style=obj.style,
            smooth_shading=obj.smooth_shading,
            lighting=obj.lighting,
            name=obj.name,
            reset_camera=False,
            show_scalar_bar=False,
            render=False,
        )
        actor.prop.ambient = self._ambient
        if obj.user_matrix is not None:
            actor.user_matrix = obj.user_matrix
        actor.visibility = obj.visible
        obj.handle = actor

    def update_object(self, obj: SceneObject) -> None:
        # Dataset edits are made in place by the owner and picked up by the mapper
        actor = obj.handle
        if actor is None:
            return
        if obj.user_matrix is not None:
            actor.user_matrix = obj.user_matrix
        actor.visibility = obj.visible

    def remove_object(self, obj: SceneObject) -> None:
        if self.plotter is None or obj.handle is None:
            return
        self.plotter.remove_actor(obj.handle, render=False)

    def draw(self) -> None:
        if self.plotter is not None:
            self.plotter.render()

    # ------------------------------------------------------------------------------
    # Fullscreen
    # ------------------------------------------------------------------------------

    def set_fullscreen(self, enabled: bool) -> bool:
        """
        Detach the surface into its own fullscreen window, or embed it back.

        Returns:
            True if the surface ended up in the requested mode.
        """
        surface = self._surface
        if surface is None:
            return False

        if enabled:
            surface.setWindowFlags(Qt.Window)
            surface.showFullScreen()
        else:
            surface.setWindowFlags(Qt.Widget)
            surface.showNormal()
            surface.show()

        self._fullscreen = bool(surface.windowState() & Qt.WindowFullScreen)
        if self._fullscreen != enabled:
            logger.warning(f"Fullscreen {'enter' if enabled else 'exit'} was not honoured by the window system.")
            return False
        surface.setFocus()
        return True
