"""
Scene Data Model
================
Plain data describing one renderable scene: camera, lights, surface size and
the objects composed for a draw call.

Classes:
    CameraState: Perspective camera parameters.
    LightSpec: One ambient or directional light.
    SceneObject: A renderable dataset with its display properties.
    SceneContext: The container owned by exactly one SceneHost.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

import numpy as np

from sciencelab import config

if TYPE_CHECKING:
    import numpy.typing as npt


Vec3 = tuple[float, float, float]


@dataclass
class CameraState:
    position: Vec3 = (0.0, 0.0, 5.0)
    focal_point: Vec3 = (0.0, 0.0, 0.0)
    view_up: Vec3 = (0.0, 1.0, 0.0)
    fov: float = 75.0  # vertical field of view, degrees
    aspect: float = 1.0
    near: float = config.CAMERA_NEAR
    far: float = config.CAMERA_FAR

    def copy(self) -> CameraState:
        return replace(self)

    def view_direction(self) -> npt.NDArray[np.float64]:
        """Unit vector from the camera position towards the focal point."""
        direction = np.asarray(self.focal_point, dtype=np.float64) - np.asarray(self.position, dtype=np.float64)
        norm = np.linalg.norm(direction)
        if norm < 1e-12:
            return np.array([0.0, 0.0, -1.0])
        return direction / norm

    def dolly(self, delta: float) -> None:
        """
        Move the camera along its view axis by `delta` world units.
        Negative values move closer (forward). The focal point moves with the
        camera.
        """
        offset = -float(delta) * self.view_direction()
        self.position = tuple(float(v) for v in np.asarray(self.position) + offset)
        self.focal_point = tuple(float(v) for v in np.asarray(self.focal_point) + offset)


class LightKind(str, Enum):
    AMBIENT = "ambient"
    DIRECTIONAL = "directional"


@dataclass
class LightSpec:
    kind: LightKind
    color: str = "white"
    intensity: float = 1.0
    position: Vec3 = (0.0, 10.0, 10.0)  # ignored for ambient lights


@dataclass
class SceneObject:
    """
    A renderable item. `dataset` is any pyvista-compatible dataset; the
    backend keeps its own actor handle in `handle`.
    """
    name: str
    dataset: Any
    color: Optional[str] = None
    opacity: float = 1.0
    line_width: float = 1.0
    style: Optional[str] = None  # None (surface), "wireframe" or "points"
    smooth_shading: bool = False
    lighting: bool = True
    user_matrix: Optional[npt.NDArray[np.float64]] = None
    visible: bool = True
    handle: Any = field(default=None, repr=False)


@dataclass
class SceneContext:
    camera: CameraState
    lights: list[LightSpec] = field(default_factory=list)
    width: int = 1
    height: int = 1
    background: str = config.BACKGROUND_COLOR
    objects: dict[str, SceneObject] = field(default_factory=dict)

    def set_surface_size(self, width: int, height: int) -> None:
        """Update the surface size and keep the camera aspect in sync."""
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        self.camera.aspect = self.width / self.height


def default_lights(
    directional_position: Vec3,
    directional_intensity: float,
    ambient_intensity: float = config.AMBIENT_INTENSITY,
) -> list[LightSpec]:
    """Ambient light plus one directional light."""
    return [
        LightSpec(kind=LightKind.AMBIENT, intensity=ambient_intensity),
        LightSpec(kind=LightKind.DIRECTIONAL, intensity=directional_intensity, position=directional_position),
    ]
