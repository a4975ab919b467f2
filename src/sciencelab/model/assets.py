"""
Viewer Asset (Data Model)
=========================
A loaded 3D model: a transform hierarchy with optional geometry per node and
optional animation clips.

Classes:
    AssetFormat: Closed set of supported format tags.
    AssetNode: One node of the transform hierarchy.
    ViewerAsset: Root node, clips and playback flag of one loaded model.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, TYPE_CHECKING
from urllib.parse import urlparse

import numpy as np

from sciencelab.errors import UnsupportedFormatError
from sciencelab.model.animation import AnimationClip, AnimationMixer

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class AssetFormat(str, Enum):
    GLTF = "gltf"
    OBJ = "obj"
    FBX = "fbx"

    @classmethod
    def parse(cls, fmt: Any) -> AssetFormat:
        """Validate a format tag. Raises UnsupportedFormatError for anything else."""
        if isinstance(fmt, cls):
            return fmt
        if isinstance(fmt, str):
            try:
                return cls(fmt.strip().lower())
            except ValueError:
                pass
        raise UnsupportedFormatError(fmt)

    @classmethod
    def from_extension(cls, path_or_url: str) -> AssetFormat:
        """Detect the format from the file extension (.gltf/.glb, .obj, .fbx)."""
        path = urlparse(path_or_url).path or path_or_url
        ext = os.path.splitext(path)[1].lower().lstrip(".")
        if ext in ("gltf", "glb"):
            return cls.GLTF
        if ext == "obj":
            return cls.OBJ
        if ext == "fbx":
            return cls.FBX
        raise UnsupportedFormatError(ext or path_or_url)


@dataclass
class AssetNode:
    name: str
    matrix: npt.NDArray[np.float64] = field(default_factory=lambda: np.eye(4))
    geometry: Any = None  # pyvista.PolyData or None
    children: list[AssetNode] = field(default_factory=list)

    def iter_nodes(self) -> Iterator[AssetNode]:
        yield self
        for child in self.children:
            yield from child.iter_nodes()


@dataclass
class ViewerAsset:
    url: str
    format: AssetFormat
    root: AssetNode
    clips: list[AnimationClip] = field(default_factory=list)
    playing: bool = False
    mixer: Optional[AnimationMixer] = None

    def __post_init__(self) -> None:
        if self.clips and self.mixer is None:
            # Clips are started paused: time-scale 0
            self.mixer = AnimationMixer(self.clips, time_scale=0.0)

    @property
    def has_animations(self) -> bool:
        return bool(self.clips)

    def find(self, name: str) -> Optional[AssetNode]:
        for node in self.root.iter_nodes():
            if node.name == name:
                return node
        return None

    # ------------------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------------------

    def world_matrices(
        self,
        overrides: Optional[dict[str, npt.NDArray[np.float64]]] = None,
    ) -> dict[str, npt.NDArray[np.float64]]:
        """
        World matrix of every node, optionally replacing the local matrices of
        animated nodes by `overrides`.
        """
        overrides = overrides or {}
        result: dict[str, npt.NDArray[np.float64]] = {}

        def walk(node: AssetNode, parent: npt.NDArray[np.float64]) -> None:
            local = overrides.get(node.name, node.matrix)
            world = parent @ local
            result[node.name] = world
            for child in node.children:
                walk(child, world)

        walk(self.root, np.eye(4))
        return result

    def mesh_nodes(self) -> list[AssetNode]:
        return [n for n in self.root.iter_nodes() if n.geometry is not None]

    def bounds(self) -> Optional[tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]]:
        """Axis-aligned (min, max) corners of all geometry in world space, or None if empty."""
        worlds = self.world_matrices()
        mins: list[npt.NDArray[np.float64]] = []
        maxs: list[npt.NDArray[np.float64]] = []
        for node in self.mesh_nodes():
            points = np.asarray(node.geometry.points, dtype=np.float64)
            if points.size == 0:
                continue
            homogeneous = np.c_[points, np.ones(len(points))]
            transformed = (homogeneous @ worlds[node.name].T)[:, :3]
            mins.append(transformed.min(axis=0))
            maxs.append(transformed.max(axis=0))
        if not mins:
            return None
        return np.min(mins, axis=0), np.max(maxs, axis=0)

    def center_at_origin(self) -> npt.NDArray[np.float64]:
        """
        Translate the root by the negative of the bounding-box center.

        Returns:
            The center that was subtracted (zeros for an empty asset).
        """
        box = self.bounds()
        if box is None:
            return np.zeros(3)
        center = 0.5 * (box[0] + box[1])
        shift = np.eye(4)
        shift[:3, 3] = -center
        self.root.matrix = shift @ self.root.matrix
        logger.debug(f"Centered asset '{self.url}' by {-center}.")
        return center

    # ------------------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------------------

    def set_playing(self, playing: bool) -> None:
        self.playing = playing
        if self.mixer is not None:
            self.mixer.time_scale = 1.0 if playing else 0.0

    def animate(self, dt: float) -> dict[str, npt.NDArray[np.float64]]:
        """Advance the mixer and return world matrices of the mesh nodes."""
        overrides = self.mixer.update(dt) if self.mixer is not None else {}
        worlds = self.world_matrices(overrides)
        return {n.name: worlds[n.name] for n in self.mesh_nodes()}

    def dispose(self) -> None:
        """Drop geometry and animation data."""
        for node in self.root.iter_nodes():
            node.geometry = None
        if self.mixer is not None:
            self.mixer.stop()
        self.mixer = None
        self.playing = False
