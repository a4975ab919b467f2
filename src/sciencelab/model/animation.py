"""
Keyframe Animation
==================
Animation clips (node translation/rotation/scale keyframes) and the mixer
that evaluates them over time.

The mixer plays every clip of an asset at once, looping each over its own
duration. A time-scale of zero freezes the pose without removing the clips,
which is how playback is paused.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class Interpolation(str, Enum):
    LINEAR = "LINEAR"
    STEP = "STEP"
    CUBICSPLINE = "CUBICSPLINE"


class TargetPath(str, Enum):
    TRANSLATION = "translation"
    ROTATION = "rotation"
    SCALE = "scale"


# ------------------------------------------------------------------------------
# Transform helpers
# ------------------------------------------------------------------------------

def quaternion_to_matrix(q: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """3x3 rotation matrix for a quaternion given as (x, y, z, w)."""
    x, y, z, w = np.asarray(q, dtype=np.float64)
    n = x * x + y * y + z * z + w * w
    if n < 1e-12:
        return np.eye(3)
    s = 2.0 / n
    return np.array([
        [1.0 - s * (y * y + z * z), s * (x * y - z * w), s * (x * z + y * w)],
        [s * (x * y + z * w), 1.0 - s * (x * x + z * z), s * (y * z - x * w)],
        [s * (x * z - y * w), s * (y * z + x * w), 1.0 - s * (x * x + y * y)],
    ])


def compose_trs(
    translation: npt.ArrayLike,
    rotation: npt.ArrayLike,
    scale: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """4x4 matrix T * R * S."""
    m = np.eye(4)
    m[:3, :3] = quaternion_to_matrix(rotation) * np.asarray(scale, dtype=np.float64)[np.newaxis, :]
    m[:3, 3] = np.asarray(translation, dtype=np.float64)
    return m


def slerp(q0: npt.NDArray[np.float64], q1: npt.NDArray[np.float64], t: float) -> npt.NDArray[np.float64]:
    """Spherical linear interpolation between unit quaternions (x, y, z, w)."""
    dot = float(np.dot(q0, q1))
    # Take the shortest arc
    if dot < 0.0:
        q1 = -q1
        dot = -dot
    if dot > 0.9995:
        out = q0 + t * (q1 - q0)
        return out / np.linalg.norm(out)
    theta_0 = np.arccos(dot)
    theta = theta_0 * t
    sin_theta_0 = np.sin(theta_0)
    s0 = np.cos(theta) - dot * np.sin(theta) / sin_theta_0
    s1 = np.sin(theta) / sin_theta_0
    return s0 * q0 + s1 * q1


# ------------------------------------------------------------------------------
# Clips
# ------------------------------------------------------------------------------

@dataclass
class AnimationChannel:
    """Keyframes for one transform component of one node."""
    path: TargetPath
    times: npt.NDArray[np.float64]
    values: npt.NDArray[np.float64]  # (n_keys, 3) or (n_keys, 4) for rotations
    interpolation: Interpolation = Interpolation.LINEAR

    def __post_init__(self) -> None:
        self.times = np.asarray(self.times, dtype=np.float64).reshape(-1)
        values = np.asarray(self.values, dtype=np.float64)
        width = 4 if self.path is TargetPath.ROTATION else 3
        values = values.reshape(-1, width)
        if self.interpolation is Interpolation.CUBICSPLINE:
            # (in-tangent, value, out-tangent) triplets; keep the values
            values = values[1::3]
        if values.shape[0] != self.times.shape[0]:
            raise ValueError(
                f"Channel '{self.path.value}' has {self.times.shape[0]} keys but {values.shape[0]} values."
            )
        self.values = values

    @property
    def duration(self) -> float:
        return float(self.times[-1]) if self.times.size else 0.0

    def sample(self, t: float) -> npt.NDArray[np.float64]:
        times = self.times
        if t <= times[0]:
            return self.values[0].copy()
        if t >= times[-1]:
            return self.values[-1].copy()

        i = int(np.searchsorted(times, t, side="right")) - 1
        if self.interpolation is Interpolation.STEP:
            return self.values[i].copy()

        t0, t1 = times[i], times[i + 1]
        u = (t - t0) / (t1 - t0) if t1 > t0 else 0.0
        v0, v1 = self.values[i], self.values[i + 1]
        if self.path is TargetPath.ROTATION:
            return slerp(v0, v1, u)
        return v0 + u * (v1 - v0)


@dataclass
class AnimationTrack:
    """All channels targeting one node, plus the node's rest pose."""
    node: str
    rest_translation: npt.NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    rest_rotation: npt.NDArray[np.float64] = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))
    rest_scale: npt.NDArray[np.float64] = field(default_factory=lambda: np.ones(3))
    channels: dict[TargetPath, AnimationChannel] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        return max((c.duration for c in self.channels.values()), default=0.0)

    def local_matrix(self, t: float) -> npt.NDArray[np.float64]:
        translation = self.rest_translation
        rotation = self.rest_rotation
        scale = self.rest_scale
        if TargetPath.TRANSLATION in self.channels:
            translation = self.channels[TargetPath.TRANSLATION].sample(t)
        if TargetPath.ROTATION in self.channels:
            rotation = self.channels[TargetPath.ROTATION].sample(t)
        if TargetPath.SCALE in self.channels:
            scale = self.channels[TargetPath.SCALE].sample(t)
        return compose_trs(translation, rotation, scale)


@dataclass
class AnimationClip:
    name: str
    tracks: list[AnimationTrack] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return max((t.duration for t in self.tracks), default=0.0)


class AnimationMixer:
    """
    Evaluates clips against a shared clock.

    `time_scale` starts at 0.0 (paused); `update(dt)` advances the clock by
    `dt * time_scale` and returns the local matrices of all animated nodes.
    """

    def __init__(self, clips: list[AnimationClip], time_scale: float = 0.0) -> None:
        self.clips = list(clips)
        self.time_scale = time_scale
        self.time: float = 0.0

    def update(self, dt: float) -> dict[str, npt.NDArray[np.float64]]:
        self.time += float(dt) * self.time_scale
        return self.evaluate()

    def evaluate(self, time: Optional[float] = None) -> dict[str, npt.NDArray[np.float64]]:
        """Local matrices of every animated node at `time` (default: mixer clock)."""
        t_global = self.time if time is None else time
        poses: dict[str, npt.NDArray[np.float64]] = {}
        for clip in self.clips:
            duration = clip.duration
            t = t_global % duration if duration > 0.0 else 0.0
            for track in clip.tracks:
                poses[track.node] = track.local_matrix(t)
        return poses

    def stop(self) -> None:
        self.time = 0.0
        self.time_scale = 0.0
