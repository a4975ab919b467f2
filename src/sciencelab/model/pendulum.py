"""
Simple Pendulum Simulation
==========================
Deterministic numerical integration of a damped planar simple pendulum.

Why is this file needed?
------------------------
1. Physics: It advances the pendulum state with semi-implicit (symplectic)
   Euler steps driven by the elapsed wall-clock time of each frame.
2. State Machine: It owns the Idle/Running/Paused playback state and guards
   the parameters against edits while the integration is running.
3. Decoupling: It knows nothing about rendering. Views read the pose through
   `pendulum_pose()` and write parameters through the setters.

Classes:
    SimulationStatus: Playback state of the engine.
    DampingMode: How the per-step damping factor is applied.
    PendulumState: Integration state and parameters.
    PendulumPose: Renderable bob/string positions derived from the angle.
    PendulumEngine: The state machine + integrator.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum

from sciencelab import config
from sciencelab.errors import InvalidParameterError

logger = logging.getLogger(__name__)


class SimulationStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class DampingMode(str, Enum):
    """
    PER_STEP multiplies the angular velocity by the factor once per step,
    regardless of dt, so the decay rate depends on the frame rate.
    PER_SECOND rescales the factor by dt so the decay is the same at any frame
    rate (calibrated so that 60 steps of 1/60 s match PER_STEP).
    """
    PER_STEP = "per_step"
    PER_SECOND = "per_second"


@dataclass
class PendulumState:
    length: float = config.DEFAULT_LENGTH
    gravity: float = config.DEFAULT_GRAVITY
    initial_angle: float = config.DEFAULT_INITIAL_ANGLE
    angle: float = config.DEFAULT_INITIAL_ANGLE
    angular_velocity: float = 0.0
    running: bool = False


@dataclass(frozen=True)
class PendulumPose:
    pivot: tuple[float, float]
    bob: tuple[float, float]

    @property
    def string(self) -> tuple[tuple[float, float], tuple[float, float]]:
        """Line segment from the pivot to the bob."""
        return self.pivot, self.bob


def pendulum_pose(
    angle: float,
    length: float,
    pivot: tuple[float, float] = (0.0, 0.0),
) -> PendulumPose:
    """
    Bob position for the given angle, measured from the downward vertical.

    Args:
        angle: Angle in radians (positive swings towards +x).
        length: String length in meters.
        pivot: Pivot position (x, y) in world units.

    Returns:
        The pose with the bob at pivot + (L sin(angle), -L cos(angle)).
    """
    px, py = pivot
    return PendulumPose(
        pivot=(px, py),
        bob=(px + length * math.sin(angle), py - length * math.cos(angle)),
    )


def _validate_positive(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidParameterError(name, value, "must be a finite number > 0")
    return value


class PendulumEngine:
    """
    Simple-pendulum integrator with an Idle/Running/Paused state machine.

    Parameter setters are accepted only while the engine is not running;
    writes during a run are ignored. Invalid values raise
    `InvalidParameterError` and leave the previous value in place.

    The engine implements the frame-updater interface of the scene host
    (`update(elapsed_seconds)`), so it can be attached directly to a
    `SceneHost`.
    """

    def __init__(
        self,
        length: float = config.DEFAULT_LENGTH,
        gravity: float = config.DEFAULT_GRAVITY,
        initial_angle: float = config.DEFAULT_INITIAL_ANGLE,
        damping_factor: float = config.DAMPING_FACTOR,
        damping_mode: DampingMode = DampingMode.PER_STEP,
        max_step: float = config.MAX_STEP_SECONDS,
    ) -> None:
        if not 0.0 < damping_factor <= 1.0:
            raise InvalidParameterError("damping_factor", damping_factor, "must be in (0, 1]")
        length = _validate_positive("length", length)
        gravity = _validate_positive("gravity", gravity)
        initial_angle = float(initial_angle)

        self.damping_factor = damping_factor
        self.damping_mode = damping_mode
        self.max_step = max_step

        self._state = PendulumState(
            length=length,
            gravity=gravity,
            initial_angle=initial_angle,
            angle=initial_angle,
            angular_velocity=0.0,
            running=False,
        )
        self._status = SimulationStatus.IDLE
        self.elapsed_time: float = 0.0

    # ------------------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------------------

    @property
    def state(self) -> PendulumState:
        """A copy of the current state."""
        return replace(self._state)

    @property
    def status(self) -> SimulationStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is SimulationStatus.RUNNING

    @property
    def angle(self) -> float:
        return self._state.angle

    @property
    def angular_velocity(self) -> float:
        return self._state.angular_velocity

    @property
    def length(self) -> float:
        return self._state.length

    @length.setter
    def length(self, value: float) -> None:
        value = _validate_positive("length", value)
        if self._reject_while_running("length"):
            return
        self._state.length = value

    @property
    def gravity(self) -> float:
        return self._state.gravity

    @gravity.setter
    def gravity(self, value: float) -> None:
        value = _validate_positive("gravity", value)
        if self._reject_while_running("gravity"):
            return
        self._state.gravity = value

    @property
    def initial_angle(self) -> float:
        return self._state.initial_angle

    @initial_angle.setter
    def initial_angle(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise InvalidParameterError("initial_angle", value, "must be finite")
        if self._reject_while_running("initial_angle"):
            return
        self._state.initial_angle = value
        # While idle the displayed angle follows the slider
        if self._status is SimulationStatus.IDLE:
            self._state.angle = value

    # ------------------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------------------

    @property
    def small_angle_period(self) -> float:
        """T = 2*pi*sqrt(L/g), valid for small amplitudes."""
        return 2.0 * math.pi * math.sqrt(self._state.length / self._state.gravity)

    @property
    def angular_frequency(self) -> float:
        """omega = sqrt(g/L)."""
        return math.sqrt(self._state.gravity / self._state.length)

    @property
    def energy_per_mass(self) -> float:
        """Kinetic + potential energy per unit mass (J/kg), zero at rest in the lowest point."""
        s = self._state
        kinetic = 0.5 * (s.length * s.angular_velocity) ** 2
        potential = s.gravity * s.length * (1.0 - math.cos(s.angle))
        return kinetic + potential

    def pose(self, pivot: tuple[float, float] = (0.0, 0.0)) -> PendulumPose:
        return pendulum_pose(self._state.angle, self._state.length, pivot)

    # ------------------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------------------

    def start(self) -> None:
        """Idle -> Running, Paused -> Running. No effect while already running."""
        if self._status is SimulationStatus.RUNNING:
            return
        logger.info(f"Pendulum {self._status.value} -> running.")
        self._set_status(SimulationStatus.RUNNING)

    def resume(self) -> None:
        if self._status is SimulationStatus.PAUSED:
            self.start()

    def pause(self) -> None:
        if self._status is not SimulationStatus.RUNNING:
            return
        logger.info("Pendulum running -> paused.")
        self._set_status(SimulationStatus.PAUSED)

    def toggle(self) -> None:
        """Start/Pause button behaviour."""
        if self._status is SimulationStatus.RUNNING:
            self.pause()
        else:
            self.start()

    def reset(self) -> None:
        """Any state -> Idle, angle back to the initial angle, at rest."""
        self._state.angle = self._state.initial_angle
        self._state.angular_velocity = 0.0
        self.elapsed_time = 0.0
        if self._status is not SimulationStatus.IDLE:
            logger.info(f"Pendulum {self._status.value} -> idle.")
        self._set_status(SimulationStatus.IDLE)

    # ------------------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------------------

    def step(self, dt: float) -> bool:
        """
        Advance one semi-implicit Euler step of `dt` seconds.

        The step is clamped to `max_step` to stay stable across long frame gaps.
        Negative or non-finite steps are treated as zero.

        Returns:
            True if the state was advanced (engine running), False otherwise.
        """
        if self._status is not SimulationStatus.RUNNING:
            return False

        dt = float(dt)
        if not math.isfinite(dt) or dt < 0.0:
            dt = 0.0
        dt = min(dt, self.max_step)
        if dt == 0.0:
            return True

        s = self._state
        angular_acceleration = -(s.gravity / s.length) * math.sin(s.angle)
        s.angular_velocity += angular_acceleration * dt
        s.angle += s.angular_velocity * dt
        s.angular_velocity *= self._damping_for(dt)
        self.elapsed_time += dt
        return True

    def update(self, elapsed_seconds: float) -> None:
        """Frame-updater hook called by the scene host once per tick."""
        self.step(elapsed_seconds)

    def _damping_for(self, dt: float) -> float:
        if self.damping_mode is DampingMode.PER_SECOND:
            return self.damping_factor ** (dt * config.DAMPING_REFERENCE_RATE)
        return self.damping_factor

    def _set_status(self, status: SimulationStatus) -> None:
        self._status = status
        self._state.running = status is SimulationStatus.RUNNING

    def _reject_while_running(self, name: str) -> bool:
        if self._status is SimulationStatus.RUNNING:
            logger.debug(f"Ignoring change of '{name}' while the simulation is running.")
            return True
        return False

    def __repr__(self) -> str:
        s = self._state
        return (
            f"PendulumEngine(status={self._status.value}, angle={s.angle:.4f}, "
            f"angular_velocity={s.angular_velocity:.4f}, length={s.length}, gravity={s.gravity})"
        )
