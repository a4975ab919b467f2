"""
Pendulum Experiment Panel
=========================
Controls and 3D scene of the simple-pendulum experiment.

Why is this file needed?
------------------------
1. Wiring: It connects the sliders and buttons to the PendulumEngine and the
   engine to a SceneHost render loop.
2. Display: PendulumRenderer keeps the pivot, string and bob actors in sync
   with the engine pose after every simulation step.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np
import pyvista as pv
from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent, QShowEvent
from PySide6.QtWidgets import (
    QFormLayout, QGroupBox, QHBoxLayout, QLabel, QMessageBox, QPushButton, QSlider, QStyle, QVBoxLayout, QWidget
)

from sciencelab import config
from sciencelab.controller.scene_host import SceneHost
from sciencelab.errors import InvalidParameterError, SetupError
from sciencelab.model.pendulum import PendulumEngine
from sciencelab.model.scene import SceneObject
from sciencelab.utils import radians_to_degrees, slider_steps, slider_to_value, value_to_slider
from sciencelab.view.widgets.pyvista_backend import PyVistaBackend
from sciencelab.view.widgets.render_loop import QtFrameScheduler
from sciencelab.view.widgets.scene_surface import SceneSurface
from sciencelab.view.widgets.vtk_utils import VtkUtils

logger = logging.getLogger(__name__)

PIVOT_RADIUS = 0.1
BOB_RADIUS = 0.3
PIVOT_COLOR = "#444444"
STRING_COLOR = "#222222"
BOB_COLOR = "#e63946"


class PendulumRenderer:
    """Frame updater that moves the bob and string to the current engine pose."""

    def __init__(
        self,
        host: SceneHost,
        engine: PendulumEngine,
        pivot=config.PIVOT_POSITION,
        on_frame: Optional[Callable[[], None]] = None,
    ) -> None:
        self.host = host
        self.engine = engine
        self.on_frame = on_frame
        self.pivot = tuple(float(v) for v in pivot)

        self._string_line: pv.PolyData = VtkUtils.segment_to_polydata(self.pivot, self.pivot)
        self.pivot_obj = SceneObject(
            name="pendulum:pivot",
            dataset=pv.Sphere(radius=PIVOT_RADIUS, center=self.pivot),
            color=PIVOT_COLOR,
            smooth_shading=True,
        )
        self.string_obj = SceneObject(
            name="pendulum:string",
            dataset=self._string_line,
            color=STRING_COLOR,
            line_width=2.0,
            lighting=False,
        )
        self.bob_obj = SceneObject(
            name="pendulum:bob",
            dataset=pv.Sphere(radius=BOB_RADIUS, theta_resolution=32, phi_resolution=32),
            color=BOB_COLOR,
            smooth_shading=True,
            user_matrix=np.eye(4),
        )

    def add_to_scene(self) -> None:
        for obj in (self.pivot_obj, self.string_obj, self.bob_obj):
            self.host.add_object(obj)
        self.sync()

    def sync(self) -> None:
        pose = self.engine.pose(pivot=(self.pivot[0], self.pivot[1]))
        bob = (pose.bob[0], pose.bob[1], self.pivot[2])

        self._string_line.points = np.array([self.pivot, bob], dtype=np.float64)
        self.bob_obj.user_matrix = VtkUtils.translation_matrix(bob)

        self.host.update_object(self.string_obj)
        self.host.update_object(self.bob_obj)

    def update(self, elapsed_seconds: float) -> None:
        self.sync()
        if self.on_frame is not None:
            self.on_frame()


class PendulumControlPanel(QWidget):
    def __init__(self, engine: Optional[PendulumEngine] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.engine = engine or PendulumEngine()
        self.host = SceneHost(
            PyVistaBackend(),
            QtFrameScheduler(parent=self),
            fov=config.PENDULUM_FOV,
            camera_position=config.PENDULUM_CAMERA_POSITION,
            light_position=config.PENDULUM_LIGHT_POSITION,
            light_intensity=config.PENDULUM_LIGHT_INTENSITY,
        )
        self.renderer = PendulumRenderer(self.host, self.engine, on_frame=self._on_frame)

        layout = QHBoxLayout(self)

        # --- LEFT: Controls ---
        controls = QWidget()
        controls.setMaximumWidth(340)
        l_controls = QVBoxLayout(controls)
        l_controls.setContentsMargins(0, 0, 0, 0)

        grp_params = QGroupBox("Parameters")
        form_params = QFormLayout(grp_params)

        self.lbl_length = QLabel()
        self.slider_length = self._make_slider(config.LENGTH_RANGE, self.engine.length, self.on_length_changed)
        form_params.addRow(self.lbl_length)
        form_params.addRow(self.slider_length)

        self.lbl_gravity = QLabel()
        self.slider_gravity = self._make_slider(config.GRAVITY_RANGE, self.engine.gravity, self.on_gravity_changed)
        form_params.addRow(self.lbl_gravity)
        form_params.addRow(self.slider_gravity)

        self.lbl_angle = QLabel()
        self.slider_angle = self._make_slider(
            config.INITIAL_ANGLE_RANGE, self.engine.initial_angle, self.on_angle_changed
        )
        form_params.addRow(self.lbl_angle)
        form_params.addRow(self.slider_angle)

        l_controls.addWidget(grp_params)

        # --- Simulation buttons ---
        grp_sim = QGroupBox("Simulation")
        hbox_sim = QHBoxLayout(grp_sim)

        self.btn_start = QPushButton()
        self.btn_start.setMinimumHeight(40)
        self.btn_start.clicked.connect(self.on_start_clicked)
        hbox_sim.addWidget(self.btn_start)

        self.btn_reset = QPushButton("Reset")
        self.btn_reset.setMinimumHeight(40)
        self.btn_reset.setIcon(self.style().standardIcon(QStyle.SP_BrowserReload))
        self.btn_reset.clicked.connect(self.on_reset_clicked)
        hbox_sim.addWidget(self.btn_reset)

        l_controls.addWidget(grp_sim)

        # --- Readouts ---
        grp_info = QGroupBox("Readouts")
        form_info = QFormLayout(grp_info)
        self.lbl_period = QLabel("-")
        self.lbl_frequency = QLabel("-")
        self.lbl_energy = QLabel("-")
        self.lbl_status = QLabel("-")
        form_info.addRow("Period (small angle):", self.lbl_period)
        form_info.addRow("Angular frequency:", self.lbl_frequency)
        form_info.addRow("Energy per mass:", self.lbl_energy)
        form_info.addRow("Status:", self.lbl_status)
        l_controls.addWidget(grp_info)

        l_controls.addStretch()
        layout.addWidget(controls)

        # --- RIGHT: Scene ---
        self.surface = SceneSurface()
        self.surface.resized.connect(self.host.on_resize)
        layout.addWidget(self.surface, stretch=1)

        self.refresh_labels()
        self.refresh_controls()

    def _make_slider(
        self,
        bounds: tuple[float, float, float],
        value: float,
        slot: Callable[[int], None],
    ) -> QSlider:
        slider = QSlider(Qt.Horizontal)
        slider.setRange(0, slider_steps(bounds))
        slider.setValue(value_to_slider(value, bounds))
        slider.valueChanged.connect(slot)
        return slider

    # ------------------------------------------------------------------------------
    # Scene lifecycle
    # ------------------------------------------------------------------------------

    def showEvent(self, event: QShowEvent) -> None:
        super().showEvent(event)
        if self.host.is_initialized:
            return
        try:
            self.host.initialize(self.surface)
        except SetupError as e:
            logger.error(f"Pendulum scene setup failed: {e}")
            QMessageBox.critical(self, "Scene Error", str(e))
            return
        self.renderer.add_to_scene()
        self.host.attach(self.engine)
        self.host.attach(self.renderer)

    def _on_frame(self) -> None:
        # Labels follow the simulation at frame rate
        if self.engine.is_running:
            self.refresh_labels()

    def shutdown(self) -> None:
        self.engine.pause()
        self.host.dispose()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.shutdown()
        super().closeEvent(event)

    # ------------------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------------------

    def on_length_changed(self, position: int) -> None:
        self._set_parameter("length", slider_to_value(position, config.LENGTH_RANGE))

    def on_gravity_changed(self, position: int) -> None:
        self._set_parameter("gravity", slider_to_value(position, config.GRAVITY_RANGE))

    def on_angle_changed(self, position: int) -> None:
        self._set_parameter("initial_angle", slider_to_value(position, config.INITIAL_ANGLE_RANGE))

    def _set_parameter(self, name: str, value: float) -> None:
        try:
            setattr(self.engine, name, value)
        except InvalidParameterError as e:
            logger.warning(str(e))
        self.refresh_labels()
        if self.host.is_initialized:
            self.renderer.sync()

    def on_start_clicked(self) -> None:
        self.engine.toggle()
        self.refresh_controls()

    def on_reset_clicked(self) -> None:
        self.engine.reset()
        if self.host.is_initialized:
            self.renderer.sync()
        self.refresh_labels()
        self.refresh_controls()

    # ------------------------------------------------------------------------------
    # UI state
    # ------------------------------------------------------------------------------

    def refresh_labels(self) -> None:
        engine = self.engine
        self.lbl_length.setText(f"Length: {engine.length:.1f} m")
        self.lbl_gravity.setText(f"Gravity: {engine.gravity:.1f} m/s²")
        self.lbl_angle.setText(f"Initial angle: {radians_to_degrees(engine.initial_angle):.0f}°")
        self.lbl_period.setText(f"{engine.small_angle_period:.2f} s")
        self.lbl_frequency.setText(f"{engine.angular_frequency:.2f} rad/s")
        self.lbl_energy.setText(f"{engine.energy_per_mass:.2f} J/kg")
        self.lbl_status.setText(engine.status.value.capitalize())

    def refresh_controls(self) -> None:
        running = self.engine.is_running
        for slider in (self.slider_length, self.slider_gravity, self.slider_angle):
            slider.setEnabled(not running)

        if running:
            self.btn_start.setText("Pause")
            self.btn_start.setIcon(self.style().standardIcon(QStyle.SP_MediaPause))
        else:
            self.btn_start.setText("Start")
            self.btn_start.setIcon(self.style().standardIcon(QStyle.SP_MediaPlay))
        self.lbl_status.setText(self.engine.status.value.capitalize())
