"""
Model Viewer Panel
==================
Loads glTF/OBJ models into a 3D scene with a ground grid, animation playback
and camera controls.

Why is this file needed?
------------------------
1. Wiring: It owns the SceneHost and AssetViewer of the viewer tab and maps
   toolbar buttons onto viewer operations.
2. Feedback: Loading and error states are shown as an overlay label, and the
   buttons are enabled only when their operation is meaningful.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent, QShowEvent
from PySide6.QtWidgets import (
    QComboBox, QFileDialog, QHBoxLayout, QLabel, QLineEdit, QMessageBox, QPushButton, QStyle, QVBoxLayout, QWidget
)

from sciencelab import config
from sciencelab.controller.asset_viewer import AssetViewer
from sciencelab.controller.scene_host import SceneHost
from sciencelab.controller.workers import QtLoadExecutor
from sciencelab.errors import SetupError, UnsupportedFormatError
from sciencelab.model.assets import AssetFormat
from sciencelab.model.scene import SceneObject
from sciencelab.view.widgets.pyvista_backend import PyVistaBackend
from sciencelab.view.widgets.render_loop import QtFrameScheduler
from sciencelab.view.widgets.scene_surface import SceneSurface
from sciencelab.view.widgets.vtk_utils import VtkUtils

logger = logging.getLogger(__name__)

GRID_COLOR = "#9a9a9a"
MODEL_FILE_FILTER = "3D Models (*.glb *.gltf *.obj *.fbx);;All Files (*)"


class ModelViewerPanel(QWidget):
    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.host = SceneHost(
            PyVistaBackend(),
            QtFrameScheduler(parent=self),
            fov=config.VIEWER_FOV,
            camera_position=config.VIEWER_CAMERA_POSITION,
            light_position=config.VIEWER_LIGHT_POSITION,
            light_intensity=config.VIEWER_LIGHT_INTENSITY,
        )
        self.viewer = AssetViewer(self.host, executor=QtLoadExecutor(), on_change=self.refresh_state)
        self._pending: Optional[tuple[str, AssetFormat]] = None

        layout = QVBoxLayout(self)

        # --- Source row ---
        hbox_source = QHBoxLayout()
        hbox_source.addWidget(QLabel("Model URL:"))

        self.edit_url = QLineEdit()
        self.edit_url.setPlaceholderText("https://... or a local path")
        self.edit_url.returnPressed.connect(self.on_load_clicked)
        hbox_source.addWidget(self.edit_url, stretch=1)

        self.combo_format = QComboBox()
        for fmt in AssetFormat:
            self.combo_format.addItem(fmt.value.upper(), fmt)
        hbox_source.addWidget(self.combo_format)

        self.btn_load = QPushButton("Load")
        self.btn_load.clicked.connect(self.on_load_clicked)
        hbox_source.addWidget(self.btn_load)

        self.btn_browse = QPushButton("Open File...")
        self.btn_browse.setIcon(self.style().standardIcon(QStyle.SP_DialogOpenButton))
        self.btn_browse.clicked.connect(self.on_browse_clicked)
        hbox_source.addWidget(self.btn_browse)

        layout.addLayout(hbox_source)

        # --- Scene with status overlay ---
        self.surface = SceneSurface()
        self.surface.resized.connect(self.host.on_resize)
        self.surface.escape_pressed.connect(self.on_escape)
        layout.addWidget(self.surface, stretch=1)

        self.lbl_overlay = QLabel(self.surface)
        self.lbl_overlay.setAlignment(Qt.AlignCenter)
        self.lbl_overlay.setWordWrap(True)
        self.lbl_overlay.setStyleSheet(
            "QLabel { background: rgba(255, 255, 255, 210); padding: 8px; border-radius: 4px; }"
        )
        self.lbl_overlay.hide()

        # --- Toolbar ---
        hbox_tools = QHBoxLayout()

        self.btn_play = QPushButton()
        self.btn_play.clicked.connect(self.on_play_clicked)
        hbox_tools.addWidget(self.btn_play)

        self.btn_reset_view = QPushButton("Reset View")
        self.btn_reset_view.clicked.connect(self.viewer.reset_view)
        hbox_tools.addWidget(self.btn_reset_view)

        self.btn_zoom_in = QPushButton("Zoom In")
        self.btn_zoom_in.clicked.connect(lambda: self.viewer.zoom(-config.ZOOM_STEP))
        hbox_tools.addWidget(self.btn_zoom_in)

        self.btn_zoom_out = QPushButton("Zoom Out")
        self.btn_zoom_out.clicked.connect(lambda: self.viewer.zoom(config.ZOOM_STEP))
        hbox_tools.addWidget(self.btn_zoom_out)

        hbox_tools.addStretch()

        self.btn_fullscreen = QPushButton("Fullscreen")
        self.btn_fullscreen.setIcon(self.style().standardIcon(QStyle.SP_TitleBarMaxButton))
        self.btn_fullscreen.clicked.connect(self.on_fullscreen_clicked)
        hbox_tools.addWidget(self.btn_fullscreen)

        layout.addLayout(hbox_tools)

        self.refresh_state()

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
            logger.error(f"Viewer scene setup failed: {e}")
            QMessageBox.critical(self, "Scene Error", str(e))
            return

        self.host.add_object(SceneObject(
            name="viewer:grid",
            dataset=VtkUtils.build_ground_grid(size=10.0, divisions=10),
            color=GRID_COLOR,
            lighting=False,
        ))
        self.lbl_overlay.raise_()

        if self._pending is not None:
            url, fmt = self._pending
            self._pending = None
            self.load_model(url, fmt)
        elif os.path.isfile(config.SAMPLE_MODEL_PATH):
            self.load_model(config.SAMPLE_MODEL_PATH, AssetFormat.OBJ)
        self.refresh_state()

    def shutdown(self) -> None:
        self.viewer.dispose()
        self.host.dispose()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.shutdown()
        super().closeEvent(event)

    # ------------------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------------------

    def load_model(self, url: str, fmt=AssetFormat.GLTF) -> None:
        """Load `url`; before the scene exists the request is queued until the tab is shown."""
        try:
            asset_format = AssetFormat.parse(fmt)
        except UnsupportedFormatError as e:
            QMessageBox.warning(self, "Unsupported Format", str(e))
            return

        self.edit_url.setText(url)
        self.combo_format.setCurrentIndex(self.combo_format.findData(asset_format))
        if not self.host.is_initialized:
            self._pending = (url, asset_format)
            return
        self.viewer.load(url, asset_format)

    def on_load_clicked(self) -> None:
        url = self.edit_url.text().strip()
        if not url:
            return
        self.load_model(url, self.combo_format.currentData())

    def on_browse_clicked(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open 3D Model", "", MODEL_FILE_FILTER)
        if not path:
            return
        try:
            fmt = AssetFormat.from_extension(path)
        except UnsupportedFormatError as e:
            QMessageBox.warning(self, "Unsupported Format", str(e))
            return
        self.load_model(path, fmt)

    # ------------------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------------------

    def on_play_clicked(self) -> None:
        self.viewer.toggle_playback()

    def on_fullscreen_clicked(self) -> None:
        if self.host.is_initialized:
            self.viewer.toggle_fullscreen()

    def on_escape(self) -> None:
        if self.host.fullscreen:
            self.viewer.toggle_fullscreen()

    # ------------------------------------------------------------------------------
    # UI state
    # ------------------------------------------------------------------------------

    def refresh_state(self) -> None:
        """Sync overlay and button states with the viewer."""
        viewer = self.viewer
        ready = self.host.is_initialized and not viewer.is_loading and viewer.error is None

        if viewer.is_loading:
            self._show_overlay(f"Loading model...\n{viewer.url}")
        elif viewer.error is not None:
            self._show_overlay(str(viewer.error), error=True)
        else:
            self.lbl_overlay.hide()

        self.btn_play.setVisible(viewer.has_animations)
        self.btn_play.setEnabled(ready)
        if viewer.playing:
            self.btn_play.setText("Pause")
            self.btn_play.setIcon(self.style().standardIcon(QStyle.SP_MediaPause))
        else:
            self.btn_play.setText("Play")
            self.btn_play.setIcon(self.style().standardIcon(QStyle.SP_MediaPlay))

        for btn in (self.btn_reset_view, self.btn_zoom_in, self.btn_zoom_out, self.btn_fullscreen):
            btn.setEnabled(ready)
        self.btn_load.setEnabled(not viewer.is_loading)

    def _show_overlay(self, text: str, error: bool = False) -> None:
        color = "#c0392b" if error else "#333333"
        self.lbl_overlay.setText(text)
        self.lbl_overlay.setStyleSheet(
            f"QLabel {{ color: {color}; background: rgba(255, 255, 255, 210); padding: 8px; border-radius: 4px; }}"
        )
        self.lbl_overlay.adjustSize()
        width = min(max(self.lbl_overlay.width(), 240), max(self.surface.width() - 20, 240))
        self.lbl_overlay.setFixedWidth(width)
        self.lbl_overlay.adjustSize()
        self.lbl_overlay.move(
            max(0, (self.surface.width() - self.lbl_overlay.width()) // 2),
            max(0, (self.surface.height() - self.lbl_overlay.height()) // 2),
        )
        self.lbl_overlay.show()
        self.lbl_overlay.raise_()
