"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar and the experiment tabs.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (like File -> Open Model) to the
   appropriate panels and shuts the scenes down when the window closes.
"""
import logging
from typing import Optional

from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import QFileDialog, QMainWindow, QStackedWidget, QTabBar, QVBoxLayout, QWidget

from sciencelab.errors import UnsupportedFormatError
from sciencelab.model.assets import AssetFormat
from sciencelab.view.tabs.tab_model_viewer import MODEL_FILE_FILTER, ModelViewerPanel
from sciencelab.view.tabs.tab_pendulum import PendulumControlPanel

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "Science Lab"

TAB_PENDULUM = 0
TAB_VIEWER = 1


class MainWindow(QMainWindow):
    def __init__(self, start_tab: int = TAB_PENDULUM) -> None:
        super().__init__()
        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1280, 800)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)

        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # --- 1. TOP TAB BAR ---
        self.tab_bar = QTabBar()
        self.tab_bar.setDrawBase(True)
        self.tab_bar.setShape(QTabBar.RoundedNorth)
        self.tab_bar.setExpanding(True)

        self.tab_bar.addTab("1. Pendulum")
        self.tab_bar.addTab("2. 3D Model")

        self.tab_bar.setStyleSheet("""
                    QTabBar::tab { height: 35px; min-width: 100px; }
                    QTabBar::tab:selected { font-weight: bold; }
                """)

        main_layout.addWidget(self.tab_bar)

        # --- 2. EXPERIMENT PANELS (Stacked) ---
        self.stack = QStackedWidget()
        self.pendulum_panel = PendulumControlPanel()
        self.viewer_panel = ModelViewerPanel()

        # Order must match Tab Bar order
        self.stack.addWidget(self.pendulum_panel)  # Index 0
        self.stack.addWidget(self.viewer_panel)  # Index 1
        main_layout.addWidget(self.stack)

        self.tab_bar.currentChanged.connect(self.stack.setCurrentIndex)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        self.tab_bar.setCurrentIndex(start_tab)
        self.stack.setCurrentIndex(start_tab)

    def _create_actions(self) -> None:
        self.act_open = QAction("Open Model...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_open)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

    # --- SLOTS ---
    def open_model(self, url: str, fmt: Optional[str] = None) -> None:
        """Switch to the viewer tab and load `url` (format from its extension if not given)."""
        if fmt is None:
            try:
                fmt = AssetFormat.from_extension(url)
            except UnsupportedFormatError:
                fmt = AssetFormat.GLTF
        self.tab_bar.setCurrentIndex(TAB_VIEWER)
        self.viewer_panel.load_model(url, fmt)

    def on_file_open(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open 3D Model", "", MODEL_FILE_FILTER)
        if path:
            self.open_model(path)

    def closeEvent(self, event: QCloseEvent) -> None:
        logger.info("Shutting down scenes.")
        self.pendulum_panel.shutdown()
        self.viewer_panel.shutdown()
        super().closeEvent(event)
