"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: Scene defaults (camera, lights, frame rate) and control ranges
   live in one place instead of being scattered across widgets.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find bundled assets when the app is frozen into an .exe.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    SAMPLE_MODEL_PATH (str): Model shown when the viewer opens without a request.
    CACHE_DIR (str): Directory for downloaded model files.
"""
import math
import os
import sys
from pathlib import Path


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # config.py is in src/sciencelab/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


def get_cache_dir() -> str:
    """Download cache for remote models; SCIENCELAB_CACHE_DIR overrides the default."""
    override = os.environ.get("SCIENCELAB_CACHE_DIR")
    if override:
        return override
    return os.path.join(str(Path.home()), ".cache", "sciencelab", "models")


# Global Constants
ASSETS_PATH: str = get_resource_path("assets")
SAMPLE_MODEL_PATH: str = os.path.join(ASSETS_PATH, "models", "pyramid.obj")
CACHE_DIR: str = get_cache_dir()

# --- Scene ---
CAMERA_NEAR: float = 0.1
CAMERA_FAR: float = 1000.0
BACKGROUND_COLOR: str = "#f0f0f0"
AMBIENT_INTENSITY: float = 0.5

PENDULUM_FOV: float = 75.0
PENDULUM_CAMERA_POSITION: tuple[float, float, float] = (0.0, 0.0, 5.0)
PENDULUM_LIGHT_POSITION: tuple[float, float, float] = (0.0, 10.0, 10.0)
PENDULUM_LIGHT_INTENSITY: float = 0.8
PIVOT_POSITION: tuple[float, float, float] = (0.0, 2.0, 0.0)

VIEWER_FOV: float = 45.0
VIEWER_CAMERA_POSITION: tuple[float, float, float] = (0.0, 1.0, 5.0)
VIEWER_LIGHT_POSITION: tuple[float, float, float] = (1.0, 10.0, 5.0)
VIEWER_LIGHT_INTENSITY: float = 1.0
ZOOM_STEP: float = 0.5

# --- Render loop ---
FRAME_INTERVAL_MS: int = 16

# --- Simulation ---
MAX_STEP_SECONDS: float = 0.1
DAMPING_FACTOR: float = 0.995
DAMPING_REFERENCE_RATE: float = 60.0  # steps per second assumed by DampingMode.PER_SECOND

DEFAULT_LENGTH: float = 2.0
DEFAULT_GRAVITY: float = 9.8
DEFAULT_INITIAL_ANGLE: float = math.pi / 4

# Control surface domains (min, max, slider step)
LENGTH_RANGE: tuple[float, float, float] = (0.5, 3.0, 0.1)
GRAVITY_RANGE: tuple[float, float, float] = (1.0, 20.0, 0.1)
INITIAL_ANGLE_RANGE: tuple[float, float, float] = (0.0, math.pi / 2, 0.01)

# --- Asset downloads ---
DOWNLOAD_TIMEOUT_S: float = 30.0
MAX_ASSET_BYTES: int = 10 * 1024 * 1024
