import pytest


def test_import():
    import sciencelab

    assert sciencelab.__version__ == "0.1.0"


def test_core_public_api_imports() -> None:
    from sciencelab.controller.asset_source import AssetSource
    from sciencelab.controller.asset_viewer import AssetViewer, SynchronousExecutor
    from sciencelab.controller.scene_host import RenderBackend, SceneHost
    from sciencelab.errors import AssetLoadError, InvalidParameterError, SetupError, UnsupportedFormatError
    from sciencelab.model.pendulum import PendulumEngine

    assert AssetSource is not None
    assert AssetViewer is not None
    assert SynchronousExecutor is not None
    assert RenderBackend is not None
    assert SceneHost is not None
    assert PendulumEngine is not None
    assert issubclass(SetupError, Exception)
    assert issubclass(InvalidParameterError, Exception)
    assert issubclass(UnsupportedFormatError, Exception)
    assert issubclass(AssetLoadError, Exception)


def test_qt_worker_imports() -> None:
    pytest.importorskip("PySide6")
    from sciencelab.controller.workers import QtLoadExecutor

    assert QtLoadExecutor().pending == 0


def test_cli_parser_defaults() -> None:
    pytest.importorskip("pyvistaqt")
    from sciencelab.main import build_parser

    args = build_parser().parse_args([])
    assert args.experiment == "pendulum"
    assert args.model is None

    args = build_parser().parse_args(["--experiment", "viewer", "--model", "a.glb", "--log-level", "DEBUG"])
    assert args.experiment == "viewer"
    assert args.model == "a.glb"
