import threading
import time

import pytest
import pyvista as pv
from PySide6.QtCore import QCoreApplication

from sciencelab.controller.asset_viewer import AssetViewer
from sciencelab.controller.scene_host import SceneHost
from sciencelab.controller.workers import QtLoadExecutor
from sciencelab.model.assets import AssetFormat, AssetNode, ViewerAsset


@pytest.fixture(scope="module")
def app():
    return QCoreApplication.instance() or QCoreApplication([])


def process_until(app, predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "timed out waiting for the worker"
        app.processEvents()
        time.sleep(0.005)


def test_results_arrive_on_gui_thread(app) -> None:
    executor = QtLoadExecutor()
    results = []

    def on_done(asset, error):
        results.append((asset, error, threading.current_thread() is threading.main_thread()))

    executor.submit(lambda: "model", on_done)
    process_until(app, lambda: results and executor.pending == 0)

    assert results == [("model", None, True)]


def test_job_errors_are_delivered(app) -> None:
    executor = QtLoadExecutor()
    results = []

    def explode():
        raise OSError("connection reset")

    executor.submit(explode, lambda asset, error: results.append((asset, error)))
    process_until(app, lambda: results)

    asset, error = results[0]
    assert asset is None
    assert isinstance(error, OSError)


def test_shutdown_waits_for_running_jobs_and_drops_new_ones(app) -> None:
    executor = QtLoadExecutor()
    finished = threading.Event()
    results = []

    def slow_job():
        time.sleep(0.1)
        finished.set()
        return "late"

    executor.submit(slow_job, lambda asset, error: results.append(asset))
    executor.shutdown()
    assert finished.is_set()

    executor.submit(lambda: "dropped", lambda asset, error: results.append(asset))
    process_until(app, lambda: executor.pending == 0)
    assert results == ["late"]


def test_viewer_discards_result_arriving_after_dispose(app, backend, scheduler, surface) -> None:
    host = SceneHost(backend, scheduler)
    host.initialize(surface)
    release = threading.Event()
    built = []

    class SlowSource:
        def load(self, url, fmt):
            release.wait(5.0)
            asset = ViewerAsset(url=url, format=AssetFormat.OBJ,
                                root=AssetNode(name="world", children=[AssetNode(name="box", geometry=pv.Cube())]))
            built.append(asset)
            return asset

    executor = QtLoadExecutor()
    viewer = AssetViewer(host, source=SlowSource(), executor=executor)
    viewer.load("slow.obj", AssetFormat.OBJ)

    release.set()
    viewer.dispose()
    process_until(app, lambda: executor.pending == 0)

    assert len(built) == 1
    assert built[0].root.children[0].geometry is None
    assert viewer.asset is None
    assert list(host.context.objects) == []
