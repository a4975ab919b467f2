import numpy as np
import pytest
import requests

from sciencelab.controller.asset_source import AssetSource
from sciencelab.errors import AssetLoadError, UnsupportedFormatError
from sciencelab.model.assets import AssetFormat

from conftest import animated_triangle_gltf, make_glb

PYRAMID_OBJ = b"""o pyramid
v -0.5 0.0 -0.5
v 0.5 0.0 -0.5
v 0.5 0.0 0.5
v -0.5 0.0 0.5
v 0.0 1.0 0.0
f 1 2 3
f 1 3 4
f 1 5 2
f 2 5 3
f 3 5 4
f 4 5 1
"""


class FakeResponse:
    def __init__(self, content: bytes, status: int = 200, headers=None) -> None:
        self.content = content
        self.status_code = status
        self.headers = headers or {}
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, responses: dict) -> None:
        self.responses = responses
        self.requested: list = []

    def get(self, url, timeout=None, stream=False):
        self.requested.append(url)
        return self.responses.get(url) or FakeResponse(b"", status=404)


@pytest.fixture
def pyramid_path(tmp_path):
    path = tmp_path / "pyramid.obj"
    path.write_bytes(PYRAMID_OBJ)
    return path


def test_local_obj_is_loaded_and_centered(tmp_path, pyramid_path) -> None:
    source = AssetSource(cache_dir=str(tmp_path / "cache"))

    asset = source.load(str(pyramid_path), "obj")

    assert asset.format is AssetFormat.OBJ
    assert len(asset.mesh_nodes()) == 1
    assert asset.has_animations is False
    lower, upper = asset.bounds()
    assert 0.5 * (lower + upper) == pytest.approx(np.zeros(3), abs=1e-9)
    assert upper[1] - lower[1] == pytest.approx(1.0)


def test_file_url_is_accepted(tmp_path, pyramid_path) -> None:
    source = AssetSource(cache_dir=str(tmp_path / "cache"))

    asset = source.load(pyramid_path.as_uri(), AssetFormat.OBJ)

    assert asset.url == pyramid_path.as_uri()


def test_missing_file_raises_load_error(tmp_path) -> None:
    source = AssetSource(cache_dir=str(tmp_path / "cache"))

    with pytest.raises(AssetLoadError) as info:
        source.load(str(tmp_path / "nope.glb"), "gltf")
    assert isinstance(info.value.cause, FileNotFoundError)


def test_size_limit_is_enforced(tmp_path, pyramid_path) -> None:
    source = AssetSource(cache_dir=str(tmp_path / "cache"), max_bytes=16)

    with pytest.raises(AssetLoadError, match="too large"):
        source.load(str(pyramid_path), "obj")


def test_unsupported_format_and_scheme(tmp_path, pyramid_path) -> None:
    source = AssetSource(cache_dir=str(tmp_path / "cache"))

    with pytest.raises(UnsupportedFormatError):
        source.load(str(pyramid_path), "stl")
    with pytest.raises(AssetLoadError, match="scheme"):
        source.load("ftp://example.com/pyramid.obj", "obj")
    with pytest.raises(AssetLoadError):
        source.load("", "obj")


def test_http_download_goes_to_cache(tmp_path) -> None:
    url = "https://example.com/models/pyramid.obj"
    session = FakeSession({url: FakeResponse(PYRAMID_OBJ)})
    cache = tmp_path / "cache"
    source = AssetSource(cache_dir=str(cache), session=session)

    asset = source.load(url, "obj")

    assert session.requested == [url]
    assert asset.url == url
    assert len(list(cache.rglob("pyramid.obj"))) == 1


def test_http_errors_become_load_errors(tmp_path) -> None:
    source = AssetSource(cache_dir=str(tmp_path / "cache"), session=FakeSession({}))

    with pytest.raises(AssetLoadError, match="404"):
        source.load("https://example.com/missing.glb", "gltf")


def test_declared_size_over_limit_is_refused(tmp_path) -> None:
    url = "https://example.com/huge.glb"
    response = FakeResponse(b"glTF", headers={"Content-Length": str(50 * 1024 * 1024)})
    source = AssetSource(cache_dir=str(tmp_path / "cache"), session=FakeSession({url: response}))

    with pytest.raises(AssetLoadError, match="too large"):
        source.load(url, "gltf")
    assert response.closed


def test_glb_with_animation(tmp_path) -> None:
    document, binary = animated_triangle_gltf()
    path = tmp_path / "triangle.glb"
    path.write_bytes(make_glb(document, binary))
    source = AssetSource(cache_dir=str(tmp_path / "cache"))

    asset = source.load(str(path), "gltf")

    assert len(asset.mesh_nodes()) == 1
    assert asset.has_animations
    assert asset.playing is False
    assert asset.clips[0].name == "slide"


def test_fbx_is_reported_as_load_error(tmp_path) -> None:
    path = tmp_path / "rig.fbx"
    path.write_bytes(b"Kaydara FBX Binary  \x00")
    source = AssetSource(cache_dir=str(tmp_path / "cache"))

    with pytest.raises(AssetLoadError):
        source.load(str(path), "fbx")
