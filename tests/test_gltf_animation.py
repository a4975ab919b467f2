import base64
import json

import numpy as np
import pytest

from sciencelab.controller.gltf_animation import (
    external_uris,
    parse_animations,
    read_accessor,
    read_gltf_document,
)
from sciencelab.model.animation import TargetPath

from conftest import animated_triangle_gltf, make_glb


def test_glb_document_and_bin_chunk_are_read(tmp_path) -> None:
    document, binary = animated_triangle_gltf()
    path = tmp_path / "triangle.glb"
    path.write_bytes(make_glb(document, binary))

    doc, buffers = read_gltf_document(str(path))

    assert doc["nodes"][0]["name"] == "mover"
    assert len(buffers) == 1
    assert read_accessor(doc, buffers, 3) == pytest.approx(np.array([[0, 0, 0], [2, 0, 0]]))


def test_embedded_data_uri_buffers(tmp_path) -> None:
    document, binary = animated_triangle_gltf()
    document["buffers"][0]["uri"] = "data:application/octet-stream;base64," + base64.b64encode(binary).decode()
    path = tmp_path / "triangle.gltf"
    path.write_text(json.dumps(document))

    doc, buffers = read_gltf_document(str(path))

    assert buffers[0] == binary
    assert external_uris(doc) == []


def test_external_buffers_are_resolved_next_to_the_file(tmp_path) -> None:
    document, binary = animated_triangle_gltf()
    document["buffers"][0]["uri"] = "triangle.bin"
    (tmp_path / "triangle.bin").write_bytes(binary)
    path = tmp_path / "triangle.gltf"
    path.write_text(json.dumps(document))

    doc, buffers = read_gltf_document(str(path))

    assert buffers[0] == binary
    assert external_uris(doc) == ["triangle.bin"]


def test_invalid_file_is_rejected(tmp_path) -> None:
    path = tmp_path / "junk.gltf"
    path.write_bytes(b"\xff\xfe not json")

    with pytest.raises(ValueError):
        read_gltf_document(str(path))


def test_strided_accessor() -> None:
    interleaved = np.array([[1, 2, 3, 99], [4, 5, 6, 99]], dtype=np.float32).tobytes()
    doc = {
        "bufferViews": [{"buffer": 0, "byteOffset": 0, "byteLength": 32, "byteStride": 16}],
        "accessors": [{"bufferView": 0, "componentType": 5126, "count": 2, "type": "VEC3"}],
    }

    assert read_accessor(doc, [interleaved], 0) == pytest.approx(np.array([[1, 2, 3], [4, 5, 6]]))


def test_normalized_integer_accessor() -> None:
    data = np.array([0, 32767], dtype=np.int16).tobytes()
    doc = {
        "bufferViews": [{"buffer": 0, "byteLength": 4}],
        "accessors": [{"bufferView": 0, "componentType": 5122, "count": 2, "type": "SCALAR", "normalized": True}],
    }

    assert read_accessor(doc, [data], 0).ravel() == pytest.approx([0.0, 1.0])


def test_parse_animations_builds_clip() -> None:
    document, binary = animated_triangle_gltf()

    clips = parse_animations(document, [binary])

    assert [clip.name for clip in clips] == ["slide"]
    track = clips[0].tracks[0]
    assert track.node == "mover"
    assert clips[0].duration == pytest.approx(1.0)
    assert track.channels[TargetPath.TRANSLATION].sample(0.5) == pytest.approx([1.0, 0.0, 0.0])


def test_channels_for_unknown_nodes_are_skipped() -> None:
    document, binary = animated_triangle_gltf()

    assert parse_animations(document, [binary], node_names=["world", "something_else"]) == []
    assert len(parse_animations(document, [binary], node_names=["world", "0"])) == 1


def test_morph_weight_channels_are_ignored() -> None:
    document, binary = animated_triangle_gltf()
    document["animations"][0]["channels"][0]["target"]["path"] = "weights"

    assert parse_animations(document, [binary]) == []
