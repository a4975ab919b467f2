"""
glTF Animation Reader
=====================
Reads the animation clips of a .gltf / .glb file.

trimesh loads the geometry and node hierarchy of glTF files but drops the
animations, so the keyframe data is read here directly from the glTF JSON and
its binary buffers.
"""
from __future__ import annotations

import base64
import json
import logging
import os
import struct
from typing import Any, Iterable, Optional, TYPE_CHECKING
from urllib.parse import unquote

import numpy as np

from sciencelab.model.animation import (
    AnimationChannel,
    AnimationClip,
    AnimationTrack,
    Interpolation,
    TargetPath,
)

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

GLB_MAGIC = b"glTF"
GLB_CHUNK_JSON = 0x4E4F534A
GLB_CHUNK_BIN = 0x004E4942

_COMPONENT_DTYPES: dict[int, Any] = {
    5120: np.int8,
    5121: np.uint8,
    5122: np.int16,
    5123: np.uint16,
    5125: np.uint32,
    5126: np.float32,
}

_TYPE_WIDTH: dict[str, int] = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}


def read_gltf_document(path: str) -> tuple[dict[str, Any], list[bytes]]:
    """
    Read the JSON document and all buffers of a .gltf or .glb file.

    Args:
        path: Local file path.

    Returns:
        (document, buffers) where buffers[i] holds the bytes of doc["buffers"][i].

    Raises:
        ValueError: If the file is not valid glTF.
    """
    with open(path, "rb") as f:
        raw = f.read()

    bin_chunk: Optional[bytes] = None
    if raw[:4] == GLB_MAGIC:
        doc, bin_chunk = _split_glb(raw)
    else:
        try:
            doc = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValueError(f"Not a glTF document: {e}") from e

    base_dir = os.path.dirname(os.path.abspath(path))
    buffers: list[bytes] = []
    for i, buffer in enumerate(doc.get("buffers", [])):
        uri = buffer.get("uri")
        if uri is None:
            if bin_chunk is None:
                raise ValueError(f"Buffer {i} has no uri and the file has no BIN chunk.")
            buffers.append(bin_chunk)
        elif uri.startswith("data:"):
            buffers.append(_decode_data_uri(uri))
        else:
            with open(os.path.join(base_dir, unquote(uri)), "rb") as f:
                buffers.append(f.read())
    return doc, buffers


def _split_glb(raw: bytes) -> tuple[dict[str, Any], Optional[bytes]]:
    if len(raw) < 20:
        raise ValueError("GLB file is truncated.")
    _magic, version, length = struct.unpack_from("<4sII", raw, 0)
    if version != 2:
        raise ValueError(f"Unsupported GLB version {version}.")

    doc: Optional[dict[str, Any]] = None
    bin_chunk: Optional[bytes] = None
    offset = 12
    end = min(length, len(raw))
    while offset + 8 <= end:
        chunk_length, chunk_type = struct.unpack_from("<II", raw, offset)
        data = raw[offset + 8: offset + 8 + chunk_length]
        if chunk_type == GLB_CHUNK_JSON:
            doc = json.loads(data.decode("utf-8"))
        elif chunk_type == GLB_CHUNK_BIN and bin_chunk is None:
            bin_chunk = data
        offset += 8 + chunk_length

    if doc is None:
        raise ValueError("GLB file has no JSON chunk.")
    return doc, bin_chunk


def _decode_data_uri(uri: str) -> bytes:
    header, _, payload = uri.partition(",")
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return unquote(payload).encode("latin-1")


def external_uris(doc: dict[str, Any]) -> list[str]:
    """Relative uris of buffers and images that live next to a .gltf file."""
    uris: list[str] = []
    for key in ("buffers", "images"):
        for item in doc.get(key, []):
            uri = item.get("uri")
            if uri and not uri.startswith("data:"):
                uris.append(uri)
    return uris


def read_accessor(doc: dict[str, Any], buffers: list[bytes], index: int) -> npt.NDArray[np.float64]:
    """
    Read accessor `index` as a float64 array of shape (count, width).

    Raises:
        ValueError: For sparse accessors and unknown component types.
    """
    accessor = doc["accessors"][index]
    if "sparse" in accessor:
        raise ValueError(f"Sparse accessor {index} is not supported.")

    component = accessor["componentType"]
    if component not in _COMPONENT_DTYPES:
        raise ValueError(f"Unknown component type {component} in accessor {index}.")
    dtype = np.dtype(_COMPONENT_DTYPES[component]).newbyteorder("<")
    width = _TYPE_WIDTH[accessor["type"]]
    count = int(accessor["count"])

    if "bufferView" not in accessor:
        return np.zeros((count, width), dtype=np.float64)

    view = doc["bufferViews"][accessor["bufferView"]]
    buffer = buffers[view["buffer"]]
    offset = int(view.get("byteOffset", 0)) + int(accessor.get("byteOffset", 0))
    stride = view.get("byteStride")
    item_size = dtype.itemsize * width

    if stride and stride != item_size:
        data = np.ndarray(
            shape=(count, width),
            dtype=dtype,
            buffer=buffer,
            offset=offset,
            strides=(stride, dtype.itemsize),
        )
    else:
        data = np.frombuffer(buffer, dtype=dtype, count=count * width, offset=offset).reshape(count, width)

    out = data.astype(np.float64)
    if accessor.get("normalized") and np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        out = np.maximum(out / info.max, -1.0)
    return out


def gltf_node_name(doc: dict[str, Any], index: int) -> str:
    """Name of node `index` as used in the scene graph (falls back to the index)."""
    return doc["nodes"][index].get("name", str(index))


def _resolve_node(doc: dict[str, Any], index: int, known: Optional[set[str]]) -> Optional[str]:
    candidates = [gltf_node_name(doc, index), str(index)]
    if known is None:
        return candidates[0]
    for name in candidates:
        if name in known:
            return name
    return None


def parse_animations(
    doc: dict[str, Any],
    buffers: list[bytes],
    node_names: Optional[Iterable[str]] = None,
) -> list[AnimationClip]:
    """
    Build animation clips from a glTF document.

    Channels targeting morph weights, nodes missing from `node_names`, or
    using unreadable accessors are skipped with a warning.

    Args:
        doc: glTF JSON document.
        buffers: Buffers as returned by `read_gltf_document`.
        node_names: Names present in the loaded scene graph (None = accept all).

    Returns:
        Clips in document order; clips without any usable channel are dropped.
    """
    known = set(node_names) if node_names is not None else None
    clips: list[AnimationClip] = []

    for a_idx, animation in enumerate(doc.get("animations", [])):
        clip_name = animation.get("name", f"animation_{a_idx}")
        tracks: dict[str, AnimationTrack] = {}
        samplers = animation.get("samplers", [])

        for channel in animation.get("channels", []):
            target = channel.get("target", {})
            path = target.get("path")
            if "node" not in target or path not in {p.value for p in TargetPath}:
                continue

            node_name = _resolve_node(doc, target["node"], known)
            if node_name is None:
                logger.warning(f"Clip '{clip_name}': target node {target['node']} not in scene, skipping channel.")
                continue

            try:
                sampler = samplers[channel["sampler"]]
                times = read_accessor(doc, buffers, sampler["input"])
                values = read_accessor(doc, buffers, sampler["output"])
                interpolation = Interpolation(sampler.get("interpolation", "LINEAR"))
                anim_channel = AnimationChannel(
                    path=TargetPath(path),
                    times=times,
                    values=values,
                    interpolation=interpolation,
                )
            except (KeyError, IndexError, ValueError) as e:
                logger.warning(f"Clip '{clip_name}': unreadable channel ({e}), skipping.")
                continue

            track = tracks.get(node_name)
            if track is None:
                track = _track_with_rest_pose(doc, target["node"], node_name)
                tracks[node_name] = track
            track.channels[anim_channel.path] = anim_channel

        if tracks:
            clips.append(AnimationClip(name=clip_name, tracks=list(tracks.values())))
        else:
            logger.warning(f"Clip '{clip_name}' has no usable channels, dropped.")

    return clips


def _track_with_rest_pose(doc: dict[str, Any], index: int, name: str) -> AnimationTrack:
    node = doc["nodes"][index]
    track = AnimationTrack(node=name)
    if "translation" in node:
        track.rest_translation = np.asarray(node["translation"], dtype=np.float64)
    if "rotation" in node:
        track.rest_rotation = np.asarray(node["rotation"], dtype=np.float64)
    if "scale" in node:
        track.rest_scale = np.asarray(node["scale"], dtype=np.float64)
    return track
