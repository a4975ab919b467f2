"""
Asset Source
============
Fetches a model by url and parses it into a `ViewerAsset`.

Why is this file needed?
------------------------
1. Fetching: Local paths and file:// urls are read in place; http(s) urls are
   downloaded with `requests` into the model cache (plus the buffers and
   images a .gltf file references).
2. Parsing: trimesh reads the mesh hierarchy of every format, the glTF reader
   adds animation clips, and pyvista wraps the meshes for rendering.
3. Errors: Every failure leaves this module as an `AssetLoadError` carrying
   the url and the underlying cause.

This module performs blocking I/O. It is meant to run on a worker thread
(see `sciencelab.controller.workers`).
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import posixpath
from typing import Any, Optional
from urllib.parse import unquote, urljoin, urlparse

import numpy as np
import pyvista as pv
import requests
import trimesh

from sciencelab import config
from sciencelab.controller.gltf_animation import external_uris, parse_animations, read_gltf_document
from sciencelab.errors import AssetLoadError, UnsupportedFormatError
from sciencelab.model.assets import AssetFormat, AssetNode, ViewerAsset

logger = logging.getLogger(__name__)

_DEFAULT_EXTENSION: dict[AssetFormat, str] = {
    AssetFormat.GLTF: ".glb",
    AssetFormat.OBJ: ".obj",
    AssetFormat.FBX: ".fbx",
}


class AssetSource:
    """
    Url + format -> `ViewerAsset`.

    Args:
        cache_dir: Where downloaded models are stored.
        timeout: Request timeout in seconds.
        max_bytes: Size limit of a single downloaded/opened model file.
        session: Optional `requests.Session` (connection reuse, tests).
    """

    def __init__(
        self,
        cache_dir: str = config.CACHE_DIR,
        timeout: float = config.DOWNLOAD_TIMEOUT_S,
        max_bytes: int = config.MAX_ASSET_BYTES,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.cache_dir = cache_dir
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.session = session or requests.Session()

    def load(self, url: str, fmt: Any) -> ViewerAsset:
        """
        Fetch and parse a model.

        Raises:
            UnsupportedFormatError: If `fmt` is not a supported tag (before any I/O).
            AssetLoadError: On any fetch or parse failure.
        """
        asset_format = AssetFormat.parse(fmt)
        logger.info(f"Loading {asset_format.value} model from: {url}")
        try:
            path = self.fetch(url, asset_format)
            asset = self.parse(path, asset_format, url=url)
        except (AssetLoadError, UnsupportedFormatError):
            raise
        except Exception as e:
            logger.error(f"Failed to load model from {url}: {e}")
            raise AssetLoadError(url, e) from e
        logger.info(
            f"Loaded model '{url}': {len(asset.mesh_nodes())} meshes, {len(asset.clips)} animation clips."
        )
        return asset

    # ------------------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------------------

    def fetch(self, url: str, fmt: AssetFormat) -> str:
        """Return a local path for `url`, downloading it if needed."""
        if not url:
            raise AssetLoadError(url, message="No model URL provided")

        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            return self._download(url, fmt)
        if parsed.scheme == "file":
            path = unquote(parsed.path)
        elif parsed.scheme and len(parsed.scheme) > 1:
            raise AssetLoadError(url, message=f"Unsupported url scheme '{parsed.scheme}'")
        else:
            # Plain path (a one-letter "scheme" is a Windows drive)
            path = url

        if not os.path.isfile(path):
            raise AssetLoadError(url, FileNotFoundError(path))
        size = os.path.getsize(path)
        if size > self.max_bytes:
            raise AssetLoadError(url, message=self._too_large_message(size))
        return path

    def _download(self, url: str, fmt: AssetFormat) -> str:
        target_dir = os.path.join(self.cache_dir, hashlib.sha1(url.encode("utf-8")).hexdigest()[:16])
        os.makedirs(target_dir, exist_ok=True)

        content = self._get(url)
        filename = posixpath.basename(unquote(urlparse(url).path))
        extension = os.path.splitext(filename)[1].lower()
        if fmt is AssetFormat.GLTF:
            # Signed storage urls often hide the extension; sniff the GLB magic
            extension = ".glb" if content[:4] == b"glTF" else ".gltf"
        elif not extension:
            extension = _DEFAULT_EXTENSION[fmt]
        stem = os.path.splitext(filename)[0] or "model"
        path = os.path.join(target_dir, stem + extension)

        with open(path, "wb") as f:
            f.write(content)
        logger.debug(f"Downloaded {len(content)} bytes to {path}")

        if extension == ".gltf":
            self._download_gltf_dependencies(url, path, target_dir)
        return path

    def _download_gltf_dependencies(self, url: str, path: str, target_dir: str) -> None:
        doc = _read_gltf_json(path)
        for uri in external_uris(doc):
            relative = posixpath.normpath(unquote(uri))
            if relative.startswith("..") or posixpath.isabs(relative):
                raise AssetLoadError(url, message=f"Refusing to fetch resource outside the model folder: {uri}")
            local = os.path.join(target_dir, *relative.split("/"))
            os.makedirs(os.path.dirname(local), exist_ok=True)
            with open(local, "wb") as f:
                f.write(self._get(urljoin(url, uri)))

    def _get(self, url: str) -> bytes:
        response = self.session.get(url, timeout=self.timeout, stream=True)
        try:
            response.raise_for_status()
            declared = response.headers.get("Content-Length")
            if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
                raise AssetLoadError(url, message=self._too_large_message(int(declared)))

            chunks: list[bytes] = []
            received = 0
            for chunk in response.iter_content(chunk_size=64 * 1024):
                received += len(chunk)
                if received > self.max_bytes:
                    raise AssetLoadError(url, message=self._too_large_message(received))
                chunks.append(chunk)
            return b"".join(chunks)
        finally:
            response.close()

    def _too_large_message(self, size: int) -> str:
        return f"File is too large ({size / (1024 * 1024):.2f} MB). Maximum size is {self.max_bytes // (1024 * 1024)}MB."

    # ------------------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------------------

    def parse(self, path: str, fmt: AssetFormat, url: Optional[str] = None) -> ViewerAsset:
        """Parse a local model file. The returned asset is centered at the origin."""
        url = url or path
        scene = trimesh.load(path, file_type=_trimesh_file_type(path, fmt), force="scene")
        root = build_node_tree(scene)

        clips = []
        if fmt is AssetFormat.GLTF:
            doc, buffers = read_gltf_document(path)
            names = [node.name for node in root.iter_nodes()]
            clips = parse_animations(doc, buffers, node_names=names)

        asset = ViewerAsset(url=url, format=fmt, root=root, clips=clips)
        if not asset.mesh_nodes():
            raise AssetLoadError(url, message="The model contains no renderable meshes")
        asset.center_at_origin()
        return asset


def _trimesh_file_type(path: str, fmt: AssetFormat) -> str:
    extension = os.path.splitext(path)[1].lower().lstrip(".")
    if extension:
        return extension
    return _DEFAULT_EXTENSION[fmt].lstrip(".")


def _read_gltf_json(path: str) -> dict[str, Any]:
    with open(path, "rb") as f:
        return json.loads(f.read().decode("utf-8"))


def build_node_tree(scene: trimesh.Scene) -> AssetNode:
    """
    Convert a trimesh scene graph into an `AssetNode` hierarchy with pyvista
    geometry on the nodes that reference a mesh.
    """
    root = AssetNode(name=scene.graph.base_frame)
    nodes: dict[str, AssetNode] = {root.name: root}
    edges = scene.graph.to_edgelist()

    def node_for(name: str) -> AssetNode:
        if name not in nodes:
            nodes[name] = AssetNode(name=name)
        return nodes[name]

    for parent_name, child_name, attributes in edges:
        parent = node_for(parent_name)
        child = node_for(child_name)
        child.matrix = np.asarray(attributes.get("matrix", np.eye(4)), dtype=np.float64)
        geometry_name = attributes.get("geometry")
        if geometry_name is not None:
            geometry = scene.geometry.get(geometry_name)
            if isinstance(geometry, trimesh.Trimesh) and len(geometry.faces) > 0:
                child.geometry = pv.wrap(geometry)
            else:
                logger.debug(f"Skipping non-mesh geometry '{geometry_name}'.")
        parent.children.append(child)

    return root
