"""
Asset Viewer
============
Loads external models into a SceneHost and exposes playback and camera
controls.

Loads are asynchronous and "last request wins": each `load()` takes a new
sequence token, and a completion whose token is no longer the latest one is
discarded. Failures never clear the currently shown asset; they are reported
through the `error` field and the change callback.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Callable, Optional

from sciencelab.controller.asset_source import AssetSource
from sciencelab.controller.scene_host import SceneHost
from sciencelab.errors import AssetLoadError
from sciencelab.model.assets import AssetFormat, ViewerAsset
from sciencelab.model.scene import SceneObject

logger = logging.getLogger(__name__)

LoadCallback = Callable[[Optional[ViewerAsset], Optional[BaseException]], None]

MODEL_COLOR = "#b8c4d6"


class LoadExecutor(ABC):
    """Runs a blocking load job and reports its outcome on the GUI thread."""

    @abstractmethod
    def submit(self, job: Callable[[], ViewerAsset], on_done: LoadCallback) -> None:
        ...

    def shutdown(self) -> None:
        """Stop accepting work. Pending results may still arrive and are ignored by the viewer."""


class SynchronousExecutor(LoadExecutor):
    """Runs the job inline; for scripts and head-less use."""

    def submit(self, job: Callable[[], ViewerAsset], on_done: LoadCallback) -> None:
        try:
            asset = job()
        except Exception as e:
            on_done(None, e)
            return
        on_done(asset, None)


class AssetViewer:
    """
    Model viewer attached to one SceneHost.

    Observable state (polled by the view or pushed through `on_change`):
        asset: Currently attached asset, or None.
        is_loading: True while the latest request is pending.
        error: AssetLoadError of the latest failed request, or None.
    """

    def __init__(
        self,
        host: SceneHost,
        source: Optional[AssetSource] = None,
        executor: Optional[LoadExecutor] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.host = host
        self.source = source or AssetSource()
        self.executor = executor or SynchronousExecutor()
        self.on_change = on_change

        self.asset: Optional[ViewerAsset] = None
        self.is_loading: bool = False
        self.error: Optional[AssetLoadError] = None
        self.url: Optional[str] = None
        self.format: Optional[AssetFormat] = None

        self._request_seq: int = 0
        self._objects: dict[str, SceneObject] = {}
        self._disposed: bool = False

        host.attach(self)

    # ------------------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------------------

    @property
    def request_token(self) -> int:
        return self._request_seq

    def load(self, url: str, fmt: Any = AssetFormat.GLTF) -> int:
        """
        Start loading `url`. Any pending request is superseded.

        Returns:
            The sequence token of this request.

        Raises:
            UnsupportedFormatError: Before any I/O, if `fmt` is not supported.
        """
        asset_format = AssetFormat.parse(fmt)
        if self._disposed:
            logger.warning("Ignoring load() on a disposed viewer.")
            return self._request_seq

        self._request_seq += 1
        token = self._request_seq
        self.url = url
        self.format = asset_format
        self.is_loading = True
        self.error = None
        self._notify()

        logger.info(f"Requesting model #{token}: {url} ({asset_format.value})")
        job = partial(self.source.load, url, asset_format)
        self.executor.submit(job, partial(self._on_load_finished, token, url))
        return token

    def _on_load_finished(
        self,
        token: int,
        url: str,
        asset: Optional[ViewerAsset],
        error: Optional[BaseException],
    ) -> None:
        if self._disposed or token != self._request_seq:
            logger.debug(f"Discarding stale model result #{token} ({url}).")
            if asset is not None:
                asset.dispose()
            return

        self.is_loading = False
        if error is not None or asset is None:
            if not isinstance(error, AssetLoadError):
                error = AssetLoadError(url, error)
            logger.error(f"Model #{token} failed: {error}")
            self.error = error
            self._notify()
            return

        try:
            self._swap_asset(token, asset)
        except Exception as e:
            logger.error(f"Model #{token} could not be attached: {e}")
            asset.dispose()
            self.error = AssetLoadError(url, e)
        self._notify()

    def _swap_asset(self, token: int, asset: ViewerAsset) -> None:
        """
        Attach every mesh of `asset`, then drop the previous asset.

        If the backend fails part way, the objects added so far are removed
        and the previous asset stays shown.
        """
        # Object names carry the request token so new meshes never replace
        # shown meshes that share a node name.
        added: dict[str, SceneObject] = {}
        worlds = asset.world_matrices()
        try:
            for node in asset.mesh_nodes():
                obj = SceneObject(
                    name=f"asset{token}:{node.name}",
                    dataset=node.geometry,
                    color=MODEL_COLOR,
                    smooth_shading=True,
                    user_matrix=worlds[node.name],
                )
                self.host.add_object(obj)
                added[node.name] = obj
        except Exception:
            for obj in added.values():
                self.host.remove_object(obj.name)
            raise

        self._detach_current()
        self._objects = added
        self.asset = asset
        logger.info(f"Attached model '{asset.url}' (animations: {asset.has_animations}).")

    def _detach_current(self) -> None:
        for obj in self._objects.values():
            self.host.remove_object(obj.name)
        self._objects = {}
        if self.asset is not None:
            self.asset.dispose()
            self.asset = None

    def scene_object(self, node_name: str) -> Optional[SceneObject]:
        """Scene object showing mesh node `node_name` of the current asset."""
        return self._objects.get(node_name)

    # ------------------------------------------------------------------------------
    # Per-frame
    # ------------------------------------------------------------------------------

    def update(self, elapsed_seconds: float) -> None:
        """Frame-updater hook: advance animations and move the animated meshes."""
        asset = self.asset
        if asset is None or not asset.has_animations or self.host.context is None:
            return
        worlds = asset.animate(elapsed_seconds)
        for node_name, matrix in worlds.items():
            obj = self._objects.get(node_name)
            if obj is None:
                continue
            obj.user_matrix = matrix
            self.host.update_object(obj)

    # ------------------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------------------

    @property
    def has_animations(self) -> bool:
        return self.asset is not None and self.asset.has_animations

    @property
    def playing(self) -> bool:
        return self.asset is not None and self.asset.playing

    def toggle_playback(self) -> bool:
        """
        Flip animation playback. A no-op for assets without animations.

        Returns:
            The playing state after the call.
        """
        if not self.has_animations:
            return False
        self.asset.set_playing(not self.asset.playing)
        logger.debug(f"Animation playing: {self.asset.playing}")
        self._notify()
        return self.asset.playing

    def reset_view(self) -> None:
        self.host.reset_camera()

    def zoom(self, delta: float) -> None:
        self.host.zoom(delta)

    def toggle_fullscreen(self) -> bool:
        return self.host.toggle_fullscreen()

    # ------------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------------

    def dispose(self) -> None:
        """Detach the asset; results of loads still in flight will be discarded."""
        if self._disposed:
            return
        self._disposed = True
        self._request_seq += 1
        self.is_loading = False
        self.executor.shutdown()
        self._detach_current()
        self.host.detach(self)
        logger.info("Asset viewer disposed.")

    def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change()
        except Exception:
            logger.exception("Viewer change callback failed.")
