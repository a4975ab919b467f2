"""
Error Taxonomy
==============
Exceptions raised by the scene host, the pendulum engine and the asset viewer.

Classes:
    ScienceLabError: Base class for every error raised by this package.
    SetupError: Display surface unavailable when a scene is initialized.
    InvalidParameterError: Simulation parameter outside its valid domain.
    UnsupportedFormatError: Asset format tag outside the supported set.
    AssetLoadError: Network or parse failure while loading an asset.
"""
from __future__ import annotations

from typing import Optional


class ScienceLabError(Exception):
    """Base class for all package errors."""


class SetupError(ScienceLabError):
    pass


class InvalidParameterError(ScienceLabError):
    def __init__(self, name: str, value: float, reason: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for '{name}': {value!r} ({reason}).")


class UnsupportedFormatError(ScienceLabError):
    def __init__(self, fmt: object) -> None:
        self.format = fmt
        super().__init__(f"Unsupported model type: {fmt}")


class AssetLoadError(ScienceLabError):
    """
    Raised (or reported through the viewer's error channel) when an asset
    cannot be fetched or parsed.

    Attributes:
        url: The url of the failed request.
        cause: The underlying exception, if any.
    """

    def __init__(self, url: str, cause: Optional[BaseException] = None, message: Optional[str] = None) -> None:
        self.url = url
        self.cause = cause
        if message is None:
            message = str(cause) if cause is not None else "unknown error"
        super().__init__(f"Error loading model: {message}")
