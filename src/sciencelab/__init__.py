"""Interactive 3D science experiments: a damped pendulum and a model viewer."""

__version__ = "0.1.0"
