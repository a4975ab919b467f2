import math


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def radians_to_degrees(radians: float) -> float:
    """Convert radians to degrees."""
    return radians * 180.0 / math.pi


def slider_to_value(position: int, bounds: tuple[float, float, float]) -> float:
    """Map an integer slider position to a value in (min, max, step) bounds."""
    lower, upper, step = bounds
    return clamp(lower + position * step, lower, upper)


def value_to_slider(value: float, bounds: tuple[float, float, float]) -> int:
    """Map a value to the nearest integer slider position in (min, max, step) bounds."""
    lower, upper, step = bounds
    return int(round((clamp(value, lower, upper) - lower) / step))


def slider_steps(bounds: tuple[float, float, float]) -> int:
    """Number of integer slider positions above zero for (min, max, step) bounds."""
    lower, upper, step = bounds
    return int(math.floor((upper - lower) / step + 1e-9))
