from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


ABSOLUTE_ZERO_CELSIUS = -273.15

def kelvin_to_celsius(kelvin: float) -> float:
    """Convert Kelvin to Celsius."""
    return kelvin + ABSOLUTE_ZERO_CELSIUS

def kilowatts_to_watts(kilowatts: float) -> float:
    """Convert kW to W."""
    return kilowatts * 1000.0

def is_number(value: object) -> bool:
    """True for int and float values (bool excluded), as read from JSON."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def is_finite_number(value: object) -> bool:
    return is_number(value) and math.isfinite(value)

def field_statistics(field: npt.NDArray[np.float64]) -> tuple[float, float, float]:
    """Return (max, min, mean) of a field as plain floats."""
    return float(np.max(field)), float(np.min(field)), float(np.mean(field))

def first_non_finite(field: npt.NDArray[np.float64]) -> tuple[int, ...] | None:
    """
    Locate the first NaN/inf entry of an array.

    Returns:
        Index tuple of the first non-finite value, or None if all values are finite.
    """
    bad = np.argwhere(~np.isfinite(field))
    if bad.size == 0:
        return None
    return tuple(int(i) for i in bad[0])
