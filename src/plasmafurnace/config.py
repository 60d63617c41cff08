"""
Configuration & Global Constants
================================
This module centralizes physical constants and default values.

Why is this file needed?
------------------------
1. Single source of truth: the solver, the material model and the configuration
   validation all read the same limits, so a changed range is changed everywhere.
2. Physics: constants come from scipy.constants rather than literals sprinkled
   through the numerical code.
"""
from enum import StrEnum

from scipy.constants import Stefan_Boltzmann

# --- PHYSICAL CONSTANTS ---
STEFAN_BOLTZMANN: float = Stefan_Boltzmann  # W/(m²·K⁴)

# Enthalpy is zero at this temperature (K)
ENTHALPY_REFERENCE_TEMPERATURE: float = 298.15

# Temperature at which α = k/(ρ·cp) is evaluated for the stability bound (K)
DIFFUSIVITY_REFERENCE_TEMPERATURE: float = 500.0

# Half-width of the smoothed latent-heat pulse in the apparent heat capacity (K)
PHASE_SMOOTHING_WIDTH: float = 5.0

# --- TIME STEPPING ---
MIN_TIME_STEP: float = 1e-8  # s
MAX_TIME_STEP: float = 10.0  # s
DEFAULT_CFL_FACTOR: float = 0.3
DEFAULT_SAFETY_FACTOR: float = 0.5
# The axis control volume has stencil weight α·(4/dr² + 2/dz²) <= 6α/min(dr, dz)²,
# so cfl·min(dr, dz)²/(2α) keeps every explicit update coefficient positive up to 1/3
MAX_CFL_FACTOR: float = 1.0 / 3.0

# Relative energy-balance error above which a run logs a warning
ENERGY_WARNING_THRESHOLD: float = 0.10

# --- TORCH LIMITS ---
TORCH_POWER_RANGE_KW: tuple[float, float] = (1.0, 1000.0)
TORCH_SIGMA_RANGE_M: tuple[float, float] = (0.01, 1.0)
DEFAULT_PLASMA_TEMPERATURE: float = 10000.0  # K
DEFAULT_GAS_TEMPERATURE: float = 5000.0  # K
DEFAULT_TORCH_CONVECTION_COEFFICIENT: float = 100.0  # W/(m²·K)
REFERENCE_GAS_FLOW_RATE: float = 0.01  # kg/s

# --- BOUNDARY LOSSES ---
DEFAULT_AMBIENT_TEMPERATURE: float = 300.0  # K
DEFAULT_WALL_CONVECTION_COEFFICIENT: float = 10.0  # W/(m²·K)


class MeshPreset(StrEnum):
    FAST = "fast"
    BALANCED = "balanced"
    HIGH = "high"


MESH_PRESET_RESOLUTION: dict[MeshPreset, tuple[int, int]] = {
    MeshPreset.FAST: (50, 50),
    MeshPreset.BALANCED: (100, 100),
    MeshPreset.HIGH: (200, 200),
}
