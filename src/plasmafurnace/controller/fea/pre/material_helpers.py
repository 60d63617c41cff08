# material_helpers.py
from __future__ import annotations

import threading

import numpy as np
import numpy.typing as npt
import numba as nb

# Held around every parallel kernel launch. Numba's default workqueue threading
# layer aborts when two threads enter parallel regions at the same time.
kernel_lock = threading.Lock()

# Region codes shared with PhaseRegion
SOLID = 0
MELTING = 1
LIQUID = 2
VAPORIZING = 3
GAS = 4

# ---- JIT'd property kernels ----

@nb.njit(cache=True, fastmath=True)
def polyval_shifted(T: float, coefficients: npt.NDArray[np.float64], t_ref: float) -> float:
    """Evaluate sum(c_n * (T - t_ref)^n) with Horner's scheme."""
    x = T - t_ref
    acc = 0.0
    for n in range(coefficients.size - 1, -1, -1):
        acc = acc * x + coefficients[n]
    return acc

@nb.njit(cache=True, fastmath=True)
def polyval_shifted_batch(
    T: npt.NDArray[np.float64],
    coefficients: npt.NDArray[np.float64],
    t_ref: float,
    t_min: float,
    t_max: float,
) -> npt.NDArray[np.float64]:
    """
    Batched polynomial property over a flat array.
    Outside [t_min, t_max] the constant term is used.
    """
    out = np.empty(T.size)
    c0 = coefficients[0]
    for i in range(T.size):
        t = T[i]
        if t < t_min or t > t_max:
            out[i] = c0
        else:
            out[i] = polyval_shifted(t, coefficients, t_ref)
    return out

# ---- Enthalpy ladder kernels (scalar + batched) ----
# fastmath is off here: the solver relies on NaN/inf surviving to its finiteness check.

@nb.njit(cache=True)
def state_from_enthalpy(
    h: float,
    t_ref: float,
    cp_s: float,
    cp_l: float,
    cp_g: float,
    t_m: float,
    l_f: float,
    t_v: float,
    l_v: float,
    has_melt: bool,
    has_vap: bool,
) -> tuple[float, float, float, int]:
    """
    Invert the enthalpy ladder for one value.

    Returns:
        (temperature, melt fraction, vapor fraction, region code)
    """
    if not has_melt:
        return t_ref + h / cp_s, 0.0, 0.0, SOLID

    h_solidus = cp_s * (t_m - t_ref)
    h_liquidus = h_solidus + l_f
    if h < h_solidus:
        return t_ref + h / cp_s, 0.0, 0.0, SOLID
    if h < h_liquidus:
        return t_m, (h - h_solidus) / l_f, 0.0, MELTING
    if not has_vap:
        return t_m + (h - h_liquidus) / cp_l, 1.0, 0.0, LIQUID

    h_boil = h_liquidus + cp_l * (t_v - t_m)
    h_gas = h_boil + l_v
    if h < h_boil:
        return t_m + (h - h_liquidus) / cp_l, 1.0, 0.0, LIQUID
    if h < h_gas:
        return t_v, 1.0, (h - h_boil) / l_v, VAPORIZING
    return t_v + (h - h_gas) / cp_g, 1.0, 1.0, GAS

@nb.njit(cache=True, parallel=True)
def state_from_enthalpy_batch(
    H: npt.NDArray[np.float64],
    t_ref: float,
    cp_s: float,
    cp_l: float,
    cp_g: float,
    t_m: float,
    l_f: float,
    t_v: float,
    l_v: float,
    has_melt: bool,
    has_vap: bool,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Invert the ladder for a flat enthalpy array, one independent cell per iteration."""
    n = H.size
    T = np.empty(n)
    mf = np.empty(n)
    vf = np.empty(n)
    for k in nb.prange(n):
        t, m, v, _ = state_from_enthalpy(
            H[k], t_ref, cp_s, cp_l, cp_g, t_m, l_f, t_v, l_v, has_melt, has_vap
        )
        T[k] = t
        mf[k] = m
        vf[k] = v
    return T, mf, vf

@nb.njit(cache=True)
def enthalpy_from_state(
    T: float,
    melt_fraction: float,
    vapor_fraction: float,
    t_ref: float,
    cp_s: float,
    cp_l: float,
    cp_g: float,
    t_m: float,
    l_f: float,
    t_v: float,
    l_v: float,
    has_melt: bool,
    has_vap: bool,
) -> float:
    """Sensible heat of each branch plus the latent heat already absorbed."""
    if not has_melt:
        return cp_s * (T - t_ref)
    h = cp_s * (min(T, t_m) - t_ref) + melt_fraction * l_f
    if not has_vap:
        return h + cp_l * (max(T, t_m) - t_m)
    h += cp_l * (min(max(T, t_m), t_v) - t_m)
    h += vapor_fraction * l_v
    h += cp_g * (max(T, t_v) - t_v)
    return h

@nb.njit(cache=True, parallel=True)
def enthalpy_from_state_batch(
    T: npt.NDArray[np.float64],
    melt_fraction: npt.NDArray[np.float64],
    vapor_fraction: npt.NDArray[np.float64],
    t_ref: float,
    cp_s: float,
    cp_l: float,
    cp_g: float,
    t_m: float,
    l_f: float,
    t_v: float,
    l_v: float,
    has_melt: bool,
    has_vap: bool,
) -> npt.NDArray[np.float64]:
    n = T.size
    H = np.empty(n)
    for k in nb.prange(n):
        H[k] = enthalpy_from_state(
            T[k], melt_fraction[k], vapor_fraction[k],
            t_ref, cp_s, cp_l, cp_g, t_m, l_f, t_v, l_v, has_melt, has_vap
        )
    return H
