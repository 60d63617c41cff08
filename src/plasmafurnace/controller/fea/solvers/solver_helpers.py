# solver_helpers.py
from __future__ import annotations

import numpy as np
import numpy.typing as npt
import numba as nb


@nb.njit(cache=True)
def harmonic_mean(a: float, b: float) -> float:
    """Face conductivity between two cells; zero if either side does not conduct."""
    s = a + b
    if s <= 0.0:
        return 0.0
    return 2.0 * a * b / s

@nb.njit(cache=True, parallel=True)
def explicit_enthalpy_update(
    H: npt.NDArray[np.float64],
    T: npt.NDArray[np.float64],
    k: npt.NDArray[np.float64],
    rho: npt.NDArray[np.float64],
    q_net: npt.NDArray[np.float64],
    volumes: npt.NDArray[np.float64],
    radial_face_area: npt.NDArray[np.float64],
    axial_face_area: npt.NDArray[np.float64],
    dr: float,
    dz: float,
    dt: float,
) -> npt.NDArray[np.float64]:
    """
    One explicit Euler step of the enthalpy equation.

    H_new = H + dt / (ρ·V) · (Σ_faces k_f·A_f·(T_nb - T) / d + q_net·V)

    Reads only the current fields and writes a new array, so each cell is
    independent and the loop over radial rows runs in parallel. Faces on the
    domain boundary carry no conductive flux; shell losses arrive through q_net.

    Args:
        H: Specific enthalpy in J/kg, shape (nr, nz).
        T: Temperature in K.
        k: Thermal conductivity in W/(m·K).
        rho: Density in kg/m³.
        q_net: Sources minus boundary losses in W/m³.
        volumes: Cell volumes in m³.
        radial_face_area: Area of the face between (i, j) and (i+1, j), shape (nr-1, nz).
        axial_face_area: Area of the face between (i, j) and (i, j+1), shape (nr, nz-1).
        dr: Radial node spacing in m.
        dz: Axial node spacing in m.
        dt: Time step in s.

    Returns:
        New enthalpy field.
    """
    nr, nz = H.shape
    H_new = np.empty((nr, nz))
    for i in nb.prange(nr):
        for j in range(nz):
            t_c = T[i, j]
            k_c = k[i, j]
            div = 0.0
            if i > 0:
                div += harmonic_mean(k_c, k[i - 1, j]) * radial_face_area[i - 1, j] * (T[i - 1, j] - t_c) / dr
            if i < nr - 1:
                div += harmonic_mean(k_c, k[i + 1, j]) * radial_face_area[i, j] * (T[i + 1, j] - t_c) / dr
            if j > 0:
                div += harmonic_mean(k_c, k[i, j - 1]) * axial_face_area[i, j - 1] * (T[i, j - 1] - t_c) / dz
            if j < nz - 1:
                div += harmonic_mean(k_c, k[i, j + 1]) * axial_face_area[i, j] * (T[i, j + 1] - t_c) / dz
            vol = volumes[i, j]
            H_new[i, j] = H[i, j] + dt / (rho[i, j] * vol) * (div + q_net[i, j] * vol)
    return H_new
