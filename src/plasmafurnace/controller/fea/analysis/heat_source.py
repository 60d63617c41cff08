"""
Torch Heat Sources & Boundary Losses
====================================
Builds the volumetric heat-generation field (W/m³) on the furnace mesh.

Why is this file needed?
------------------------
1. Superposition: every torch contributes independently per cell and the
   contributions are summed; there is no torch-torch interaction term.
2. Deposition models: a Gaussian torch spreads P·η over the charge with a
   normal profile; a view-factor torch couples radiatively and convectively
   to cells it can "see".
3. Losses: the furnace shell exchanges heat with the surroundings by
   convection and radiation through its outer wall (and optionally its end caps).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

import numpy as np

from plasmafurnace.config import (
    DEFAULT_AMBIENT_TEMPERATURE,
    DEFAULT_WALL_CONVECTION_COEFFICIENT,
    REFERENCE_GAS_FLOW_RATE,
    STEFAN_BOLTZMANN,
)
from plasmafurnace.controller.fea.pre.torch import Torch, TorchModel
from plasmafurnace.errors import PropertyEvaluationError, ValidationIssue, raise_for_issues
from plasmafurnace.utils import is_finite_number, is_number

if TYPE_CHECKING:
    import numpy.typing as npt

    from plasmafurnace.controller.fea.pre.material import Material
    from plasmafurnace.controller.fea.pre.mesh import CylindricalMesh

logger = logging.getLogger(__name__)

HeatSourceOverride = Callable[[float, float, float, Mapping[str, Any]], float]


@dataclass(frozen=True)
class BoundaryLosses:
    """
    Convective and radiative exchange of the furnace shell with ambient.

    Surfaces without losses are insulated (zero flux).
    """
    ambient_temperature: float = DEFAULT_AMBIENT_TEMPERATURE
    convection_coefficient: float = DEFAULT_WALL_CONVECTION_COEFFICIENT
    emissivity: Optional[float] = None  # None uses the material's emissivity
    outer_wall: bool = True
    top: bool = False
    bottom: bool = False

    def validation_issues(self) -> list[ValidationIssue]:
        issues = []
        if not (is_finite_number(self.ambient_temperature) and self.ambient_temperature > 0):
            issues.append(ValidationIssue("ambient_temperature", self.ambient_temperature, "a finite value > 0 K"))
        if not (is_finite_number(self.convection_coefficient) and self.convection_coefficient >= 0):
            issues.append(ValidationIssue(
                "wall_convection_coefficient", self.convection_coefficient, "a finite value >= 0 W/(m²·K)"
            ))
        if self.emissivity is not None and not (is_number(self.emissivity) and 0.0 <= self.emissivity <= 1.0):
            issues.append(ValidationIssue("wall_emissivity", self.emissivity, "None or a value in [0, 1]"))
        flags = (
            ("outer_wall_losses", self.outer_wall),
            ("top_losses", self.top),
            ("bottom_losses", self.bottom),
        )
        for name, flag in flags:
            if not isinstance(flag, bool):
                issues.append(ValidationIssue(name, flag, "true or false"))
        return issues

    def exposure(self, mesh: CylindricalMesh) -> npt.NDArray[np.float64]:
        """Exposed surface area per unit cell volume (1/m); zero for interior cells."""
        area = np.zeros(mesh.shape)
        if self.outer_wall:
            area[-1, :] += mesh.outer_wall_area
        if self.top:
            area[:, -1] += mesh.ring_area
        if self.bottom:
            area[:, 0] += mesh.ring_area
        return area / mesh.volumes

    def flux(self, temperature: npt.NDArray[np.float64], emissivity: float) -> npt.NDArray[np.float64]:
        """Outward heat flux in W/m² for a surface at ``temperature``."""
        t_amb = self.ambient_temperature
        return (
            self.convection_coefficient * (temperature - t_amb)
            + emissivity * STEFAN_BOLTZMANN * (temperature ** 4 - t_amb ** 4)
        )


class HeatSourceModel:
    """
    Volumetric heat sources from plasma torches plus boundary losses.

    Args:
        mesh: Furnace mesh.
        torches: Torch descriptors; validated against the furnace bounds.
        material: Charge material (emissivity for radiative coupling).
        boundary: Boundary-loss settings; None makes the whole shell insulated.
        source_override: Optional pure function ``(r, z, t, params) -> W/m³`` that
            replaces the built-in deposition of every torch. ``params`` is the
            torch's ``as_params()`` dictionary.

    Raises:
        ConfigurationError: If a torch is invalid, outside the furnace or ids repeat.
    """

    def __init__(
        self,
        mesh: CylindricalMesh,
        torches: Sequence[Torch],
        material: Material,
        boundary: Optional[BoundaryLosses] = None,
        source_override: Optional[HeatSourceOverride] = None,
    ) -> None:
        self.mesh = mesh
        self.torches = tuple(torches)
        self.material = material
        self.boundary = boundary
        self.source_override = source_override

        issues: list[ValidationIssue] = []
        if not self.torches:
            issues.append(ValidationIssue("torches", [], "at least one torch"))
        seen: set[str] = set()
        for torch in self.torches:
            issues.extend(torch.validation_issues(height=mesh.height, radius=mesh.radius))
            if torch.id in seen:
                issues.append(ValidationIssue("torches.id", torch.id, "unique torch ids"))
            seen.add(torch.id)
        if boundary is not None:
            issues.extend(boundary.validation_issues())
        raise_for_issues(issues)

        # Temperature independent parts, computed once per mesh
        self._view_factors = {torch.id: self.view_factor(torch) for torch in self.torches}
        self._gaussian_fields = {
            torch.id: self._gaussian_field(torch)
            for torch in self.torches if torch.model == TorchModel.GAUSSIAN
        }
        self._exposure = boundary.exposure(mesh) if boundary is not None else None
        self._loss_emissivity = (
            boundary.emissivity if boundary is not None and boundary.emissivity is not None
            else material.emissivity
        )

        logger.debug(
            f"Heat source model: {len(self.torches)} torch(es), "
            f"total delivered power {self.delivered_power / 1000.0:.1f} kW"
        )

    @property
    def delivered_power(self) -> float:
        """Sum of P·η over all torches in W."""
        return sum(torch.delivered_power for torch in self.torches)

    def view_factor(self, torch: Torch) -> npt.NDArray[np.float64]:
        """
        Geometric coupling between a torch and every cell, in [0, 1].

        Falls off with distance as exp(-d²/(2σ²)); an oriented torch is further
        weighted by the cosine between its axis and the direction to the cell,
        and cells behind it get zero.
        """
        mesh = self.mesh
        dist_r = mesh.rr - torch.r
        dist_z = mesh.zz - torch.z
        distance = mesh.distance_to(torch.r, torch.z)
        factor = np.exp(-distance ** 2 / (2.0 * torch.sigma ** 2))

        orientation = torch.unit_orientation
        if orientation is not None:
            with np.errstate(invalid="ignore", divide="ignore"):
                cosine = (dist_r * orientation[0] + dist_z * orientation[1]) / distance
            # The cell holding the torch sees it head-on
            cosine = np.where(distance > 0.0, cosine, 1.0)
            factor = factor * np.clip(cosine, 0.0, 1.0)
        return factor

    def _gaussian_field(self, torch: Torch) -> npt.NDArray[np.float64]:
        # Normalized on the mesh so that sum(q·V) == P·η exactly
        weights = self._view_factors[torch.id]
        norm = float(np.sum(weights * self.mesh.volumes))
        if norm <= 0.0:
            logger.warning(f"Torch '{torch.id}' does not reach any cell; it contributes no heat.")
            field = np.zeros(self.mesh.shape)
        else:
            field = torch.delivered_power * weights / norm
        field.setflags(write=False)
        return field

    def _view_factor_field(self, torch: Torch, temperature: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        vf = self._view_factors[torch.id]
        scale = 1.0
        if torch.gas_flow_rate is not None:
            scale = torch.gas_flow_rate / REFERENCE_GAS_FLOW_RATE

        flux = vf * (
            self.material.emissivity * STEFAN_BOLTZMANN * (torch.plasma_temperature ** 4 - temperature ** 4)
            + torch.convection_coefficient * (torch.gas_temperature - temperature) * scale
        )
        # Flux absorbed within a layer of thickness sigma
        q = flux / torch.sigma

        # A torch cannot deliver more than P·η
        delivered = float(np.sum(np.maximum(q, 0.0) * self.mesh.volumes))
        if delivered > torch.delivered_power:
            q = q * (torch.delivered_power / delivered)
        return q

    def _override_field(self, torch: Torch, time: float) -> npt.NDArray[np.float64]:
        function = self.source_override
        label = getattr(function, "__name__", repr(function))
        params = torch.as_params()
        out = np.empty(self.mesh.shape)
        for (i, j), r in np.ndenumerate(self.mesh.rr):
            z = float(self.mesh.zz[i, j])
            try:
                value = float(function(float(r), z, time, params))
            except Exception as e:
                raise PropertyEvaluationError(
                    f"heat_source[{torch.id}]", label, reason=f"at r={r:.4g} m, z={z:.4g} m: {e}"
                ) from e
            if not math.isfinite(value):
                raise PropertyEvaluationError(
                    f"heat_source[{torch.id}]", label,
                    reason=f"non-finite result {value} at r={r:.4g} m, z={z:.4g} m",
                )
            out[i, j] = value
        return out

    def torch_field(
        self,
        torch: Torch,
        temperature: npt.NDArray[np.float64],
        time: float = 0.0,
    ) -> npt.NDArray[np.float64]:
        """Volumetric power (W/m³) deposited by a single torch."""
        if self.source_override is not None:
            return self._override_field(torch, time)
        if torch.model == TorchModel.GAUSSIAN:
            return self._gaussian_fields[torch.id]
        return self._view_factor_field(torch, temperature)

    def source_field(
        self,
        temperature: npt.NDArray[np.float64],
        time: float = 0.0,
    ) -> npt.NDArray[np.float64]:
        """
        Superposed volumetric power of all torches.

        Args:
            temperature: Current temperature field in K, shape (nr, nz).
            time: Simulated time in s (passed to override formulas).

        Returns:
            Heat generation in W/m³, shape (nr, nz).
        """
        total = np.zeros(self.mesh.shape)
        for torch in self.torches:
            total += self.torch_field(torch, temperature, time)
        return total

    def loss_field(self, temperature: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Volumetric boundary loss in W/m³ (positive when heat leaves the furnace)."""
        if self._exposure is None:
            return np.zeros(self.mesh.shape)
        return self.boundary.flux(temperature, self._loss_emissivity) * self._exposure

    def integrate(self, field: npt.NDArray[np.float64]) -> float:
        """Total power in W of a volumetric field."""
        return float(np.sum(field * self.mesh.volumes))
