from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from enum import StrEnum
from typing import Any, Callable, Optional

from plasmafurnace.config import (
    DEFAULT_GAS_TEMPERATURE,
    DEFAULT_PLASMA_TEMPERATURE,
    DEFAULT_TORCH_CONVECTION_COEFFICIENT,
    TORCH_POWER_RANGE_KW,
    TORCH_SIGMA_RANGE_M,
)
from plasmafurnace.errors import ValidationIssue, raise_for_issues
from plasmafurnace.utils import is_finite_number, kilowatts_to_watts


class TorchModel(StrEnum):
    """How a torch deposits its power into the charge."""
    GAUSSIAN = "gaussian"
    VIEW_FACTOR = "view_factor"


@dataclass(frozen=True)
class Torch:
    """
    Plasma torch descriptor.

    Attributes:
        id: Unique name of the torch.
        r: Radial position in m.
        z: Axial position in m.
        power_kw: Electrical power in kW.
        efficiency: Fraction of the power delivered to the charge, in (0, 1].
        sigma: Spatial spread of the deposited power in m.
        orientation: Direction (dr, dz) of the torch axis in the r-z plane; None
            for an isotropic torch.
        gas_flow_rate: Plasma gas mass flow in kg/s; scales the convective term.
        model: Deposition model, Gaussian or view-factor weighted.
        plasma_temperature: Radiating temperature of the arc in K (view-factor model).
        gas_temperature: Temperature of the plasma gas in K (view-factor model).
        convection_coefficient: Gas-to-charge heat transfer coefficient in W/(m²·K).
    """
    id: str
    r: float
    z: float
    power_kw: float
    efficiency: float
    sigma: float
    orientation: Optional[tuple[float, float]] = None
    gas_flow_rate: Optional[float] = None
    model: TorchModel = TorchModel.GAUSSIAN
    plasma_temperature: float = DEFAULT_PLASMA_TEMPERATURE
    gas_temperature: float = DEFAULT_GAS_TEMPERATURE
    convection_coefficient: float = DEFAULT_TORCH_CONVECTION_COEFFICIENT

    def __post_init__(self) -> None:
        if self.orientation is not None:
            # JSON gives a list; anything else is reported by validation_issues()
            if isinstance(self.orientation, list):
                object.__setattr__(self, "orientation", tuple(self.orientation))
        if not isinstance(self.model, TorchModel):
            try:
                object.__setattr__(self, "model", TorchModel(self.model))
            except ValueError:
                pass  # reported by validation_issues()

    @property
    def power_w(self) -> float:
        return kilowatts_to_watts(self.power_kw)

    @property
    def delivered_power(self) -> float:
        """Power reaching the charge, P·η, in W."""
        return self.power_w * self.efficiency

    @property
    def unit_orientation(self) -> Optional[tuple[float, float]]:
        if self.orientation is None:
            return None
        dr, dz = self.orientation
        norm = math.hypot(dr, dz)
        return dr / norm, dz / norm

    def validation_issues(
        self,
        height: Optional[float] = None,
        radius: Optional[float] = None,
    ) -> list[ValidationIssue]:
        """
        Check the torch against its invariants and, if given, the furnace bounds.

        Returns:
            All violations found; empty if the torch is valid.
        """
        prefix = f"torches[{self.id}]"
        issues: list[ValidationIssue] = []
        p_min, p_max = TORCH_POWER_RANGE_KW
        s_min, s_max = TORCH_SIGMA_RANGE_M

        def check(attr: str, in_range: Callable[[float], bool], expected: str) -> None:
            value = getattr(self, attr)
            if not is_finite_number(value) or not in_range(value):
                issues.append(ValidationIssue(f"{prefix}.{attr}", value, expected))

        if not (isinstance(self.id, str) and self.id.strip()):
            issues.append(ValidationIssue(f"{prefix}.id", self.id, "a non-empty id"))
        check("power_kw", lambda v: p_min <= v <= p_max, f"{p_min} to {p_max} kW")
        check("efficiency", lambda v: 0.0 < v <= 1.0, "a value in (0, 1]")
        check("sigma", lambda v: s_min <= v <= s_max, f"{s_min} to {s_max} m")
        if radius is not None:
            check("r", lambda v: 0.0 <= v <= radius, f"0 to {radius} m (inside the furnace)")
        else:
            check("r", lambda v: v >= 0.0, "a finite value >= 0 m")
        if height is not None:
            check("z", lambda v: 0.0 <= v <= height, f"0 to {height} m (inside the furnace)")
        else:
            check("z", lambda v: v >= 0.0, "a finite value >= 0 m")
        if self.orientation is not None and not (
            isinstance(self.orientation, tuple)
            and len(self.orientation) == 2
            and all(is_finite_number(c) for c in self.orientation)
            and math.hypot(*self.orientation) > 0
        ):
            issues.append(ValidationIssue(f"{prefix}.orientation", self.orientation, "a non-zero (dr, dz) vector"))
        if self.gas_flow_rate is not None:
            check("gas_flow_rate", lambda v: v >= 0.0, "None or >= 0 kg/s")
        if not isinstance(self.model, TorchModel):
            issues.append(ValidationIssue(f"{prefix}.model", self.model, f"one of {[m.value for m in TorchModel]}"))
        check("plasma_temperature", lambda v: v > 0.0, "a finite value > 0 K")
        check("gas_temperature", lambda v: v > 0.0, "a finite value > 0 K")
        check("convection_coefficient", lambda v: v >= 0.0, "a finite value >= 0 W/(m²·K)")
        return issues

    def validate(self, height: Optional[float] = None, radius: Optional[float] = None) -> None:
        """Raise ConfigurationError if the torch is invalid. Values are never clamped."""
        raise_for_issues(self.validation_issues(height, radius))

    def as_params(self) -> dict[str, Any]:
        """Parameters handed to heat-source override formulas."""
        params = self.to_dict()
        params["power_w"] = self.power_w
        params["delivered_power"] = self.delivered_power
        return params

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["model"] = str(self.model)
        data["orientation"] = list(self.orientation) if self.orientation is not None else None
        return data

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Torch:
        data = dict(data)
        if data.get("orientation") is not None:
            data["orientation"] = tuple(data["orientation"])
        return Torch(**data)
