from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from plasmafurnace.utils import field_statistics

if TYPE_CHECKING:
    import numpy.typing as npt

    from plasmafurnace.controller.fea.pre.material import Material


@dataclass(frozen=True)
class TemperatureStatistics:
    maximum: float
    minimum: float
    mean: float


@dataclass(frozen=True)
class FieldState:
    """
    Enthalpy and the quantities derived from it, one value per mesh cell.

    The solver never writes into a FieldState it has handed out; every step
    produces a new one.
    """
    enthalpy: npt.NDArray[np.float64]
    temperature: npt.NDArray[np.float64]
    melt_fraction: npt.NDArray[np.float64]
    vapor_fraction: npt.NDArray[np.float64]

    def __post_init__(self) -> None:
        for array in (self.enthalpy, self.temperature, self.melt_fraction, self.vapor_fraction):
            array.setflags(write=False)

    @classmethod
    def from_enthalpy(cls, enthalpy: npt.NDArray[np.float64], material: Material) -> FieldState:
        """Derive temperature and phase fractions from an enthalpy field."""
        temperature, melt_fraction, vapor_fraction = material.temperature_from_enthalpy(enthalpy)
        return cls(
            enthalpy=enthalpy,
            temperature=temperature,
            melt_fraction=melt_fraction,
            vapor_fraction=vapor_fraction,
        )

    @classmethod
    def uniform(cls, shape: tuple[int, int], temperature: float, material: Material) -> FieldState:
        """Equilibrium state at a uniform temperature."""
        enthalpy = np.full(shape, material.ladder.equilibrium_enthalpy(temperature))
        return cls.from_enthalpy(enthalpy, material)

    @property
    def shape(self) -> tuple[int, int]:
        return self.enthalpy.shape

    def statistics(self) -> TemperatureStatistics:
        return TemperatureStatistics(*field_statistics(self.temperature))
