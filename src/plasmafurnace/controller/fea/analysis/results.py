from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import numpy as np

from plasmafurnace.controller.fea.analysis.energy import EnergySummary
from plasmafurnace.controller.fea.analysis.fields import FieldState, TemperatureStatistics

if TYPE_CHECKING:
    import numpy.typing as npt

    from plasmafurnace.model.state import SimulationConfig


class TerminationReason(StrEnum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SimulationResult:
    """
    Time history of a finished (or cancelled) run.

    Field histories have shape (n_frames, nr, nz); frame 0 is the initial state
    at t=0. All arrays are read-only.
    """
    config: SimulationConfig
    times: npt.NDArray[np.float64]
    temperatures: npt.NDArray[np.float64]
    enthalpies: npt.NDArray[np.float64]
    melt_fractions: npt.NDArray[np.float64]
    vapor_fractions: npt.NDArray[np.float64]
    execution_time: float  # wall-clock s
    steps_executed: int
    termination: TerminationReason
    time_step: float
    stable_time_step: float
    energy: EnergySummary

    def __post_init__(self) -> None:
        for array in (self.times, self.temperatures, self.enthalpies, self.melt_fractions, self.vapor_fractions):
            array.setflags(write=False)

    @property
    def n_frames(self) -> int:
        return len(self.times)

    @property
    def final_time(self) -> float:
        return float(self.times[-1])

    @property
    def final_temperature(self) -> npt.NDArray[np.float64]:
        return self.temperatures[-1]

    @property
    def max_temperature(self) -> npt.NDArray[np.float64]:
        """Maximum temperature of every frame."""
        return self.temperatures.max(axis=(1, 2))

    @property
    def min_temperature(self) -> npt.NDArray[np.float64]:
        return self.temperatures.min(axis=(1, 2))

    @property
    def mean_temperature(self) -> npt.NDArray[np.float64]:
        return self.temperatures.mean(axis=(1, 2))

    @property
    def was_cancelled(self) -> bool:
        return self.termination == TerminationReason.CANCELLED

    def frame(self, index: int) -> FieldState:
        """Field state of one recorded frame."""
        return FieldState(
            enthalpy=self.enthalpies[index],
            temperature=self.temperatures[index],
            melt_fraction=self.melt_fractions[index],
            vapor_fraction=self.vapor_fractions[index],
        )

    def statistics(self, index: int = -1) -> TemperatureStatistics:
        return self.frame(index).statistics()

    def summary(self) -> dict[str, float | int | str]:
        """Scalar summary for logs and reports."""
        final = self.statistics()
        return {
            "termination": str(self.termination),
            "steps_executed": self.steps_executed,
            "simulated_time": self.final_time,
            "execution_time": self.execution_time,
            "time_step": self.time_step,
            "max_temperature": final.maximum,
            "min_temperature": final.minimum,
            "mean_temperature": final.mean,
            "max_melt_fraction": float(np.max(self.melt_fractions[-1])),
            "max_vapor_fraction": float(np.max(self.vapor_fractions[-1])),
            "energy_conservation_error": self.energy.conservation_error,
        }
