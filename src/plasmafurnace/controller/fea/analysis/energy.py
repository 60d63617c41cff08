from __future__ import annotations

import logging
from dataclasses import dataclass

from plasmafurnace.config import ENERGY_WARNING_THRESHOLD

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergySummary:
    """Energy balance of a run, all values in J."""
    initial_energy: float
    final_energy: float
    energy_input: float
    energy_loss: float
    conservation_error: float

    @property
    def stored_energy_change(self) -> float:
        return self.final_energy - self.initial_energy


class EnergyMonitor:
    """
    Tracks the energy balance of a run.

    Stored energy is sum(ρ·V·H) over all cells. Without numerical error its change
    equals the energy delivered by the torches minus the boundary losses.
    """

    def __init__(self, initial_energy: float) -> None:
        self.initial_energy = initial_energy
        self.current_energy = initial_energy
        self.energy_input = 0.0
        self.energy_loss = 0.0
        self._warned = False

    def record_step(self, stored_energy: float, energy_input: float, energy_loss: float) -> None:
        """
        Args:
            stored_energy: Stored energy after the step.
            energy_input: Energy added by sources during the step.
            energy_loss: Energy lost through the boundaries during the step.
        """
        self.current_energy = stored_energy
        self.energy_input += energy_input
        self.energy_loss += energy_loss

        error = self.conservation_error
        if error > ENERGY_WARNING_THRESHOLD and not self._warned:
            logger.warning(
                f"Energy balance drifted by {error:.1%} "
                f"(stored change {self.current_energy - self.initial_energy:.4g} J, "
                f"input {self.energy_input:.4g} J, loss {self.energy_loss:.4g} J)."
            )
            self._warned = True

    @property
    def conservation_error(self) -> float:
        """Relative mismatch between the stored energy change and input minus losses."""
        change = self.current_energy - self.initial_energy
        mismatch = abs(change - (self.energy_input - self.energy_loss))
        scale = max(abs(self.energy_input) + abs(self.energy_loss), abs(change), 1.0)
        return mismatch / scale

    def summary(self) -> EnergySummary:
        return EnergySummary(
            initial_energy=self.initial_energy,
            final_energy=self.current_energy,
            energy_input=self.energy_input,
            energy_loss=self.energy_loss,
            conservation_error=self.conservation_error,
        )
