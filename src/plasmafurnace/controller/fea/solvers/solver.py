from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Optional

import numpy as np

from plasmafurnace.config import (
    DEFAULT_CFL_FACTOR,
    DEFAULT_SAFETY_FACTOR,
    DIFFUSIVITY_REFERENCE_TEMPERATURE,
    MAX_CFL_FACTOR,
    MAX_TIME_STEP,
    MIN_TIME_STEP,
)
from plasmafurnace.controller.fea.analysis.energy import EnergyMonitor
from plasmafurnace.controller.fea.analysis.fields import FieldState
from plasmafurnace.controller.fea.pre.material_helpers import kernel_lock
from plasmafurnace.controller.fea.solvers.solver_helpers import explicit_enthalpy_update
from plasmafurnace.errors import (
    ConfigurationError,
    NumericalInstability,
    PropertyEvaluationError,
    SolverStateError,
    ValidationIssue,
    raise_for_issues,
)
from plasmafurnace.utils import first_non_finite, is_finite_number, is_number

if TYPE_CHECKING:
    import numpy.typing as npt

    from plasmafurnace.controller.fea.analysis.heat_source import HeatSourceModel
    from plasmafurnace.controller.fea.pre.material import Material
    from plasmafurnace.controller.fea.pre.mesh import CylindricalMesh

logger = logging.getLogger(__name__)


class SolverStatus(StrEnum):
    UNINITIALIZED = "uninitialized"
    STEPPING = "stepping"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SolverStatus.COMPLETED, SolverStatus.FAILED, SolverStatus.CANCELLED})


@dataclass(frozen=True)
class TimeStepPolicy:
    """
    How the run picks its time step.

    Attributes:
        cfl_factor: Fraction of min(dr, dz)²/(2α) used as the stable time step, in (0, 1/3].
        safety_factor: Fraction of the stable time step actually used, in (0, 1].
        time_step: Fixed time step in s; overrides the CFL-derived value.
        max_time_step: Upper cap on the chosen time step in s.
    """
    cfl_factor: float = DEFAULT_CFL_FACTOR
    safety_factor: float = DEFAULT_SAFETY_FACTOR
    time_step: Optional[float] = None
    max_time_step: Optional[float] = None

    def validation_issues(self) -> list[ValidationIssue]:
        issues = []
        if not (is_number(self.cfl_factor) and 0.0 < self.cfl_factor <= MAX_CFL_FACTOR):
            issues.append(ValidationIssue("cfl_factor", self.cfl_factor, f"a value in (0, {MAX_CFL_FACTOR:.4g}]"))
        if not (is_number(self.safety_factor) and 0.0 < self.safety_factor <= 1.0):
            issues.append(ValidationIssue("safety_factor", self.safety_factor, "a value in (0, 1]"))
        if self.time_step is not None and not (is_finite_number(self.time_step) and self.time_step > 0):
            issues.append(ValidationIssue("time_step", self.time_step, "None or a finite value > 0 s"))
        if self.max_time_step is not None and not (is_number(self.max_time_step) and self.max_time_step > 0):
            issues.append(ValidationIssue("max_time_step", self.max_time_step, "None or > 0 s"))
        return issues

    def choose(self, stable_time_step: float) -> float:
        """Time step to use given the solver's stable time step."""
        dt = self.time_step if self.time_step is not None else self.safety_factor * stable_time_step
        if self.max_time_step is not None:
            dt = min(dt, self.max_time_step)
        return dt


@dataclass(frozen=True)
class StepReport:
    """What happened during one time step."""
    step: int
    time: float
    dt: float
    source_power: float  # W
    loss_power: float  # W
    max_temperature: float  # K


class Solver:
    """
    Explicit enthalpy-method solver for the axisymmetric furnace.

    State machine: UNINITIALIZED -> STEPPING -> COMPLETED | FAILED | CANCELLED.
    """

    def __init__(
        self,
        mesh: CylindricalMesh,
        material: Material,
        heat_source: HeatSourceModel,
        initial_temperature: float,
        ambient_temperature: Optional[float] = None,
        policy: TimeStepPolicy = TimeStepPolicy(),
        reference_temperature: float = DIFFUSIVITY_REFERENCE_TEMPERATURE,
    ) -> None:
        """
        Initialize the solver with a uniform initial temperature field.

        Args:
            mesh: Furnace mesh.
            material: Charge material.
            heat_source: Torch and boundary-loss model built on the same mesh.
            initial_temperature: Uniform initial temperature in K.
            ambient_temperature: Surroundings temperature in K; defaults to the
                heat source's boundary setting, else the initial temperature.
            policy: Time-step policy.
            reference_temperature: Temperature at which α is evaluated for the
                stability bound.

        Raises:
            ConfigurationError: If any input is invalid.
        """
        issues: list[ValidationIssue] = []
        if not (is_finite_number(initial_temperature) and initial_temperature > 0):
            issues.append(ValidationIssue("initial_temperature", initial_temperature, "a finite value > 0 K"))
        if ambient_temperature is not None and not (
            is_finite_number(ambient_temperature) and ambient_temperature > 0
        ):
            issues.append(ValidationIssue("ambient_temperature", ambient_temperature, "a finite value > 0 K"))
        if heat_source.mesh is not mesh:
            issues.append(ValidationIssue("heat_source.mesh", heat_source.mesh, "the solver's mesh"))
        if not (is_finite_number(reference_temperature) and reference_temperature > 0):
            issues.append(ValidationIssue("reference_temperature", reference_temperature, "> 0 K"))
        issues.extend(policy.validation_issues())
        raise_for_issues(issues)

        self.mesh = mesh
        self.material = material
        self.heat_source = heat_source
        self.policy = policy
        self.initial_temperature = float(initial_temperature)
        if ambient_temperature is None:
            boundary = heat_source.boundary
            ambient_temperature = boundary.ambient_temperature if boundary is not None else initial_temperature
        self.ambient_temperature = float(ambient_temperature)
        self.reference_temperature = float(reference_temperature)

        self.status = SolverStatus.UNINITIALIZED
        self.time = 0.0
        self.step_count = 0
        self.state = FieldState.uniform(mesh.shape, self.initial_temperature, material)
        self.energy = EnergyMonitor(self.stored_energy(self.state))

    # --- Field access ---
    @property
    def temperature(self) -> npt.NDArray[np.float64]:
        return self.state.temperature

    @property
    def enthalpy(self) -> npt.NDArray[np.float64]:
        return self.state.enthalpy

    @property
    def melt_fraction(self) -> npt.NDArray[np.float64]:
        return self.state.melt_fraction

    @property
    def vapor_fraction(self) -> npt.NDArray[np.float64]:
        return self.state.vapor_fraction

    def stored_energy(self, state: FieldState) -> float:
        """Total enthalpy content sum(ρ·V·H) in J."""
        rho = self.material.density(state.temperature)
        return float(np.sum(rho * self.mesh.volumes * state.enthalpy))

    # --- Stability ---
    def stable_time_step(self) -> float:
        """
        Explicit stability bound dt = cfl · min(dr, dz)² / (2α).

        α = k/(ρ·cp) is evaluated at the reference temperature. The result is
        clamped to [MIN_TIME_STEP, MAX_TIME_STEP].
        """
        alpha = self.material.thermal_diffusivity(self.reference_temperature)
        h_min = min(self.mesh.dr, self.mesh.dz)
        if alpha <= 0.0:
            return MAX_TIME_STEP
        dt = self.policy.cfl_factor * h_min ** 2 / (2.0 * alpha)
        return min(max(dt, MIN_TIME_STEP), MAX_TIME_STEP)

    # --- Stepping ---
    def advance_one_step(self, dt: float) -> StepReport:
        """
        Advance the enthalpy field by ``dt`` seconds.

        Args:
            dt: Time step in s.

        Returns:
            Report of the completed step.

        Raises:
            SolverStateError: If the solver already reached a terminal state.
            ConfigurationError: If ``dt`` is not a positive finite number.
            NumericalInstability: If the step produced non-finite temperatures.
            PropertyEvaluationError: If an injected formula failed.
        """
        if self.status in TERMINAL_STATES:
            raise SolverStateError(f"Cannot advance a solver in state '{self.status}'.")
        if not (is_finite_number(dt) and dt > 0.0):
            raise ConfigurationError("dt", dt, "a finite value > 0 s")

        self.status = SolverStatus.STEPPING
        step = self.step_count + 1
        mesh = self.mesh
        T = self.state.temperature

        # 1. Properties and sources from the current (not updated) temperature
        try:
            with np.errstate(over="ignore", invalid="ignore"):
                k = np.ascontiguousarray(self.material.thermal_conductivity(T))
                rho = np.ascontiguousarray(self.material.density(T))
                q_source = self.heat_source.source_field(T, self.time)
                q_loss = self.heat_source.loss_field(T)
        except PropertyEvaluationError as e:
            self.status = SolverStatus.FAILED
            logger.error(f"Step {step} failed: {e}")
            raise e.with_step(step) from e

        # 2-3. Conductive flux divergence and explicit enthalpy update into a new buffer
        with kernel_lock:
            H_new = explicit_enthalpy_update(
                self.state.enthalpy,
                T,
                k,
                rho,
                np.ascontiguousarray(q_source - q_loss),
                mesh.volumes,
                mesh.radial_face_area,
                mesh.axial_face_area,
                mesh.dr,
                mesh.dz,
                dt,
            )

        # 4. Temperature and phase fractions from the new enthalpy
        new_state = FieldState.from_enthalpy(H_new, self.material)
        bad_cell = first_non_finite(new_state.temperature)
        if bad_cell is not None:
            self.status = SolverStatus.FAILED
            error = NumericalInstability(
                step=step,
                time=self.time + dt,
                dt=dt,
                stable_time_step=self.stable_time_step(),
                cell=bad_cell,
                value=float(new_state.temperature[bad_cell]),
            )
            logger.error(str(error))
            raise error

        # 5. Energy bookkeeping; density is evaluated at the new temperatures
        try:
            stored_energy = self.stored_energy(new_state)
        except PropertyEvaluationError as e:
            self.status = SolverStatus.FAILED
            logger.error(f"Step {step} failed: {e}")
            raise e.with_step(step) from e
        source_power = self.heat_source.integrate(q_source)
        loss_power = self.heat_source.integrate(q_loss)

        # Swap buffers
        self.state = new_state
        self.time += dt
        self.step_count = step
        self.energy.record_step(
            stored_energy=stored_energy,
            energy_input=source_power * dt,
            energy_loss=loss_power * dt,
        )

        return StepReport(
            step=step,
            time=self.time,
            dt=dt,
            source_power=source_power,
            loss_power=loss_power,
            max_temperature=float(np.max(new_state.temperature)),
        )

    # --- Terminal transitions ---
    def _finish(self, status: SolverStatus) -> None:
        if self.status in TERMINAL_STATES:
            raise SolverStateError(f"Solver already finished in state '{self.status}'.")
        self.status = status

    def complete(self) -> None:
        self._finish(SolverStatus.COMPLETED)

    def cancel(self) -> None:
        self._finish(SolverStatus.CANCELLED)
