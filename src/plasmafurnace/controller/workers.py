"""
Simulation Runs & Background Workers
====================================
This module drives the solver through time and collects the result.

Why is this file needed?
------------------------
1. Orchestration: SimulationRun turns a SimulationConfig into a Solver, picks
   the time step, advances step by step and records the field history.
2. Cancellation: runs stop cooperatively at step boundaries, either through
   an external flag or because the progress callback asked for it, and keep
   the partial history.
3. Responsiveness: SimulationWorker runs a SimulationRun on a background
   thread so several independent simulations can proceed at once.

Classes:
    SimulationRun: Runs one simulation to completion (or cancellation).
    SimulationWorker: Thread wrapper around a SimulationRun.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Mapping, Optional

import numpy as np

from plasmafurnace.controller.fea.analysis.heat_source import HeatSourceModel, HeatSourceOverride
from plasmafurnace.controller.fea.analysis.results import SimulationResult, TerminationReason
from plasmafurnace.controller.fea.pre.material import PropertyOverride
from plasmafurnace.controller.fea.pre.mesh import CylindricalMesh
from plasmafurnace.controller.fea.solvers.solver import Solver
from plasmafurnace.errors import SimulationError
from plasmafurnace.model.materials import MaterialLibrary
from plasmafurnace.model.state import ProgressTracker, SimulationConfig, SimulationStatus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], Optional[bool]]


def prepare_simulation(
    config: SimulationConfig,
    library: Optional[MaterialLibrary] = None,
    property_overrides: Optional[Mapping[str, PropertyOverride]] = None,
    source_override: Optional[HeatSourceOverride] = None,
) -> Solver:
    """
    Validate the configuration and build the solver.

    Args:
        config: Simulation configuration.
        library: Material library used to resolve ``config.material``.
        property_overrides: Property name -> ``(T) -> value`` formulas replacing
            the material's built-in curves.
        source_override: ``(r, z, t, params) -> W/m³`` formula replacing the
            built-in torch deposition.

    Raises:
        ConfigurationError: Listing every invalid parameter.
    """
    logger.info(f"Preparing simulation '{config.name}'...")
    config.validate(library)

    # 1. Mesh
    nr, nz = config.mesh.resolution()
    mesh = CylindricalMesh(
        height=config.geometry.height,
        radius=config.geometry.radius,
        nr=nr,
        nz=nz,
        ntheta=config.mesh.ntheta,
    )
    info = mesh.info()
    logger.info(f"Mesh {info.nr}x{info.nz}, dr={info.dr:.4g} m, dz={info.dz:.4g} m, {info.n_cells} cells")

    # 2. Material
    material = config.resolve_material(library)
    if property_overrides:
        material = material.with_overrides(**property_overrides)
    logger.info(
        f"Material '{material.name}', diffusivity {material.thermal_diffusivity():.3g} m²/s"
    )

    # 3. Heat sources & boundary losses
    heat_source = HeatSourceModel(
        mesh=mesh,
        torches=config.torches,
        material=material,
        boundary=config.physics.boundary_losses(),
        source_override=source_override,
    )

    # 4. Solver
    return Solver(
        mesh=mesh,
        material=material,
        heat_source=heat_source,
        initial_temperature=config.physics.initial_temperature,
        ambient_temperature=config.physics.ambient_temperature,
        policy=config.solver.time_step_policy(),
    )


class SimulationRun:
    """
    One simulation from t=0 to ``config.solver.total_time``.

    The run owns its solver and field history; only the ProgressTracker and the
    cancel flag are shared with other threads.
    """

    def __init__(
        self,
        config: SimulationConfig,
        library: Optional[MaterialLibrary] = None,
        cancel_event: Optional[threading.Event] = None,
        tracker: Optional[ProgressTracker] = None,
        property_overrides: Optional[Mapping[str, PropertyOverride]] = None,
        source_override: Optional[HeatSourceOverride] = None,
    ) -> None:
        self.config = config.copy()
        self.library = library
        self.cancel_event = cancel_event or threading.Event()
        self.tracker = tracker or ProgressTracker()
        self.property_overrides = property_overrides
        self.source_override = source_override
        self.solver: Optional[Solver] = None

    def cancel(self) -> None:
        """Ask the run to stop at the next step boundary."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def run(self, progress_callback: Optional[ProgressCallback] = None) -> SimulationResult:
        """
        Execute the time loop.

        Args:
            progress_callback: Called after every step with the completed fraction
                in [0, 1]. Returning False cancels the run.

        Returns:
            The result; on cancellation it holds the steps executed so far.

        Raises:
            ConfigurationError: Before any step, for an invalid configuration.
            NumericalInstability: If a step diverged (carries step and time).
            PropertyEvaluationError: If an injected formula failed (carries step).
        """
        self.tracker.start(f"Preparing '{self.config.name}'")
        wall_start = time.perf_counter()

        try:
            solver = prepare_simulation(
                self.config, self.library, self.property_overrides, self.source_override
            )
        except SimulationError as e:
            logger.error(f"Configuration rejected: {e}")
            self.tracker.fail(str(e))
            raise
        self.solver = solver

        total_time = self.config.solver.total_time
        interval = self.config.solver.history_interval
        stable_dt = solver.stable_time_step()
        dt = solver.policy.choose(stable_dt)
        n_steps = max(1, math.ceil(total_time / dt - 1e-9))
        logger.info(
            f"Running {n_steps} steps of dt={dt:.4g} s (stable {stable_dt:.4g} s) "
            f"for {total_time:.4g} s simulated time"
        )
        if dt > stable_dt:
            logger.warning(f"Time step {dt:.4g} s exceeds the stable time step {stable_dt:.4g} s.")

        times = [0.0]
        frames = [solver.state]
        termination = TerminationReason.COMPLETED

        for step in range(1, n_steps + 1):
            if self.cancelled:
                termination = TerminationReason.CANCELLED
                break

            step_dt = min(dt, total_time - solver.time) if step == n_steps else dt
            try:
                report = solver.advance_one_step(step_dt)
            except SimulationError as e:
                logger.error(f"Run '{self.config.name}' failed at step {step}: {e}")
                self.tracker.fail(str(e))
                raise

            if step % interval == 0 or step == n_steps:
                times.append(report.time)
                frames.append(solver.state)

            progress = step / n_steps
            self.tracker.update(
                progress, step, report.time,
                f"Step {step}/{n_steps}, t={report.time:.4g} s, T_max={report.max_temperature:.1f} K",
            )
            logger.debug(
                f"Progress: {progress:.0%} - Time: {report.time:.3f} s - Step: {step} "
                f"- T_max: {report.max_temperature:.2f} K",
                extra={"step": step},
            )

            if progress_callback is not None and progress_callback(progress) is False:
                termination = TerminationReason.CANCELLED
                break

        if termination == TerminationReason.CANCELLED:
            solver.cancel()
            # Keep the last executed step even when it falls between recorded frames
            if times[-1] != solver.time:
                times.append(solver.time)
                frames.append(solver.state)
            logger.info(f"Run '{self.config.name}' cancelled after {solver.step_count} steps.")
            self.tracker.finish(SimulationStatus.CANCELLED, "Simulation cancelled")
        else:
            solver.complete()
            logger.info(f"Run '{self.config.name}' completed in {time.perf_counter() - wall_start:.2f} s.")
            self.tracker.finish(SimulationStatus.COMPLETED, "Simulation completed")

        return SimulationResult(
            config=self.config.copy(),
            times=np.array(times),
            temperatures=np.stack([f.temperature for f in frames]),
            enthalpies=np.stack([f.enthalpy for f in frames]),
            melt_fractions=np.stack([f.melt_fraction for f in frames]),
            vapor_fractions=np.stack([f.vapor_fraction for f in frames]),
            execution_time=time.perf_counter() - wall_start,
            steps_executed=solver.step_count,
            termination=termination,
            time_step=dt,
            stable_time_step=stable_dt,
            energy=solver.energy.summary(),
        )


class SimulationWorker(threading.Thread):
    """
    Runs a SimulationRun on a background thread.

    After ``join()``, either ``result`` or ``error`` is set.
    """

    def __init__(
        self,
        simulation: SimulationRun,
        on_progress: Optional[Callable[[int, str], None]] = None,
    ) -> None:
        super().__init__(name=f"SimulationWorker-{simulation.config.name}", daemon=True)
        self.simulation = simulation
        self.on_progress = on_progress
        self.result: Optional[SimulationResult] = None
        self.error: Optional[Exception] = None

    def run(self) -> None:
        logger.info("Starting simulation in background thread...")
        try:
            self.result = self.simulation.run(progress_callback=self._progress_callback)
        except Exception as e:
            logger.error(f"Error in SimulationWorker: {e}")
            self.error = e

    def _progress_callback(self, progress: float) -> bool:
        if self.on_progress is not None:
            percentage = int(progress * 100)
            self.on_progress(percentage, f"Simulating... {percentage}% done.")
        return True

    def stop(self) -> None:
        self.simulation.cancel()
