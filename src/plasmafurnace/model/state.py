"""
Simulation State (Data Model)
=============================
This module defines the configuration record of a simulation and the shared
progress object of a running one.

Why is this file needed?
------------------------
1. Configuration: SimulationConfig gathers geometry, mesh resolution, torches,
   material selection, physics and time stepping in one JSON-compatible record.
2. Validation: every field is checked before any stepping begins and all
   problems are reported together.
3. Observation: ProgressTracker is the only object shared between the thread
   running a simulation and the threads watching it.

Classes:
    SimulationConfig: The configuration container.
    ProgressTracker: Lock-protected run status.
"""
from __future__ import annotations

import copy
import json
import logging
import threading
import time
from dataclasses import dataclass, field, asdict
from enum import StrEnum
from typing import Any, Dict, List, Optional

from plasmafurnace.config import (
    DEFAULT_AMBIENT_TEMPERATURE,
    DEFAULT_CFL_FACTOR,
    DEFAULT_SAFETY_FACTOR,
    DEFAULT_WALL_CONVECTION_COEFFICIENT,
    MESH_PRESET_RESOLUTION,
    MeshPreset,
)
from plasmafurnace.controller.fea.analysis.heat_source import BoundaryLosses
from plasmafurnace.controller.fea.pre.material import Material
from plasmafurnace.controller.fea.pre.torch import Torch
from plasmafurnace.controller.fea.solvers.solver import TimeStepPolicy
from plasmafurnace.errors import ConfigurationError, ValidationIssue, raise_for_issues
from plasmafurnace.model.materials import MaterialLibrary, MaterialRecord
from plasmafurnace.utils import is_finite_number

logger = logging.getLogger(__name__)


@dataclass
class GeometryConfig:
    height: float = 2.0  # m
    radius: float = 1.0  # m


@dataclass
class MeshConfig:
    nr: int = 50
    nz: int = 50
    ntheta: Optional[int] = None
    preset: Optional[MeshPreset] = None

    def resolution(self) -> tuple[int, int]:
        """(nr, nz), taken from the preset when one is set."""
        if self.preset is not None:
            return MESH_PRESET_RESOLUTION[MeshPreset(self.preset)]
        return self.nr, self.nz


@dataclass
class PhysicsConfig:
    initial_temperature: float = DEFAULT_AMBIENT_TEMPERATURE  # K
    ambient_temperature: float = DEFAULT_AMBIENT_TEMPERATURE  # K
    wall_convection_coefficient: float = DEFAULT_WALL_CONVECTION_COEFFICIENT  # W/(m²·K)
    wall_emissivity: Optional[float] = None
    outer_wall_losses: bool = True
    top_losses: bool = False
    bottom_losses: bool = False

    def boundary_losses(self) -> BoundaryLosses:
        return BoundaryLosses(
            ambient_temperature=self.ambient_temperature,
            convection_coefficient=self.wall_convection_coefficient,
            emissivity=self.wall_emissivity,
            outer_wall=self.outer_wall_losses,
            top=self.top_losses,
            bottom=self.bottom_losses,
        )


@dataclass
class SolverConfig:
    total_time: float = 60.0  # s
    cfl_factor: float = DEFAULT_CFL_FACTOR
    safety_factor: float = DEFAULT_SAFETY_FACTOR
    time_step: Optional[float] = None  # s, fixed step instead of the CFL-derived one
    max_time_step: Optional[float] = None  # s
    history_interval: int = 1  # record every n-th step

    def time_step_policy(self) -> TimeStepPolicy:
        return TimeStepPolicy(
            cfl_factor=self.cfl_factor,
            safety_factor=self.safety_factor,
            time_step=self.time_step,
            max_time_step=self.max_time_step,
        )


@dataclass
class SimulationConfig:
    """
    Everything needed to run one furnace simulation.

    The material is either a library name (``material``) or a full record
    (``custom_material``), which takes precedence.
    """
    name: str = "Simulation"
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    mesh: MeshConfig = field(default_factory=MeshConfig)
    torches: List[Torch] = field(default_factory=list)
    material: str = "Carbon Steel"
    custom_material: Optional[MaterialRecord] = None
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)

    # --- Validation ---
    def validation_issues(self, library: Optional[MaterialLibrary] = None) -> List[ValidationIssue]:
        """Collect every configuration problem; empty if the config is runnable."""
        issues: List[ValidationIssue] = []
        geo, mesh, phys, solv = self.geometry, self.mesh, self.physics, self.solver

        for name, value in (("geometry.height", geo.height), ("geometry.radius", geo.radius)):
            if not (is_finite_number(value) and value > 0):
                issues.append(ValidationIssue(name, value, "a finite value > 0 m"))

        if mesh.preset is not None:
            try:
                MeshPreset(mesh.preset)
            except ValueError:
                issues.append(ValidationIssue(
                    "mesh.preset", mesh.preset, f"None or one of {[p.value for p in MeshPreset]}"
                ))
        else:
            for name, value in (("mesh.nr", mesh.nr), ("mesh.nz", mesh.nz)):
                if not (isinstance(value, int) and value >= 2):
                    issues.append(ValidationIssue(name, value, "an integer >= 2"))
        if mesh.ntheta is not None and not (isinstance(mesh.ntheta, int) and mesh.ntheta >= 1):
            issues.append(ValidationIssue("mesh.ntheta", mesh.ntheta, "None or an integer >= 1"))

        if not self.torches:
            issues.append(ValidationIssue("torches", self.torches, "at least one torch"))
        ids = [str(torch.id) for torch in self.torches]
        # Furnace bounds are only checked against a usable geometry
        height = geo.height if is_finite_number(geo.height) and geo.height > 0 else None
        radius = geo.radius if is_finite_number(geo.radius) and geo.radius > 0 else None
        for torch in self.torches:
            issues.extend(torch.validation_issues(height=height, radius=radius))
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            issues.append(ValidationIssue("torches.id", duplicates, "unique torch ids"))

        if self.custom_material is not None:
            try:
                self.custom_material.to_material()
            except ConfigurationError as e:
                issues.extend(
                    ValidationIssue(f"custom_material.{issue.parameter}", issue.value, issue.expected)
                    for issue in e.issues
                )
        else:
            library = library or MaterialLibrary()
            if not isinstance(self.material, str) or self.material not in library.materials:
                issues.append(ValidationIssue("material", self.material, f"one of {library.get_names()}"))

        if not (is_finite_number(phys.initial_temperature) and phys.initial_temperature > 0):
            issues.append(ValidationIssue(
                "physics.initial_temperature", phys.initial_temperature, "a finite value > 0 K"
            ))
        for issue in phys.boundary_losses().validation_issues():
            issues.append(ValidationIssue(f"physics.{issue.parameter}", issue.value, issue.expected))

        if not (is_finite_number(solv.total_time) and solv.total_time > 0):
            issues.append(ValidationIssue("solver.total_time", solv.total_time, "a finite value > 0 s"))
        if not (isinstance(solv.history_interval, int) and solv.history_interval >= 1):
            issues.append(ValidationIssue("solver.history_interval", solv.history_interval, "an integer >= 1"))
        for issue in solv.time_step_policy().validation_issues():
            issues.append(ValidationIssue(f"solver.{issue.parameter}", issue.value, issue.expected))

        return issues

    def validate(self, library: Optional[MaterialLibrary] = None) -> None:
        """Raise a ConfigurationError listing every problem, if there are any."""
        raise_for_issues(self.validation_issues(library))

    def resolve_material(self, library: Optional[MaterialLibrary] = None) -> Material:
        if self.custom_material is not None:
            return self.custom_material.to_material()
        return (library or MaterialLibrary()).get_material(self.material)

    # --- Serialization ---
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "geometry": asdict(self.geometry),
            "mesh": {
                **asdict(self.mesh),
                "preset": str(self.mesh.preset) if self.mesh.preset is not None else None,
            },
            "torches": [torch.to_dict() for torch in self.torches],
            "material": self.material,
            "custom_material": self.custom_material.to_dict() if self.custom_material else None,
            "physics": asdict(self.physics),
            "solver": asdict(self.solver),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> SimulationConfig:
        mesh_data = dict(data.get("mesh", {}))
        if mesh_data.get("preset") is not None:
            try:
                mesh_data["preset"] = MeshPreset(mesh_data["preset"])
            except ValueError:
                raise ConfigurationError(
                    "mesh.preset", mesh_data["preset"], f"one of {[p.value for p in MeshPreset]}"
                ) from None
        try:
            custom = data.get("custom_material")
            return SimulationConfig(
                name=data.get("name", "Simulation"),
                geometry=GeometryConfig(**data.get("geometry", {})),
                mesh=MeshConfig(**mesh_data),
                torches=[Torch.from_dict(t) for t in data.get("torches", [])],
                material=data.get("material", "Carbon Steel"),
                custom_material=MaterialRecord.from_dict(custom) if custom else None,
                physics=PhysicsConfig(**data.get("physics", {})),
                solver=SolverConfig(**data.get("solver", {})),
            )
        except TypeError as e:
            # Unknown or missing keyword in one of the sections
            raise ConfigurationError("config", sorted(data), f"known configuration keys ({e})") from e

    @staticmethod
    def load_json(filepath: str) -> SimulationConfig:
        logger.info(f"Loading configuration from: {filepath}")
        with open(filepath, "r", encoding="utf-8") as f:
            return SimulationConfig.from_dict(json.load(f))

    def save_json(self, filepath: str) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to: {filepath}")

    def copy(self) -> SimulationConfig:
        return copy.deepcopy(self)


# ==========================================
# PROGRESS
# ==========================================
class SimulationStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressSnapshot:
    status: SimulationStatus
    progress: float  # 0..1
    step: int
    simulated_time: float
    message: str
    error: Optional[str]
    elapsed: float  # wall-clock s since start


class ProgressTracker:
    """
    Thread-safe status of one run.

    The simulation thread writes through ``start``/``update``/``finish``/``fail``;
    observers read consistent copies with ``snapshot``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = SimulationStatus.IDLE
        self._progress = 0.0
        self._step = 0
        self._time = 0.0
        self._message = ""
        self._error: Optional[str] = None
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None

    def start(self, message: str = "Simulation started") -> None:
        with self._lock:
            self._status = SimulationStatus.RUNNING
            self._progress = 0.0
            self._step = 0
            self._time = 0.0
            self._message = message
            self._error = None
            self._started_at = time.perf_counter()
            self._finished_at = None

    def update(self, progress: float, step: int, simulated_time: float, message: str = "") -> None:
        with self._lock:
            self._progress = min(max(progress, 0.0), 1.0)
            self._step = step
            self._time = simulated_time
            self._message = message

    def finish(self, status: SimulationStatus, message: str = "") -> None:
        with self._lock:
            self._status = status
            if status == SimulationStatus.COMPLETED:
                self._progress = 1.0
            self._message = message
            self._finished_at = time.perf_counter()

    def fail(self, error: str) -> None:
        with self._lock:
            self._status = SimulationStatus.FAILED
            self._error = error
            self._message = "Simulation failed"
            self._finished_at = time.perf_counter()

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            if self._started_at is None:
                elapsed = 0.0
            else:
                end = self._finished_at if self._finished_at is not None else time.perf_counter()
                elapsed = end - self._started_at
            return ProgressSnapshot(
                status=self._status,
                progress=self._progress,
                step=self._step,
                simulated_time=self._time,
                message=self._message,
                error=self._error,
                elapsed=elapsed,
            )

    @property
    def status(self) -> SimulationStatus:
        with self._lock:
            return self._status

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress
