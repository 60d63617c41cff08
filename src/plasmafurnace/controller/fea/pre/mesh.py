"""
Axisymmetric Cylinder Mesh
==========================
Structured (r, z) grid over a cylinder of given radius and height.

Nodes sit on ``linspace(0, radius, nr)`` x ``linspace(0, height, nz)``. Each node
owns the control volume halfway to its neighbours, so the node on the axis owns
a small disc, the outermost radial node a half annulus reaching the wall, and
the first and last axial nodes half an axial step. The control volumes tile the
cylinder exactly.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Optional

import numpy as np

from plasmafurnace.config import MESH_PRESET_RESOLUTION, MeshPreset
from plasmafurnace.errors import InvalidGeometry, ValidationIssue

if TYPE_CHECKING:
    import numpy.typing as npt


class BoundaryType(StrEnum):
    INTERIOR = "interior"
    AXIS = "axis"
    OUTER_WALL = "outer_wall"
    BOTTOM = "bottom"
    TOP = "top"


@dataclass(frozen=True)
class MeshInfo:
    """Summary of a mesh for logging and reports."""
    nr: int
    nz: int
    ntheta: Optional[int]
    n_cells: int
    dr: float
    dz: float
    total_volume: float
    analytic_volume: float

    @property
    def volume_error(self) -> float:
        """Relative difference between the summed cell volumes and pi·R²·H."""
        return abs(self.total_volume - self.analytic_volume) / self.analytic_volume


def _readonly(array: npt.NDArray) -> npt.NDArray:
    array.setflags(write=False)
    return array


class CylindricalMesh:
    """
    2D axisymmetric discretization of a cylindrical furnace.

    Field arrays defined on this mesh have shape ``(nr, nz)``; index ``i`` runs
    along the radius (``i=0`` on the axis) and ``j`` along the height (``j=0`` at
    the bottom).
    """

    def __init__(
        self,
        height: float,
        radius: float,
        nr: int,
        nz: int,
        ntheta: Optional[int] = None,
    ) -> None:
        """
        Build the mesh.

        Args:
            height: Furnace height in m.
            radius: Furnace radius in m.
            nr: Number of radial nodes (>= 2).
            nz: Number of axial nodes (>= 2).
            ntheta: Optional number of angular samples, used only when revolving
                    fields for 3D display.

        Raises:
            InvalidGeometry: If a dimension is not positive or a node count is below 2.
        """
        issues: list[ValidationIssue] = []
        if not (math.isfinite(height) and height > 0):
            issues.append(ValidationIssue("height", height, "a finite value > 0 m"))
        if not (math.isfinite(radius) and radius > 0):
            issues.append(ValidationIssue("radius", radius, "a finite value > 0 m"))
        if int(nr) != nr or nr < 2:
            issues.append(ValidationIssue("nr", nr, "an integer >= 2"))
        if int(nz) != nz or nz < 2:
            issues.append(ValidationIssue("nz", nz, "an integer >= 2"))
        if ntheta is not None and (int(ntheta) != ntheta or ntheta < 1):
            issues.append(ValidationIssue("ntheta", ntheta, "None or an integer >= 1"))
        if issues:
            raise InvalidGeometry.from_issues(issues)

        self.height = float(height)
        self.radius = float(radius)
        self.nr = int(nr)
        self.nz = int(nz)
        self.ntheta = int(ntheta) if ntheta is not None else None

        self.r: npt.NDArray[np.float64] = _readonly(np.linspace(0.0, self.radius, self.nr))
        self.z: npt.NDArray[np.float64] = _readonly(np.linspace(0.0, self.height, self.nz))
        self.dr = self.radius / (self.nr - 1)
        self.dz = self.height / (self.nz - 1)
        self.theta: Optional[npt.NDArray[np.float64]] = None
        if self.ntheta is not None:
            self.theta = _readonly(np.linspace(0.0, 2.0 * np.pi, self.ntheta, endpoint=False))

        self._compute_geometry()

    @classmethod
    def build(
        cls,
        height: float,
        radius: float,
        nr: int,
        nz: int,
        ntheta: Optional[int] = None,
    ) -> CylindricalMesh:
        """Alias of the constructor, reads better at call sites."""
        return cls(height=height, radius=radius, nr=nr, nz=nz, ntheta=ntheta)

    @classmethod
    def from_preset(cls, height: float, radius: float, preset: MeshPreset | str) -> CylindricalMesh:
        """Build a mesh using one of the named resolutions (fast, balanced, high)."""
        try:
            preset = MeshPreset(preset)
        except ValueError:
            raise InvalidGeometry(
                "preset", preset, f"one of {[p.value for p in MeshPreset]}"
            ) from None
        nr, nz = MESH_PRESET_RESOLUTION[preset]
        return cls(height=height, radius=radius, nr=nr, nz=nz)

    def _compute_geometry(self) -> None:
        """Precompute control-volume sizes and face areas."""
        dr, dz = self.dr, self.dz

        # 1. Axial extent of each control volume: half steps at the end caps
        dz_cell = np.full(self.nz, dz)
        dz_cell[0] = dz_cell[-1] = 0.5 * dz

        # 2. Radial extent: disc at the axis, half annulus at the wall
        r_inner = np.maximum(self.r - 0.5 * dr, 0.0)
        r_outer = np.minimum(self.r + 0.5 * dr, self.radius)
        ring_area = np.pi * (r_outer ** 2 - r_inner ** 2)

        # 3. Faces between radial neighbours (i, i+1) at r = r_i + dr/2
        r_face = self.r[:-1] + 0.5 * dr

        self.dz_cell = _readonly(dz_cell)
        self.ring_area = _readonly(ring_area)
        self.volumes = _readonly(np.outer(ring_area, dz_cell))
        self.radial_face_area = _readonly(np.outer(2.0 * np.pi * r_face, dz_cell))
        self.axial_face_area = _readonly(np.repeat(ring_area[:, None], self.nz - 1, axis=1))
        self.outer_wall_area = _readonly(2.0 * np.pi * self.radius * dz_cell)

        rr, zz = np.meshgrid(self.r, self.z, indexing="ij")
        self.rr = _readonly(rr)
        self.zz = _readonly(zz)

    @property
    def shape(self) -> tuple[int, int]:
        return self.nr, self.nz

    @property
    def n_cells(self) -> int:
        return self.nr * self.nz

    @property
    def total_volume(self) -> float:
        return float(self.volumes.sum())

    @property
    def analytic_volume(self) -> float:
        return math.pi * self.radius ** 2 * self.height

    def nearest_node(self, r: float, z: float) -> tuple[int, int]:
        """
        Index of the node closest to the point (r, z).

        Coordinates outside the furnace are clamped to the nearest boundary node.

        Raises:
            ValueError: If r or z is not a finite number.
        """
        if not (math.isfinite(r) and math.isfinite(z)):
            raise ValueError(f"Cannot locate a node for non-finite point (r={r}, z={z}).")
        i = int(round(r / self.dr))
        j = int(round(z / self.dz))
        return min(max(i, 0), self.nr - 1), min(max(j, 0), self.nz - 1)

    def coordinates_of(self, i: int, j: int) -> tuple[float, float]:
        """Physical (r, z) coordinates of node (i, j) in m."""
        self._check_index(i, j)
        return float(self.r[i]), float(self.z[j])

    def index_of(self, r: float, z: float) -> tuple[int, int]:
        """Inverse of ``coordinates_of``; same as ``nearest_node``."""
        return self.nearest_node(r, z)

    def contains(self, r: float, z: float) -> bool:
        """True if the point lies inside the closed furnace volume."""
        return 0.0 <= r <= self.radius and 0.0 <= z <= self.height

    def neighbors(self, i: int, j: int) -> list[tuple[int, int]]:
        """Indices of the (up to four) face neighbours of node (i, j)."""
        self._check_index(i, j)
        out = []
        if i > 0:
            out.append((i - 1, j))
        if i < self.nr - 1:
            out.append((i + 1, j))
        if j > 0:
            out.append((i, j - 1))
        if j < self.nz - 1:
            out.append((i, j + 1))
        return out

    def boundary_type(self, i: int, j: int) -> BoundaryType:
        """
        Classify a node.

        Corners resolve as OUTER_WALL first, then TOP/BOTTOM, then AXIS.
        """
        self._check_index(i, j)
        if i == self.nr - 1:
            return BoundaryType.OUTER_WALL
        if j == self.nz - 1:
            return BoundaryType.TOP
        if j == 0:
            return BoundaryType.BOTTOM
        if i == 0:
            return BoundaryType.AXIS
        return BoundaryType.INTERIOR

    def boundary_mask(self, boundary: BoundaryType) -> npt.NDArray[np.bool_]:
        """Boolean ``(nr, nz)`` mask of all nodes lying on ``boundary`` (corners included)."""
        mask = np.zeros(self.shape, dtype=bool)
        if boundary == BoundaryType.OUTER_WALL:
            mask[-1, :] = True
        elif boundary == BoundaryType.TOP:
            mask[:, -1] = True
        elif boundary == BoundaryType.BOTTOM:
            mask[:, 0] = True
        elif boundary == BoundaryType.AXIS:
            mask[0, :] = True
        else:
            mask[1:-1, 1:-1] = True
        return mask

    def distance_to(self, r: float, z: float) -> npt.NDArray[np.float64]:
        """Distance in the (r, z) half-plane from every node to the point (r, z)."""
        return np.hypot(self.rr - r, self.zz - z)

    def new_field(self, value: float = 0.0) -> npt.NDArray[np.float64]:
        """Allocate a writable field array filled with ``value``."""
        return np.full(self.shape, value, dtype=np.float64)

    def revolve(self, field: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """
        Repeat an axisymmetric field over the angular samples.

        Returns:
            Array of shape (nr, nz, ntheta).
        """
        if self.ntheta is None:
            raise ValueError("Mesh was built without angular samples (ntheta).")
        return np.repeat(np.asarray(field)[:, :, None], self.ntheta, axis=2)

    def info(self) -> MeshInfo:
        return MeshInfo(
            nr=self.nr,
            nz=self.nz,
            ntheta=self.ntheta,
            n_cells=self.n_cells,
            dr=self.dr,
            dz=self.dz,
            total_volume=self.total_volume,
            analytic_volume=self.analytic_volume,
        )

    def _check_index(self, i: int, j: int) -> None:
        if not (0 <= i < self.nr and 0 <= j < self.nz):
            raise IndexError(f"Node index ({i}, {j}) outside mesh of shape {self.shape}.")

    def __repr__(self) -> str:
        return (
            f"CylindricalMesh(height={self.height}, radius={self.radius}, "
            f"nr={self.nr}, nz={self.nz})"
        )
