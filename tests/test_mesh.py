import math

import numpy as np
import pytest

from plasmafurnace.config import MeshPreset
from plasmafurnace.controller.fea.pre.mesh import BoundaryType, CylindricalMesh
from plasmafurnace.errors import ConfigurationError, InvalidGeometry


class TestGeometry:
    @pytest.mark.parametrize("nr, nz", [(2, 2), (11, 21), (40, 80)])
    def test_volumes_tile_the_cylinder(self, nr, nz):
        mesh = CylindricalMesh(height=2.0, radius=1.0, nr=nr, nz=nz)
        assert mesh.total_volume == pytest.approx(math.pi * 2.0, rel=1e-12)
        assert mesh.info().volume_error < 1e-12

    def test_spacing_and_coordinates(self, small_mesh):
        assert small_mesh.dr == pytest.approx(0.05)
        assert small_mesh.dz == pytest.approx(0.05)
        assert small_mesh.shape == (11, 21)
        assert small_mesh.n_cells == 231
        assert small_mesh.r[0] == 0.0
        assert small_mesh.r[-1] == pytest.approx(0.5)
        assert small_mesh.z[-1] == pytest.approx(1.0)

    def test_cell_sizes(self, small_mesh):
        dr, dz = small_mesh.dr, small_mesh.dz
        # Disc on the axis, half axial cell at the bottom
        assert small_mesh.volumes[0, 0] == pytest.approx(math.pi * (dr / 2) ** 2 * dz / 2)
        assert small_mesh.volumes[0, 5] == pytest.approx(math.pi * (dr / 2) ** 2 * dz)
        # Half annulus at the wall
        r_in = small_mesh.radius - dr / 2
        assert small_mesh.volumes[-1, 5] == pytest.approx(math.pi * (small_mesh.radius ** 2 - r_in ** 2) * dz)

    def test_face_areas(self, small_mesh):
        assert small_mesh.radial_face_area.shape == (10, 21)
        assert small_mesh.axial_face_area.shape == (11, 20)
        dr, dz = small_mesh.dr, small_mesh.dz
        assert small_mesh.radial_face_area[0, 3] == pytest.approx(2 * math.pi * (dr / 2) * dz)
        assert small_mesh.outer_wall_area.sum() == pytest.approx(2 * math.pi * 0.5 * 1.0)

    def test_arrays_are_read_only(self, small_mesh):
        with pytest.raises(ValueError):
            small_mesh.volumes[0, 0] = 1.0

    def test_new_field_is_writable(self, small_mesh):
        field = small_mesh.new_field(300.0)
        field[0, 0] = 1.0
        assert field.shape == small_mesh.shape


class TestValidation:
    def test_all_problems_reported(self):
        with pytest.raises(InvalidGeometry) as excinfo:
            CylindricalMesh(height=-1.0, radius=0.0, nr=1, nz=5)
        params = {issue.parameter for issue in excinfo.value.issues}
        assert params == {"height", "radius", "nr"}

    def test_invalid_geometry_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CylindricalMesh(height=float("nan"), radius=1.0, nr=5, nz=5)

    def test_unknown_preset(self):
        with pytest.raises(InvalidGeometry):
            CylindricalMesh.from_preset(2.0, 1.0, "ultra")


class TestPresets:
    @pytest.mark.parametrize("preset, expected", [
        (MeshPreset.FAST, (50, 50)),
        ("balanced", (100, 100)),
        ("high", (200, 200)),
    ])
    def test_resolution(self, preset, expected):
        mesh = CylindricalMesh.from_preset(2.0, 1.0, preset)
        assert mesh.shape == expected


class TestLookup:
    def test_nearest_node(self, small_mesh):
        assert small_mesh.nearest_node(0.0, 0.5) == (0, 10)
        assert small_mesh.nearest_node(0.26, 0.74) == (5, 15)

    def test_nearest_node_clamps(self, small_mesh):
        assert small_mesh.nearest_node(-1.0, 5.0) == (0, 20)
        assert small_mesh.nearest_node(3.0, -2.0) == (10, 0)

    @pytest.mark.parametrize("r, z", [(math.nan, 0.5), (0.2, math.inf), (-math.inf, math.nan)])
    def test_nearest_node_rejects_non_finite(self, small_mesh, r, z):
        with pytest.raises(ValueError, match="non-finite"):
            small_mesh.nearest_node(r, z)

    def test_distance_to(self, small_mesh):
        distance = small_mesh.distance_to(0.0, 0.5)
        assert distance[0, 10] == 0.0
        assert distance[3, 14] == pytest.approx(math.hypot(0.15, 0.2))

    def test_coordinates_round_trip(self, small_mesh):
        r, z = small_mesh.coordinates_of(4, 7)
        assert small_mesh.index_of(r, z) == (4, 7)

    def test_coordinates_out_of_range(self, small_mesh):
        with pytest.raises(IndexError):
            small_mesh.coordinates_of(11, 0)

    def test_contains(self, small_mesh):
        assert small_mesh.contains(0.5, 1.0)
        assert not small_mesh.contains(0.51, 0.5)

    def test_neighbors(self, small_mesh):
        assert sorted(small_mesh.neighbors(0, 0)) == [(0, 1), (1, 0)]
        assert len(small_mesh.neighbors(5, 5)) == 4
        assert len(small_mesh.neighbors(10, 7)) == 3


class TestBoundaries:
    def test_boundary_types(self, small_mesh):
        assert small_mesh.boundary_type(5, 5) == BoundaryType.INTERIOR
        assert small_mesh.boundary_type(0, 5) == BoundaryType.AXIS
        assert small_mesh.boundary_type(10, 5) == BoundaryType.OUTER_WALL
        assert small_mesh.boundary_type(5, 0) == BoundaryType.BOTTOM
        assert small_mesh.boundary_type(5, 20) == BoundaryType.TOP

    def test_corners(self, small_mesh):
        assert small_mesh.boundary_type(10, 20) == BoundaryType.OUTER_WALL
        assert small_mesh.boundary_type(0, 0) == BoundaryType.BOTTOM

    def test_masks(self, small_mesh):
        assert small_mesh.boundary_mask(BoundaryType.OUTER_WALL).sum() == 21
        assert small_mesh.boundary_mask(BoundaryType.TOP).sum() == 11
        assert small_mesh.boundary_mask(BoundaryType.INTERIOR).sum() == 9 * 19


class TestRevolve:
    def test_revolve(self):
        mesh = CylindricalMesh(height=1.0, radius=0.5, nr=3, nz=4, ntheta=8)
        field = mesh.new_field(1.0)
        assert mesh.revolve(field).shape == (3, 4, 8)
        np.testing.assert_allclose(mesh.theta[1], 2 * np.pi / 8)

    def test_revolve_needs_ntheta(self, small_mesh):
        with pytest.raises(ValueError):
            small_mesh.revolve(small_mesh.new_field())
