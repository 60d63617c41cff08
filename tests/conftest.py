import pytest

from plasmafurnace.controller.fea.analysis.heat_source import BoundaryLosses, HeatSourceModel
from plasmafurnace.controller.fea.pre.mesh import CylindricalMesh
from plasmafurnace.controller.fea.pre.torch import Torch
from plasmafurnace.model.materials import MaterialLibrary
from plasmafurnace.model.state import (
    GeometryConfig,
    MeshConfig,
    SimulationConfig,
    SolverConfig,
)


@pytest.fixture
def library():
    return MaterialLibrary()


@pytest.fixture
def steel(library):
    return library.get_material("Carbon Steel")


@pytest.fixture
def small_mesh():
    # Square cells, dr = dz = 0.05 m
    return CylindricalMesh(height=1.0, radius=0.5, nr=11, nz=21)


@pytest.fixture
def axis_torch():
    return Torch(id="T1", r=0.0, z=0.5, power_kw=100.0, efficiency=0.8, sigma=0.1)


@pytest.fixture
def heat_source(small_mesh, axis_torch, steel):
    return HeatSourceModel(small_mesh, [axis_torch], steel, boundary=BoundaryLosses())


@pytest.fixture
def small_config():
    return SimulationConfig(
        name="small",
        geometry=GeometryConfig(height=1.0, radius=0.5),
        mesh=MeshConfig(nr=11, nz=21),
        torches=[Torch(id="T1", r=0.0, z=0.5, power_kw=100.0, efficiency=0.8, sigma=0.1)],
        solver=SolverConfig(total_time=20.0),
    )
