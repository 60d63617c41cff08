"""
Plasma Furnace Heat Transfer
============================
Transient heat-transfer simulation of a cylindrical plasma furnace using the
enthalpy method on an axisymmetric (r, z) grid.

Typical use::

    from plasmafurnace.model.state import SimulationConfig
    from plasmafurnace.controller.workers import SimulationRun

    config = SimulationConfig.load_json("furnace.json")
    result = SimulationRun(config).run()
"""
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("plasmafurnace")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
