"""
Finite-Difference Heat Transfer Engine
======================================
The core implementation of the furnace simulation.

Why is this file needed?
------------------------
1. Physics: It implements the axisymmetric heat equation in enthalpy form,
   torch heat sources and boundary losses.
2. Time-Stepping: The Solver advances the enthalpy field one explicit step at a time.
3. Data Generation: It recovers temperature and phase fractions that the
   workers collect into a SimulationResult.

Note: This package is pure Python/NumPy/Numba and holds no I/O code.
"""
