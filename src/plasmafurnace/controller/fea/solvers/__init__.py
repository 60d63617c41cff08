"""Explicit enthalpy solver."""
