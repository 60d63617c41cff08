"""
Error Types
===========
Exceptions raised by the simulation engine.

ConfigurationError is raised before any stepping starts, NumericalInstability
ends a run, and PropertyEvaluationError reports a failing override formula.
A cancelled run is not an error; it ends with TerminationReason.CANCELLED.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional


class SimulationError(Exception):
    """Base class for all errors raised by plasmafurnace."""


@dataclass(frozen=True)
class ValidationIssue:
    """One rejected configuration value."""
    parameter: str
    value: Any
    expected: str

    def __str__(self) -> str:
        return f"{self.parameter}={self.value!r} (expected {self.expected})"


class ConfigurationError(SimulationError, ValueError):
    """
    Invalid configuration detected before a run starts.

    The first issue is exposed through ``parameter``, ``value`` and ``expected``;
    ``issues`` holds every problem found during validation.
    """

    def __init__(
        self,
        parameter: str,
        value: Any,
        expected: str,
        *,
        others: Iterable[ValidationIssue] = (),
    ) -> None:
        self.parameter = parameter
        self.value = value
        self.expected = expected
        self.issues: list[ValidationIssue] = [ValidationIssue(parameter, value, expected), *others]
        if len(self.issues) == 1:
            message = f"Invalid configuration: {self.issues[0]}"
        else:
            details = "; ".join(str(issue) for issue in self.issues)
            message = f"Invalid configuration ({len(self.issues)} issues): {details}"
        super().__init__(message)

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> ConfigurationError:
        first, *rest = issues
        return cls(first.parameter, first.value, first.expected, others=rest)


def raise_for_issues(issues: list[ValidationIssue]) -> None:
    """Raise a ConfigurationError listing ``issues`` if there are any."""
    if issues:
        raise ConfigurationError.from_issues(issues)


class InvalidGeometry(ConfigurationError):
    """Furnace dimensions or mesh resolution are not usable."""


class NumericalInstability(SimulationError, ArithmeticError):
    """A time step produced non-finite field values."""

    def __init__(
        self,
        step: int,
        time: float,
        dt: float,
        stable_time_step: float,
        cell: Optional[tuple[int, ...]] = None,
        value: float = float("nan"),
    ) -> None:
        self.step = step
        self.time = time
        self.dt = dt
        self.stable_time_step = stable_time_step
        self.cell = cell
        self.value = value
        location = f" at cell {cell}" if cell is not None else ""
        super().__init__(
            f"Numerical instability at step {step} (t={time:.6g} s): temperature{location} is {value}. "
            f"dt={dt:.6g} s, expected dt <= stable time step {stable_time_step:.6g} s; "
            f"rerun with a smaller time step."
        )


class PropertyEvaluationError(SimulationError):
    """An injected property or heat-source formula failed to evaluate."""

    def __init__(
        self,
        property_name: str,
        formula: str,
        temperature: Optional[float] = None,
        step: Optional[int] = None,
        reason: str = "",
    ) -> None:
        self.property_name = property_name
        self.formula = formula
        self.temperature = temperature
        self.step = step
        self.reason = reason
        parts = [f"Evaluation of '{property_name}' with formula '{formula}' failed"]
        if temperature is not None:
            parts.append(f"at T={temperature:.6g} K")
        if step is not None:
            parts.append(f"during step {step}")
        message = " ".join(parts)
        if reason:
            message += f": {reason}"
        super().__init__(message)

    def with_step(self, step: int) -> PropertyEvaluationError:
        """Return a copy of this error tagged with the step it happened in."""
        error = PropertyEvaluationError(
            self.property_name, self.formula, self.temperature, step, self.reason
        )
        error.__cause__ = self.__cause__
        return error


class SolverStateError(SimulationError, RuntimeError):
    """Operation not allowed in the solver's current state."""
