from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import numpy as np
from scipy.integrate import trapezoid

from plasmafurnace.config import (
    DIFFUSIVITY_REFERENCE_TEMPERATURE,
    ENTHALPY_REFERENCE_TEMPERATURE,
    PHASE_SMOOTHING_WIDTH,
)
from plasmafurnace.controller.fea.pre.material_helpers import (
    enthalpy_from_state,
    enthalpy_from_state_batch,
    kernel_lock,
    polyval_shifted_batch,
    state_from_enthalpy,
    state_from_enthalpy_batch,
)
from plasmafurnace.errors import (
    ConfigurationError,
    PropertyEvaluationError,
    ValidationIssue,
    raise_for_issues,
)
from plasmafurnace.utils import is_finite_number, is_number

if TYPE_CHECKING:
    import numpy.typing as npt

# Stand-in for an unbounded polynomial range, kept finite for the fastmath kernels
_UNBOUNDED = 1e300

PropertyOverride = Callable[[float], float]
ScalarOrArray = Union[float, "npt.NDArray[np.float64]"]


class PropertyName(StrEnum):
    DENSITY = "density"
    SPECIFIC_HEAT = "specific_heat"
    THERMAL_CONDUCTIVITY = "thermal_conductivity"
    EMISSIVITY = "emissivity"


# ==========================================
# PROPERTY CURVES
# ==========================================
class PropertyCurve(ABC):
    """
    A material property as a function of temperature.

    Calling the curve accepts a scalar or an array of temperatures in Kelvin and
    returns values of the same shape, clamped to be non-negative.
    """

    @abstractmethod
    def _evaluate(self, temperature_K: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        pass

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        pass

    def __call__(self, temperature_K: ScalarOrArray) -> ScalarOrArray:
        temps = np.asarray(temperature_K, dtype=np.float64)
        values = np.maximum(self._evaluate(temps.ravel()).reshape(temps.shape), 0.0)
        if values.ndim == 0:
            return float(values)
        return values

    @staticmethod
    def from_dict(data: dict[str, Any] | float) -> PropertyCurve:
        """Build a curve from a number or a ``{"kind": ...}`` record."""
        if is_number(data):
            return ConstantProperty(float(data))
        if not isinstance(data, dict):
            raise ConfigurationError("property", data, "a number or a {'kind': ...} record")
        kind = data.get("kind", "constant")
        if kind == "constant":
            value = data.get("value")
            if not is_finite_number(value):
                raise ConfigurationError("value", value, "a finite number")
            return ConstantProperty(float(value))
        if kind == "polynomial":
            coefficients = data.get("coefficients")
            valid_range = data.get("valid_range")
            reference = data.get("reference_temperature", ENTHALPY_REFERENCE_TEMPERATURE)
            if not (isinstance(coefficients, (list, tuple)) and all(is_finite_number(c) for c in coefficients)):
                raise ConfigurationError("coefficients", coefficients, "a list of finite numbers")
            if not is_finite_number(reference):
                raise ConfigurationError("reference_temperature", reference, "a finite number")
            if valid_range is not None and not (
                isinstance(valid_range, (list, tuple)) and len(valid_range) == 2 and all(is_number(t) for t in valid_range)
            ):
                raise ConfigurationError("valid_range", valid_range, "None or [t_min, t_max]")
            return PolynomialProperty(
                coefficients=tuple(coefficients),
                reference_temperature=reference,
                valid_range=tuple(valid_range) if valid_range is not None else None,
            )
        if kind == "table":
            temperatures, values = data.get("temperatures"), data.get("values")
            for name, column in (("temperatures", temperatures), ("values", values)):
                if not (isinstance(column, (list, tuple)) and all(is_finite_number(v) for v in column)):
                    raise ConfigurationError(name, column, "a list of finite numbers")
            return TabulatedProperty(temperatures=tuple(temperatures), values=tuple(values))
        raise ConfigurationError("kind", kind, "one of 'constant', 'polynomial', 'table'")


@dataclass(frozen=True)
class ConstantProperty(PropertyCurve):
    value: float

    def _evaluate(self, temperature_K: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return np.full_like(temperature_K, self.value)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "constant", "value": self.value}


@dataclass(frozen=True)
class PolynomialProperty(PropertyCurve):
    """
    value(T) = sum(c_n * (T - T_ref)^n).

    Outside ``valid_range`` only the constant term c_0 is used.
    """
    coefficients: tuple[float, ...]
    reference_temperature: float = ENTHALPY_REFERENCE_TEMPERATURE
    valid_range: Optional[tuple[float, float]] = None

    def __post_init__(self) -> None:
        if len(self.coefficients) == 0:
            raise ConfigurationError("coefficients", self.coefficients, "at least one coefficient")
        if self.valid_range is not None and not self.valid_range[0] < self.valid_range[1]:
            raise ConfigurationError("valid_range", self.valid_range, "(t_min, t_max) with t_min < t_max")

    def _evaluate(self, temperature_K: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        t_min, t_max = self.valid_range or (-_UNBOUNDED, _UNBOUNDED)
        return polyval_shifted_batch(
            np.ascontiguousarray(temperature_K),
            np.asarray(self.coefficients, dtype=np.float64),
            float(self.reference_temperature),
            float(t_min),
            float(t_max),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "polynomial",
            "coefficients": list(self.coefficients),
            "reference_temperature": self.reference_temperature,
            "valid_range": list(self.valid_range) if self.valid_range is not None else None,
        }


@dataclass(frozen=True)
class TabulatedProperty(PropertyCurve):
    """Piecewise-linear table, held constant beyond the first and last points."""
    temperatures: tuple[float, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.temperatures) == 0 or len(self.temperatures) != len(self.values):
            raise ConfigurationError(
                "values", self.values, f"{len(self.temperatures)} values matching the temperatures (at least one)"
            )
        if not np.all(np.diff(self.temperatures) > 0):
            raise ConfigurationError("temperatures", self.temperatures, "strictly increasing temperatures")

    def _evaluate(self, temperature_K: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return np.interp(
            temperature_K,
            self.temperatures,
            self.values,
            left=self.values[0],
            right=self.values[-1],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "table", "temperatures": list(self.temperatures), "values": list(self.values)}


@dataclass(frozen=True)
class OverrideProperty(PropertyCurve):
    """
    Property supplied by an external formula, a pure ``(temperature) -> value`` function.

    Failures and non-finite results are reported as PropertyEvaluationError,
    never replaced by a default.
    """
    function: PropertyOverride
    formula: str = ""
    property_name: str = "property"

    @property
    def label(self) -> str:
        return self.formula or getattr(self.function, "__name__", repr(self.function))

    def _evaluate(self, temperature_K: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        out = np.empty_like(temperature_K)
        for k, t in enumerate(temperature_K):
            try:
                value = float(self.function(float(t)))
            except Exception as e:
                raise PropertyEvaluationError(
                    self.property_name, self.label, float(t), reason=str(e)
                ) from e
            if not math.isfinite(value):
                raise PropertyEvaluationError(
                    self.property_name, self.label, float(t), reason=f"non-finite result {value}"
                )
            out[k] = value
        return out

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "override", "formula": self.label}


def as_property_curve(value: PropertyCurve | PropertyOverride | float | dict[str, Any]) -> PropertyCurve:
    if isinstance(value, PropertyCurve):
        return value
    if callable(value):
        return OverrideProperty(function=value)
    return PropertyCurve.from_dict(value)


# ==========================================
# ENTHALPY LADDER
# ==========================================
class PhaseRegion(IntEnum):
    """Branches of the enthalpy ladder, ordered by increasing enthalpy."""
    SOLID = 0
    MELTING = 1
    LIQUID = 2
    VAPORIZING = 3
    GAS = 4


@dataclass(frozen=True)
class PhaseTransition:
    temperature: float  # K
    latent_heat: float  # J/kg


@dataclass(frozen=True)
class PhaseState:
    """Equilibrium state of a material at a given specific enthalpy."""
    temperature: float
    melt_fraction: float
    vapor_fraction: float
    region: PhaseRegion


class EnthalpyLadder:
    """
    Piecewise-linear relation between specific enthalpy and temperature.

    Solid branch from the reference temperature (H=0) to the melting point,
    a plateau of height L_f, a liquid branch to the vaporization point,
    a plateau of height L_v and an unbounded gas branch. Each sensible branch
    uses a constant heat capacity, which makes the forward and inverse
    functions exact inverses.
    """

    def __init__(
        self,
        reference_temperature: float,
        cp_solid: float,
        melting: Optional[PhaseTransition] = None,
        cp_liquid: Optional[float] = None,
        vaporization: Optional[PhaseTransition] = None,
        cp_gas: Optional[float] = None,
    ) -> None:
        if vaporization is not None and melting is None:
            raise ConfigurationError("melting_point", None, "a melting point when a vaporization point is set")
        self.reference_temperature = reference_temperature
        self.cp_solid = cp_solid
        self.cp_liquid = cp_liquid if cp_liquid is not None else cp_solid
        self.cp_gas = cp_gas if cp_gas is not None else self.cp_liquid
        self.melting = melting
        self.vaporization = vaporization

        issues = [
            ValidationIssue(name, value, "> 0 J/(kg·K)")
            for name, value in (
                ("cp_solid", self.cp_solid), ("cp_liquid", self.cp_liquid), ("cp_gas", self.cp_gas)
            )
            if not value > 0
        ]
        raise_for_issues(issues)

        # Kernel arguments; absent transitions are disabled by the flags
        self._args = (
            float(self.reference_temperature),
            float(self.cp_solid),
            float(self.cp_liquid),
            float(self.cp_gas),
            float(melting.temperature) if melting else 0.0,
            float(melting.latent_heat) if melting else 0.0,
            float(vaporization.temperature) if vaporization else 0.0,
            float(vaporization.latent_heat) if vaporization else 0.0,
            melting is not None,
            vaporization is not None,
        )

    @property
    def breakpoints(self) -> tuple[float, float, float, float]:
        """Enthalpies where SOLID, MELTING, LIQUID and VAPORIZING end (inf if absent)."""
        t_ref, cp_s, cp_l, _, t_m, l_f, t_v, l_v, has_melt, has_vap = self._args
        if not has_melt:
            return math.inf, math.inf, math.inf, math.inf
        h_solidus = cp_s * (t_m - t_ref)
        h_liquidus = h_solidus + l_f
        if not has_vap:
            return h_solidus, h_liquidus, math.inf, math.inf
        h_boil = h_liquidus + cp_l * (t_v - t_m)
        return h_solidus, h_liquidus, h_boil, h_boil + l_v

    def region_of(self, enthalpy: float) -> PhaseRegion:
        """Ladder branch containing ``enthalpy``. Monotone in enthalpy."""
        return PhaseRegion(int(np.searchsorted(self.breakpoints, enthalpy, side="right")))

    def state_of(self, enthalpy: float) -> PhaseState:
        t, mf, vf, region = state_from_enthalpy(float(enthalpy), *self._args)
        return PhaseState(float(t), float(mf), float(vf), PhaseRegion(region))

    def enthalpy_of(self, temperature: float, melt_fraction: float = 0.0, vapor_fraction: float = 0.0) -> float:
        """Specific enthalpy (J/kg) of a consistent (T, melt fraction, vapor fraction) triple."""
        return float(enthalpy_from_state(float(temperature), float(melt_fraction), float(vapor_fraction), *self._args))

    def equilibrium_enthalpy(self, temperature: float) -> float:
        """Enthalpy at ``temperature`` with each transition complete once its temperature is exceeded."""
        mf = 1.0 if self.melting is not None and temperature > self.melting.temperature else 0.0
        vf = 1.0 if self.vaporization is not None and temperature > self.vaporization.temperature else 0.0
        return self.enthalpy_of(temperature, mf, vf)

    def temperature_from_enthalpy(
        self,
        enthalpy: npt.NDArray[np.float64],
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Vectorized inverse of the ladder.

        Args:
            enthalpy: Specific enthalpy field in J/kg, any shape.

        Returns:
            (temperature, melt_fraction, vapor_fraction), each shaped like ``enthalpy``.
        """
        H = np.asarray(enthalpy, dtype=np.float64)
        with kernel_lock:
            T, mf, vf = state_from_enthalpy_batch(np.ascontiguousarray(H.ravel()), *self._args)
        return T.reshape(H.shape), mf.reshape(H.shape), vf.reshape(H.shape)

    def enthalpy_from_state(
        self,
        temperature: npt.NDArray[np.float64],
        melt_fraction: npt.NDArray[np.float64],
        vapor_fraction: npt.NDArray[np.float64],
    ) -> npt.NDArray[np.float64]:
        """Vectorized forward ladder."""
        T = np.asarray(temperature, dtype=np.float64)
        mf = np.broadcast_to(np.asarray(melt_fraction, dtype=np.float64), T.shape)
        vf = np.broadcast_to(np.asarray(vapor_fraction, dtype=np.float64), T.shape)
        with kernel_lock:
            H = enthalpy_from_state_batch(
                np.ascontiguousarray(T.ravel()),
                np.ascontiguousarray(mf.ravel()),
                np.ascontiguousarray(vf.ravel()),
                *self._args,
            )
        return H.reshape(T.shape)


# ==========================================
# MATERIAL
# ==========================================
class Material:
    """
    Temperature-dependent properties of one substance, with optional phase changes.

    Instances are immutable and may be shared between solvers running in
    different threads.
    """

    def __init__(
        self,
        name: str,
        density: PropertyCurve | PropertyOverride | float,
        specific_heat: PropertyCurve | PropertyOverride | float,
        thermal_conductivity: PropertyCurve | PropertyOverride | float,
        emissivity: float = 0.8,
        melting_point: Optional[float] = None,
        latent_heat_fusion: Optional[float] = None,
        vaporization_point: Optional[float] = None,
        latent_heat_vaporization: Optional[float] = None,
        liquid_specific_heat: Optional[float] = None,
        gas_specific_heat: Optional[float] = None,
        reference_temperature: float = ENTHALPY_REFERENCE_TEMPERATURE,
        smoothing_width: float = PHASE_SMOOTHING_WIDTH,
        description: str = "",
    ) -> None:
        """
        Initialize the material.

        Args:
            name: Display name, also the key in a MaterialLibrary.
            density: Density in kg/m³.
            specific_heat: Specific heat capacity in J/(kg·K).
            thermal_conductivity: Thermal conductivity in W/(m·K).
            emissivity: Surface emissivity in [0, 1].
            melting_point: Melting temperature in K.
            latent_heat_fusion: Latent heat of fusion in J/kg; needs ``melting_point``.
            vaporization_point: Vaporization temperature in K.
            latent_heat_vaporization: Latent heat of vaporization in J/kg; needs ``vaporization_point``.
            liquid_specific_heat: Heat capacity of the liquid branch of the enthalpy ladder.
                Defaults to the mean specific heat between melting and vaporization.
            gas_specific_heat: Heat capacity of the gas branch. Defaults to the
                specific heat at the vaporization point.
            reference_temperature: Temperature of zero enthalpy in K.
            smoothing_width: Width in K of the latent-heat pulse in the apparent heat capacity.
            description: Free text.

        Raises:
            ConfigurationError: With every invalid parameter listed.
        """
        self.name = name
        self.description = description
        self.emissivity = emissivity
        self.melting_point = melting_point
        self.latent_heat_fusion = latent_heat_fusion
        self.vaporization_point = vaporization_point
        self.latent_heat_vaporization = latent_heat_vaporization
        self.reference_temperature = reference_temperature
        self.smoothing_width = smoothing_width

        self._curves: dict[PropertyName, PropertyCurve] = {}
        for prop, value in (
            (PropertyName.DENSITY, density),
            (PropertyName.SPECIFIC_HEAT, specific_heat),
            (PropertyName.THERMAL_CONDUCTIVITY, thermal_conductivity),
        ):
            curve = as_property_curve(value)
            if isinstance(curve, OverrideProperty):
                curve = replace(curve, property_name=str(prop))
            self._curves[prop] = curve

        self._validate(liquid_specific_heat, gas_specific_heat)
        self.emissivity = float(self.emissivity)
        self.reference_temperature = float(self.reference_temperature)
        self.smoothing_width = float(self.smoothing_width)
        self.ladder = self._build_ladder(liquid_specific_heat, gas_specific_heat)

    def _validate(self, liquid_specific_heat: Optional[float], gas_specific_heat: Optional[float]) -> None:
        issues: list[ValidationIssue] = []
        if not (isinstance(self.name, str) and self.name.strip()):
            issues.append(ValidationIssue("name", self.name, "a non-empty name"))
        if not (is_number(self.emissivity) and 0.0 <= self.emissivity <= 1.0):
            issues.append(ValidationIssue("emissivity", self.emissivity, "a value in [0, 1]"))
        if not (is_finite_number(self.smoothing_width) and self.smoothing_width > 0):
            issues.append(ValidationIssue("smoothing_width", self.smoothing_width, "> 0 K"))
        if not (is_finite_number(self.reference_temperature) and self.reference_temperature > 0):
            issues.append(ValidationIssue("reference_temperature", self.reference_temperature, "> 0 K"))
        for cp_name, cp in (("liquid_specific_heat", liquid_specific_heat), ("gas_specific_heat", gas_specific_heat)):
            if cp is not None and not (is_finite_number(cp) and cp > 0):
                issues.append(ValidationIssue(cp_name, cp, "None or > 0 J/(kg·K)"))

        for point, heat, point_name, heat_name in (
            (self.melting_point, self.latent_heat_fusion, "melting_point", "latent_heat_fusion"),
            (self.vaporization_point, self.latent_heat_vaporization, "vaporization_point", "latent_heat_vaporization"),
        ):
            if heat is not None and point is None:
                issues.append(ValidationIssue(point_name, point, f"a transition temperature when {heat_name} is set"))
            if heat is not None and not (is_finite_number(heat) and heat >= 0):
                issues.append(ValidationIssue(heat_name, heat, ">= 0 J/kg"))
            if point is not None and not (is_finite_number(point) and point > 0):
                issues.append(ValidationIssue(point_name, point, "> 0 K"))

        if is_number(self.vaporization_point):
            if self.melting_point is None:
                issues.append(ValidationIssue("melting_point", None, "a melting point when vaporization_point is set"))
            elif is_number(self.melting_point) and not self.vaporization_point > self.melting_point:
                issues.append(ValidationIssue(
                    "vaporization_point", self.vaporization_point, f"> melting_point ({self.melting_point} K)"
                ))

        # Built-in curves must give a usable heat capacity and density where the ladder is built
        candidates = (
            self.reference_temperature,
            DIFFUSIVITY_REFERENCE_TEMPERATURE,
            self.melting_point,
            self.vaporization_point,
        )
        sample_temperatures = [t for t in candidates if is_finite_number(t) and t > 0]
        for prop in (PropertyName.DENSITY, PropertyName.SPECIFIC_HEAT):
            curve = self._curves[prop]
            if isinstance(curve, OverrideProperty):
                continue
            bad = [t for t in sample_temperatures if not curve(t) > 0]
            if bad:
                issues.append(ValidationIssue(str(prop), curve.to_dict(), f"> 0 at T={bad[0]} K"))

        raise_for_issues(issues)

    def _mean_specific_heat(self, t_low: float, t_high: float) -> float:
        if t_high == t_low:
            return self.specific_heat(t_low)
        temps = np.linspace(t_low, t_high, 65)
        return float(trapezoid(self.specific_heat(temps), temps) / (t_high - t_low))

    def _build_ladder(
        self,
        liquid_specific_heat: Optional[float],
        gas_specific_heat: Optional[float],
    ) -> EnthalpyLadder:
        melting = vaporization = None
        if self.melting_point is not None:
            melting = PhaseTransition(self.melting_point, self.latent_heat_fusion or 0.0)
            cp_solid = self._mean_specific_heat(self.reference_temperature, self.melting_point)
        else:
            cp_solid = self.specific_heat(self.reference_temperature)

        if self.vaporization_point is not None:
            vaporization = PhaseTransition(self.vaporization_point, self.latent_heat_vaporization or 0.0)
            cp_liquid = liquid_specific_heat or self._mean_specific_heat(self.melting_point, self.vaporization_point)
            cp_gas = gas_specific_heat or self.specific_heat(self.vaporization_point)
        elif self.melting_point is not None:
            cp_liquid = liquid_specific_heat or self.specific_heat(self.melting_point)
            cp_gas = gas_specific_heat
        else:
            cp_liquid, cp_gas = liquid_specific_heat, gas_specific_heat

        return EnthalpyLadder(
            reference_temperature=self.reference_temperature,
            cp_solid=cp_solid,
            melting=melting,
            cp_liquid=cp_liquid,
            vaporization=vaporization,
            cp_gas=cp_gas,
        )

    # --- Property access ---
    def curve(self, name: PropertyName | str) -> PropertyCurve:
        return self._curves[PropertyName(name)]

    def property_at(self, name: PropertyName | str, temperature_K: ScalarOrArray) -> ScalarOrArray:
        """
        Evaluate a named property.

        Args:
            name: One of density, specific_heat, thermal_conductivity, emissivity.
            temperature_K: Temperature(s) in Kelvin.

        Returns:
            Property value(s), never negative.
        """
        try:
            prop = PropertyName(name)
        except ValueError:
            raise ConfigurationError("property", name, f"one of {[p.value for p in PropertyName]}") from None
        if prop == PropertyName.EMISSIVITY:
            if np.ndim(temperature_K) == 0:
                return self.emissivity
            return np.full(np.shape(temperature_K), self.emissivity)
        return self._curves[prop](temperature_K)

    def density(self, temperature_K: ScalarOrArray) -> ScalarOrArray:
        """Density in kg/m³."""
        return self._curves[PropertyName.DENSITY](temperature_K)

    def specific_heat(self, temperature_K: ScalarOrArray) -> ScalarOrArray:
        """Specific heat capacity in J/(kg·K), without latent heat."""
        return self._curves[PropertyName.SPECIFIC_HEAT](temperature_K)

    def thermal_conductivity(self, temperature_K: ScalarOrArray) -> ScalarOrArray:
        """Thermal conductivity in W/(m·K)."""
        return self._curves[PropertyName.THERMAL_CONDUCTIVITY](temperature_K)

    def volumetric_heat_capacity(self, temperature_K: ScalarOrArray) -> ScalarOrArray:
        """Volumetric heat capacity in J/(m³·K)."""
        return self.density(temperature_K) * self.specific_heat(temperature_K)

    def thermal_diffusivity(self, temperature_K: float = DIFFUSIVITY_REFERENCE_TEMPERATURE) -> float:
        """α = k / (ρ·cp) in m²/s."""
        return float(self.thermal_conductivity(temperature_K) / self.volumetric_heat_capacity(temperature_K))

    def effective_specific_heat(self, temperature_K: ScalarOrArray) -> ScalarOrArray:
        """
        Apparent specific heat including smoothed latent heat.

        Each transition adds a normal pulse L / (w·sqrt(2π)) · exp(-(T - T_t)² / (2w²)),
        so integrating across the transition recovers the full latent heat.
        """
        temps = np.asarray(temperature_K, dtype=np.float64)
        cp = np.asarray(self.specific_heat(temps), dtype=np.float64)
        w = self.smoothing_width
        for point, heat in (
            (self.melting_point, self.latent_heat_fusion),
            (self.vaporization_point, self.latent_heat_vaporization),
        ):
            if point is None or not heat:
                continue
            cp = cp + heat / (w * math.sqrt(2.0 * math.pi)) * np.exp(-((temps - point) ** 2) / (2.0 * w * w))
        if cp.ndim == 0:
            return float(cp)
        return cp

    # --- Enthalpy method ---
    def enthalpy_of(self, temperature: float, melt_fraction: float = 0.0, vapor_fraction: float = 0.0) -> float:
        return self.ladder.enthalpy_of(temperature, melt_fraction, vapor_fraction)

    def phase_state(self, enthalpy: float) -> PhaseState:
        return self.ladder.state_of(enthalpy)

    def temperature_from_enthalpy(
        self,
        enthalpy: npt.NDArray[np.float64],
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        return self.ladder.temperature_from_enthalpy(enthalpy)

    # --- Overrides ---
    def with_overrides(self, **overrides: PropertyOverride) -> Material:
        """
        Copy of this material with some properties replaced by external formulas.

        Example::

            steel.with_overrides(thermal_conductivity=lambda T: 54.0 - 0.033 * (T - 293.15))
        """
        curves: dict[str, Any] = {str(name): curve for name, curve in self._curves.items()}
        for name, function in overrides.items():
            try:
                prop = PropertyName(name)
            except ValueError:
                raise ConfigurationError("property", name, f"one of {[p.value for p in PropertyName]}") from None
            if prop == PropertyName.EMISSIVITY:
                raise ConfigurationError("emissivity", function, "a constant emissivity value")
            curves[str(prop)] = OverrideProperty(function=function, property_name=str(prop))
        return Material(
            name=self.name,
            description=self.description,
            emissivity=self.emissivity,
            melting_point=self.melting_point,
            latent_heat_fusion=self.latent_heat_fusion,
            vaporization_point=self.vaporization_point,
            latent_heat_vaporization=self.latent_heat_vaporization,
            liquid_specific_heat=self.ladder.cp_liquid,
            gas_specific_heat=self.ladder.cp_gas,
            reference_temperature=self.reference_temperature,
            smoothing_width=self.smoothing_width,
            **curves,
        )

    def __repr__(self) -> str:
        return f"Material(name={self.name!r})"
