import numpy as np
import pytest
from scipy.integrate import trapezoid

from plasmafurnace.controller.fea.pre.material import (
    ConstantProperty,
    EnthalpyLadder,
    Material,
    PhaseRegion,
    PhaseTransition,
    PolynomialProperty,
    PropertyCurve,
    TabulatedProperty,
)
from plasmafurnace.errors import ConfigurationError, PropertyEvaluationError


class TestPropertyCurves:
    def test_constant(self):
        curve = ConstantProperty(7850.0)
        assert curve(300.0) == 7850.0
        assert curve(np.array([300.0, 2000.0])).shape == (2,)

    def test_polynomial_inside_and_outside_range(self):
        curve = PolynomialProperty(coefficients=(10.0, 0.1), reference_temperature=300.0, valid_range=(300.0, 1000.0))
        assert curve(500.0) == pytest.approx(30.0)
        # Outside the valid range only the constant term applies
        assert curve(2000.0) == pytest.approx(10.0)
        assert curve(250.0) == pytest.approx(10.0)

    def test_polynomial_without_range(self):
        curve = PolynomialProperty(coefficients=(1.0, 0.0, 1e-6), reference_temperature=0.0)
        assert curve(1000.0) == pytest.approx(2.0)

    def test_negative_values_clamped(self):
        curve = PolynomialProperty(coefficients=(10.0, -1.0), reference_temperature=300.0)
        assert curve(400.0) == 0.0

    def test_table_interpolates_and_clamps(self):
        curve = TabulatedProperty(temperatures=(300.0, 1000.0), values=(50.0, 30.0))
        np.testing.assert_allclose(curve(np.array([200.0, 650.0, 2000.0])), [50.0, 40.0, 30.0])

    def test_table_must_be_increasing(self):
        with pytest.raises(ConfigurationError):
            TabulatedProperty(temperatures=(1000.0, 300.0), values=(1.0, 2.0))

    def test_from_dict(self):
        assert PropertyCurve.from_dict(5.0) == ConstantProperty(5.0)
        curve = PropertyCurve.from_dict({"kind": "table", "temperatures": [300, 400], "values": [1, 2]})
        assert isinstance(curve, TabulatedProperty)
        with pytest.raises(ConfigurationError):
            PropertyCurve.from_dict({"kind": "spline"})

    @pytest.mark.parametrize("data, parameter", [
        ("7850", "property"),
        ({"kind": "constant", "value": "7850"}, "value"),
        ({"kind": "polynomial", "coefficients": [500.0, "0.1"]}, "coefficients"),
        ({"kind": "polynomial", "coefficients": [500.0], "reference_temperature": None}, "reference_temperature"),
        ({"kind": "polynomial", "coefficients": [500.0], "valid_range": [300.0]}, "valid_range"),
        ({"kind": "table", "temperatures": [300, 400], "values": 2.0}, "values"),
    ])
    def test_from_dict_rejects_wrong_types(self, data, parameter):
        with pytest.raises(ConfigurationError) as excinfo:
            PropertyCurve.from_dict(data)
        assert excinfo.value.parameter == parameter

    def test_scalar_input_gives_float(self):
        curve = TabulatedProperty(temperatures=(300.0, 1000.0), values=(50.0, 30.0))
        assert isinstance(curve(500.0), float)


class TestEnthalpyLadder:
    @pytest.fixture
    def ladder(self):
        return EnthalpyLadder(
            reference_temperature=298.15,
            cp_solid=500.0,
            melting=PhaseTransition(1811.0, 247000.0),
            cp_liquid=600.0,
            vaporization=PhaseTransition(3134.0, 6.09e6),
            cp_gas=700.0,
        )

    @pytest.mark.parametrize("temperature, mf, vf, region", [
        (300.0, 0.0, 0.0, PhaseRegion.SOLID),
        (1500.0, 0.0, 0.0, PhaseRegion.SOLID),
        (1811.0, 0.4, 0.0, PhaseRegion.MELTING),
        (2500.0, 1.0, 0.0, PhaseRegion.LIQUID),
        (3134.0, 1.0, 0.25, PhaseRegion.VAPORIZING),
        (4000.0, 1.0, 1.0, PhaseRegion.GAS),
    ])
    def test_inverse_recovers_state(self, ladder, temperature, mf, vf, region):
        h = ladder.enthalpy_of(temperature, mf, vf)
        state = ladder.state_of(h)
        assert state.temperature == pytest.approx(temperature, rel=1e-12)
        assert state.melt_fraction == pytest.approx(mf, abs=1e-12)
        assert state.vapor_fraction == pytest.approx(vf, abs=1e-12)
        assert state.region == region
        assert ladder.region_of(h) == region

    def test_breakpoints(self, ladder):
        h_solidus, h_liquidus, h_boil, h_gas = ladder.breakpoints
        assert h_solidus == pytest.approx(500.0 * (1811.0 - 298.15))
        assert h_liquidus - h_solidus == pytest.approx(247000.0)
        assert h_boil - h_liquidus == pytest.approx(600.0 * (3134.0 - 1811.0))
        assert h_gas - h_boil == pytest.approx(6.09e6)

    def test_regions_are_monotone(self, ladder):
        grid = np.linspace(-1e5, 1.2e7, 2001)
        regions = [ladder.region_of(h) for h in grid]
        assert all(a <= b for a, b in zip(regions, regions[1:]))
        assert regions[0] == PhaseRegion.SOLID
        assert regions[-1] == PhaseRegion.GAS

    def test_temperature_monotone_in_enthalpy(self, ladder):
        grid = np.linspace(0.0, 1.2e7, 5001)
        T, mf, vf = ladder.temperature_from_enthalpy(grid)
        assert np.all(np.diff(T) >= 0.0)
        assert np.all((mf >= 0.0) & (mf <= 1.0))
        assert np.all((vf >= 0.0) & (vf <= 1.0))

    def test_vectorized_round_trip(self, ladder):
        T = np.array([[400.0, 2000.0], [3500.0, 1000.0]])
        mf = (T > 1811.0).astype(float)
        vf = (T > 3134.0).astype(float)
        H = ladder.enthalpy_from_state(T, mf, vf)
        T_back, mf_back, vf_back = ladder.temperature_from_enthalpy(H)
        np.testing.assert_allclose(T_back, T, rtol=1e-12)
        np.testing.assert_allclose(mf_back, mf)
        np.testing.assert_allclose(vf_back, vf)

    def test_non_finite_enthalpy_propagates(self, ladder):
        T, _, _ = ladder.temperature_from_enthalpy(np.array([np.nan, np.inf]))
        assert not np.any(np.isfinite(T))

    def test_vaporization_needs_melting(self):
        with pytest.raises(ConfigurationError):
            EnthalpyLadder(298.15, 500.0, vaporization=PhaseTransition(3000.0, 1e6))


class TestMaterial:
    def test_library_steel(self, steel):
        assert steel.density(1000.0) == 7850.0
        assert steel.melting_point == 1811.0
        assert steel.enthalpy_of(steel.reference_temperature) == pytest.approx(0.0)

    def test_diffusivity_ordering(self, library):
        alpha = {name: library.get_material(name).thermal_diffusivity() for name in
                 ("Aluminum", "Carbon Steel", "Concrete")}
        assert alpha["Aluminum"] > alpha["Carbon Steel"] > alpha["Concrete"]
        assert alpha["Carbon Steel"] == pytest.approx(50.0 / (7850.0 * 500.0))

    def test_concrete_has_single_branch(self, library):
        concrete = library.get_material("Concrete")
        state = concrete.phase_state(1e7)
        assert state.region == PhaseRegion.SOLID
        assert state.melt_fraction == 0.0

    def test_ladder_uses_mean_heat_capacity(self):
        material = Material(
            name="linear cp",
            density=1000.0,
            specific_heat=PolynomialProperty(coefficients=(400.0, 0.2), reference_temperature=300.0),
            thermal_conductivity=10.0,
            melting_point=1300.0,
            latent_heat_fusion=1e5,
            reference_temperature=300.0,
        )
        # Mean of 400 + 0.2·(T-300) over [300, 1300]
        assert material.ladder.cp_solid == pytest.approx(500.0)

    def test_apparent_heat_capacity_holds_latent_heat(self, steel):
        T = np.linspace(1761.0, 1861.0, 4001)
        excess = steel.effective_specific_heat(T) - steel.specific_heat(T)
        assert trapezoid(excess, T) == pytest.approx(247000.0, rel=1e-4)

    def test_property_at(self, steel):
        assert steel.property_at("thermal_conductivity", 500.0) == 50.0
        assert steel.property_at("emissivity", 500.0) == 0.8
        assert steel.property_at("emissivity", np.zeros(3)).shape == (3,)
        with pytest.raises(ConfigurationError):
            steel.property_at("viscosity", 500.0)

    def test_validation_lists_every_issue(self):
        with pytest.raises(ConfigurationError) as excinfo:
            Material(name="bad", density=-1.0, specific_heat=500.0, thermal_conductivity=1.0, emissivity=2.0)
        params = {issue.parameter for issue in excinfo.value.issues}
        assert {"density", "emissivity"} <= params

    def test_vaporization_above_melting(self):
        with pytest.raises(ConfigurationError) as excinfo:
            Material(
                name="bad", density=1.0, specific_heat=1.0, thermal_conductivity=1.0,
                melting_point=2000.0, latent_heat_fusion=1.0,
                vaporization_point=1500.0, latent_heat_vaporization=1.0,
            )
        assert excinfo.value.parameter == "vaporization_point"


class TestOverrides:
    def test_override_replaces_curve(self, steel):
        custom = steel.with_overrides(thermal_conductivity=lambda T: 54.0 - 0.03 * (T - 300.0))
        assert custom.thermal_conductivity(400.0) == pytest.approx(51.0)
        assert steel.thermal_conductivity(400.0) == 50.0
        assert custom.melting_point == steel.melting_point

    def test_failing_override_is_reported(self, steel):
        custom = steel.with_overrides(thermal_conductivity=lambda T: 1.0 / 0.0)
        with pytest.raises(PropertyEvaluationError) as excinfo:
            custom.thermal_conductivity(300.0)
        assert excinfo.value.property_name == "thermal_conductivity"
        assert excinfo.value.temperature == 300.0

    def test_non_finite_override_is_reported(self, steel):
        custom = steel.with_overrides(thermal_conductivity=lambda T: float("nan"))
        with pytest.raises(PropertyEvaluationError):
            custom.thermal_conductivity(np.array([300.0, 400.0]))

    def test_unknown_or_constant_property(self, steel):
        with pytest.raises(ConfigurationError):
            steel.with_overrides(viscosity=lambda T: 1.0)
        with pytest.raises(ConfigurationError):
            steel.with_overrides(emissivity=lambda T: 0.5)
