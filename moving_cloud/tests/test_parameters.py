"""
Tests for reading and resolving the problem parameters.
"""
import copy
import io
import logging

import pytest

from moving_cloud.parameters import (
    HydroPackage,
    ParameterInput,
    ParameterResolver,
    SimulationParameters,
    emit_report,
)
from moving_cloud.utilities.exceptions import ConfigurationError, MissingParameterError
from moving_cloud.utilities.logging import mylog
from moving_cloud.utilities.physics import mean_molecular_weight

_ATHINPUT = """
<comment>
problem   = moving cloud # free text is allowed here

<hydro>
gamma = 1.6666666666666667   # adiabatic index
He_mass_fraction = 0.24

<problem/moving_cloud>
rho_ambient_mh_cm3 = 4.04
T_ambient_K        = 1e6
T_cloud_K          = 1e4
velocity_cloud_km_s = 200
"""


# -- ParameterInput -- #
def test_athinput_parsing():
    pin = ParameterInput.from_athinput_string(_ATHINPUT)

    assert "problem/moving_cloud" in pin
    assert pin.get_real("problem/moving_cloud", "T_ambient_K") == 1.0e6
    assert pin.get_real("hydro", "gamma") == pytest.approx(5.0 / 3.0)
    assert pin.get("comment", "problem") == "moving cloud"


def test_athinput_dump_round_trip(tmp_path):
    pin = ParameterInput.from_athinput_string(_ATHINPUT)
    pin.get_or_add_real("problem/moving_cloud", "cloud_radius_factor", 1.1)

    stream = io.StringIO()
    pin.dump(stream)
    path = tmp_path / "dump.in"
    path.write_text(stream.getvalue())

    reread = ParameterInput.from_athinput(path)
    assert list(reread) == list(pin)
    assert reread.get_real("problem/moving_cloud", "cloud_radius_factor") == 1.1
    assert reread.get_real("problem/moving_cloud", "T_cloud_K") == 1.0e4


def test_athinput_malformed():
    with pytest.raises(ConfigurationError):
        ParameterInput.from_athinput_string("gamma = 1.4\n")


def test_from_yaml(tmp_path):
    path = tmp_path / "moving_cloud.yaml"
    path.write_text(
        "hydro:\n"
        "  gamma: 1.4\n"
        "problem:\n"
        "  moving_cloud:\n"
        "    T_cloud_K: 1.0e4\n"
    )
    pin = ParameterInput.from_yaml(path)

    assert pin.get_real("hydro", "gamma") == 1.4
    assert pin.get_real("problem/moving_cloud", "T_cloud_K") == 1.0e4


def test_from_flat_dict():
    pin = ParameterInput.from_dict({"problem/moving_cloud/T_cloud_K": 1.0e4})
    assert pin.get_real("problem/moving_cloud", "T_cloud_K") == 1.0e4

    with pytest.raises(ConfigurationError):
        ParameterInput.from_dict({"gamma": 1.4})


def test_missing_and_invalid_values():
    pin = ParameterInput.from_dict({"hydro": {"gamma": "five thirds"}})

    with pytest.raises(MissingParameterError):
        pin.get_real("hydro", "mu")
    with pytest.raises(ConfigurationError):
        pin.get_real("hydro", "gamma")


# -- HydroPackage -- #
def test_hydro_mean_molecular_weight(pin):
    assert HydroPackage.from_input(pin).mu == pytest.approx(mean_molecular_weight(0.76))

    pin.set_real("hydro", "He_mass_fraction", 0.24)
    assert HydroPackage.from_input(pin).mu == pytest.approx(mean_molecular_weight(0.76))

    pin.set_real("hydro", "mu", 0.6)
    assert HydroPackage.from_input(pin).mu == 0.6


def test_mbar_over_kb(hydro, units):
    expected = hydro.mu * units.mh() / units.k_boltzmann()
    assert hydro.mbar_over_kb == expected

    # The mean particle mass is built on the hydrogen mass, not the atomic mass unit.
    amu_based = hydro.mu * units.atomic_mass_unit() / units.k_boltzmann()
    assert hydro.mbar_over_kb / amu_based == pytest.approx(units.mh() / units.atomic_mass_unit())
    assert hydro.mbar_over_kb != pytest.approx(amu_based, rel=1e-4)


# -- ParameterResolver -- #
def test_resolve_scenario(pin, hydro, units):
    p = ParameterResolver(pin, hydro).resolve()

    assert abs(p.rho_ambient - 1.0) <= 1e-8
    assert p.rho_cloud == p.rho_ambient * p.T_ambient / p.T_cloud
    assert p.pressure == p.rho_ambient * p.T_ambient / hydro.mbar_over_kb
    assert p.rho_cloud / p.rho_ambient == pytest.approx(100.0, rel=1e-12)
    assert p.velocity_cloud == 200.0 * units.km_s()
    assert p.cloud_radius_factor == 1.1


def test_pressure_is_physical(pin, hydro, units, normalized_density):
    """The code pressure corresponds to n k T / mu for the ambient gas."""
    p = ParameterResolver(pin, hydro).resolve()
    pressure_cgs = p.pressure / units.erg_cm3()
    expected = normalized_density * 1.6737e-24 * 1.380649e-16 * 1.0e6 / (hydro.mu * 1.6737e-24)

    assert pressure_cgs == pytest.approx(expected, rel=1e-4)


def test_default_radius_factor_recorded(pin, hydro):
    ParameterResolver(pin, hydro).resolve()
    assert pin.get_real("problem/moving_cloud", "cloud_radius_factor") == 1.1


def test_explicit_radius_factor(pin, hydro):
    pin.set_real("problem/moving_cloud", "cloud_radius_factor", 2.0)
    assert ParameterResolver(pin, hydro).resolve().cloud_radius_factor == 2.0


@pytest.mark.parametrize("factor", [1.1, 0.9, 1.0 + 1e-6])
def test_normalization_violation(scenario, normalized_density, factor):
    scenario = copy.deepcopy(scenario)
    scenario["problem"]["moving_cloud"]["rho_ambient_mh_cm3"] = normalized_density * factor
    pin = ParameterInput.from_dict(scenario)

    with pytest.raises(ConfigurationError):
        ParameterResolver(pin, HydroPackage.from_input(pin)).resolve()


@pytest.mark.parametrize(
    "eps, accepted", [(5e-9, True), (-5e-9, True), (2e-8, False), (-2e-8, False)]
)
def test_normalization_tolerance(scenario, normalized_density, eps, accepted):
    scenario = copy.deepcopy(scenario)
    scenario["problem"]["moving_cloud"]["rho_ambient_mh_cm3"] = normalized_density * (1 + eps)
    pin = ParameterInput.from_dict(scenario)
    resolver = ParameterResolver(pin, HydroPackage.from_input(pin))

    if accepted:
        assert resolver.resolve().rho_ambient == pytest.approx(1.0 + eps, abs=1e-12)
    else:
        with pytest.raises(ConfigurationError):
            resolver.resolve()


@pytest.mark.parametrize(
    "key", ["rho_ambient_mh_cm3", "T_ambient_K", "T_cloud_K", "velocity_cloud_km_s"]
)
def test_missing_required_key(scenario, key):
    scenario = copy.deepcopy(scenario)
    del scenario["problem"]["moving_cloud"][key]
    pin = ParameterInput.from_dict(scenario)

    with pytest.raises(MissingParameterError) as info:
        ParameterResolver(pin, HydroPackage.from_input(pin)).resolve()
    assert info.value.name == key


def test_missing_gamma(scenario):
    scenario = copy.deepcopy(scenario)
    del scenario["hydro"]["gamma"]

    with pytest.raises(MissingParameterError):
        HydroPackage.from_input(ParameterInput.from_dict(scenario))


def test_resolution_is_deterministic(scenario):
    first, second = (
        ParameterResolver(pin, HydroPackage.from_input(pin)).resolve()
        for pin in (
            ParameterInput.from_dict(copy.deepcopy(scenario)),
            ParameterInput.from_dict(copy.deepcopy(scenario)),
        )
    )
    assert first == second


def test_published_parameters(context):
    params = context.parameters.as_params()

    assert set(params) == {
        "moving_cloud/velocity_cloud",
        "moving_cloud/rho_ambient",
        "moving_cloud/rho_cloud",
        "moving_cloud/pressure",
        "moving_cloud/cloud_radius_factor",
    }
    assert params["moving_cloud/rho_cloud"] == context.parameters.rho_cloud

    with pytest.raises(TypeError):
        params["moving_cloud/rho_cloud"] = 0.0


def test_parameters_are_frozen(context):
    with pytest.raises(Exception):
        context.parameters.rho_cloud = 0.0
    assert isinstance(context.parameters, SimulationParameters)


# -- Reporting -- #
def test_report_contents(pin, hydro):
    resolver = ParameterResolver(pin, hydro)
    report = resolver.report(resolver.resolve())

    assert "###### Moving cloud problem generator" in report
    assert "## Cloud velocity:      2e+02 km/s" in report
    assert "## Cloud to ambient density ratio: 1e+02" in report
    assert "## Length unit: 1.1 x cloud radius" in report
    assert "= 1 kpc" in report


class _Collector(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.mark.parametrize("rank,expected", [(0, 1), (3, 0)])
def test_report_only_from_lead_process(rank, expected):
    collector = _Collector()
    mylog.addHandler(collector)
    try:
        emit_report("## report", rank=rank)
    finally:
        mylog.removeHandler(collector)

    assert len(collector.messages) == expected
