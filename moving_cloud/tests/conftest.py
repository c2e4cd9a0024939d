"""Pytest configuration module for the `moving_cloud` package.

Fixtures
--------
- `units`: the default :py:class:`~units.UnitSystem` (1 kpc, 1e8 Msun, 1 Myr).
- `normalized_density`: the ``rho_ambient_mh_cm3`` that gives an ambient density of exactly 1 in
  code units for `units`.
- `scenario`: nested mapping of the standard test problem (1e6 K ambient, 1e4 K cloud moving at
  200 km/s, gamma = 5/3) on a 16^3 mesh of 8^3 blocks spanning [-1.5, 1.5]^3.
- `pin`, `hydro`, `context`, `mesh`: the objects built from `scenario`.
"""
import copy

import pytest

from moving_cloud.mesh import Mesh
from moving_cloud.parameters import (
    HydroPackage,
    ParameterInput,
    ParameterResolver,
    ProblemContext,
)
from moving_cloud.units import UnitSystem
from moving_cloud.utilities.config import mcparams

# Disable progress bars during tests to improve compatibility with CI logs.
mcparams.config.system.preferences.disable_progress_bars = True


@pytest.fixture
def units():
    return UnitSystem()


@pytest.fixture
def normalized_density(units):
    return units.cm3() / units.mh()


@pytest.fixture
def scenario(units, normalized_density):
    return {
        "problem": {
            "moving_cloud": {
                "rho_ambient_mh_cm3": normalized_density,
                "T_ambient_K": 1.0e6,
                "T_cloud_K": 1.0e4,
                "velocity_cloud_km_s": 200.0,
            }
        },
        "hydro": {"gamma": 5.0 / 3.0},
        "units": {
            "code_length_cgs": units.length_cgs,
            "code_mass_cgs": units.mass_cgs,
            "code_time_cgs": units.time_cgs,
        },
        "parthenon": {
            "mesh": {
                "nx1": 16,
                "nx2": 16,
                "nx3": 16,
                "x1min": -1.5,
                "x1max": 1.5,
                "x2min": -1.5,
                "x2max": 1.5,
                "x3min": -1.5,
                "x3max": 1.5,
                "nghost": 2,
            },
            "meshblock": {"nx1": 8, "nx2": 8, "nx3": 8},
        },
    }


@pytest.fixture
def pin(scenario):
    return ParameterInput.from_dict(copy.deepcopy(scenario))


@pytest.fixture
def hydro(pin):
    return HydroPackage.from_input(pin)


@pytest.fixture
def context(pin, hydro):
    return ProblemContext(hydro=hydro, parameters=ParameterResolver(pin, hydro).resolve())


@pytest.fixture
def mesh(pin):
    return Mesh.from_input(pin)
