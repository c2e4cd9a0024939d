"""
Problem parameters
==================

This module turns the raw, physically-dimensioned inputs of the moving cloud problem into the
code-unit quantities used to build the initial state.

There are three layers:

- :py:class:`ParameterInput`: the key / value configuration, addressed as ``block/name`` and read
  from an Athena-style input file, a YAML file or a plain mapping.
- :py:class:`HydroPackage`: the state owned by the upstream hydrodynamics package (adiabatic index,
  unit system, mean molecular weight).
- :py:class:`ParameterResolver`: derives the :py:class:`SimulationParameters` of the problem and
  checks the ambient density normalization.

The resolved values are bundled with the hydro package into an immutable :py:class:`ProblemContext`
which is handed explicitly to every component that needs it.

Examples
--------

.. code-block:: python

    pin = ParameterInput.from_athinput("moving_cloud.in")
    hydro = HydroPackage.from_input(pin)
    parameters = ParameterResolver(pin, hydro).resolve()
    parameters.as_params()["moving_cloud/rho_cloud"]
"""
import re
from pathlib import Path
from types import MappingProxyType
from typing import IO, Any, ClassVar, Iterator, Mapping

import numpy as np
from pydantic import BaseModel, ConfigDict, Field
from ruamel.yaml import YAML

from moving_cloud.units import UnitSystem
from moving_cloud.utilities.exceptions import ConfigurationError, MissingParameterError
from moving_cloud.utilities.logging import ComponentLogDescriptor, mylog
from moving_cloud.utilities.physics import (
    mean_molecular_weight,
    mean_molecular_weight_from_helium,
    process_rank,
)

_BLOCK_HEADER = re.compile(r"^<\s*(?P<block>[^>]+?)\s*>$")


class ParameterInput:
    """
    Key / value configuration for a simulation run.

    Parameters are grouped in named blocks (``hydro``, ``problem/moving_cloud``, ...) and every value
    is addressed by its block and name. Values read from text are kept as strings and converted on
    access.

    Notes
    -----
    Defaults requested through :py:meth:`get_or_add_real` are written back into the input so that
    a parameter dump reflects the values that were actually used.
    """

    def __init__(self, blocks: Mapping[str, Mapping[str, Any]] | None = None):
        self._blocks: dict[str, dict[str, Any]] = {}

        for block, values in (blocks or {}).items():
            self._blocks[block] = dict(values)

    def __repr__(self):
        return f"<ParameterInput: {len(self._blocks)} blocks>"

    def __contains__(self, block: str) -> bool:
        return block in self._blocks

    def __iter__(self) -> Iterator[str]:
        return iter(self._blocks)

    # -- Construction -- #
    @classmethod
    def from_athinput(cls, path: str | Path) -> "ParameterInput":
        """Read an Athena / Parthenon style input file.

        The format consists of ``<block>`` headers followed by ``name = value`` lines; everything
        after a ``#`` is a comment.
        """
        with open(path, "r") as f:
            return cls.from_athinput_string(f.read())

    @classmethod
    def from_athinput_string(cls, text: str) -> "ParameterInput":
        blocks, block = {}, None

        for lineno, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.split("#", 1)[0].strip()
            if not line:
                continue

            header = _BLOCK_HEADER.match(line)
            if header is not None:
                block = header.group("block")
                blocks.setdefault(block, {})
                continue

            if block is None or "=" not in line:
                raise ConfigurationError(
                    f"Malformed input on line {lineno}: {raw_line.strip()!r}."
                )

            name, value = (part.strip() for part in line.split("=", 1))
            blocks[block][name] = value

        return cls(blocks)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ParameterInput":
        """Read a YAML file whose nested mappings spell out the block paths."""
        with open(path, "r") as f:
            return cls.from_dict(YAML(typ="safe").load(f) or {})

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "ParameterInput":
        """Build from a nested mapping (``{"hydro": {"gamma": 1.4}}``) or flat ``block/name`` keys."""
        blocks = {}
        for path, value in _flatten(mapping):
            if "/" not in path:
                raise ConfigurationError(
                    f"Parameter {path!r} is not inside a block."
                )

            block, name = path.rsplit("/", 1)
            blocks.setdefault(block, {})[name] = value

        return cls(blocks)

    # -- Access -- #
    def does_parameter_exist(self, block: str, name: str) -> bool:
        return name in self._blocks.get(block, {})

    def get(self, block: str, name: str) -> Any:
        try:
            return self._blocks[block][name]
        except KeyError:
            raise MissingParameterError(block, name) from None

    def get_real(self, block: str, name: str) -> float:
        """Fetch a required real-valued parameter.

        Raises
        ------
        MissingParameterError
            If ``block/name`` is not present.
        ConfigurationError
            If the value cannot be read as a number.
        """
        value = self.get(block, name)
        try:
            return float(value)
        except (TypeError, ValueError) as er:
            raise ConfigurationError(
                f"Parameter {block}/{name} = {value!r} is not a real number."
            ) from er

    def get_or_add_real(self, block: str, name: str, default: float) -> float:
        if not self.does_parameter_exist(block, name):
            self.set_real(block, name, default)

        return self.get_real(block, name)

    def get_integer(self, block: str, name: str) -> int:
        value = self.get(block, name)
        try:
            return int(value)
        except (TypeError, ValueError) as er:
            raise ConfigurationError(
                f"Parameter {block}/{name} = {value!r} is not an integer."
            ) from er

    def get_or_add_integer(self, block: str, name: str, default: int) -> int:
        if not self.does_parameter_exist(block, name):
            self._blocks.setdefault(block, {})[name] = int(default)

        return self.get_integer(block, name)

    def set_real(self, block: str, name: str, value: float):
        self._blocks.setdefault(block, {})[name] = float(value)

    def dump(self, stream: IO[str]):
        """Write the parameters back out in the input-file format."""
        for block, values in self._blocks.items():
            stream.write(f"<{block}>\n")
            for name, value in values.items():
                stream.write(f"{name} = {value}\n")
            stream.write("\n")


def _flatten(mapping: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for key, value in mapping.items():
        path = f"{prefix}/{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            yield from _flatten(value, path)
        else:
            yield path, value


class HydroPackage(BaseModel):
    """
    State published by the upstream hydrodynamics package.

    Parameters
    ----------
    gamma: float
        The adiabatic index.
    mu: float
        The mean molecular weight of the gas.
    units: UnitSystem
        The code unit system of the run.
    """

    model_config = ConfigDict(frozen=True)

    gamma: float
    mu: float
    units: UnitSystem = Field(default_factory=UnitSystem)

    @classmethod
    def from_input(
        cls, pin: ParameterInput, units: UnitSystem | None = None
    ) -> "HydroPackage":
        """Read ``<hydro>`` (and ``<units>`` unless ``units`` is given) from the input.

        The mean molecular weight is taken from ``hydro/mu`` if present, otherwise from
        ``hydro/He_mass_fraction``, otherwise from the configured hydrogen abundance.
        """
        if units is None:
            units = UnitSystem.from_input(pin)

        if pin.does_parameter_exist("hydro", "mu"):
            mu = pin.get_real("hydro", "mu")
        elif pin.does_parameter_exist("hydro", "He_mass_fraction"):
            mu = mean_molecular_weight_from_helium(
                pin.get_real("hydro", "He_mass_fraction")
            )
        else:
            mu = mean_molecular_weight()

        return cls(gamma=pin.get_real("hydro", "gamma"), mu=mu, units=units)

    @property
    def mbar_over_kb(self) -> float:
        """Mean particle mass over Boltzmann's constant, in code units.

        The mean particle mass is ``mu * m_H`` (the hydrogen mass, not the atomic mass unit),
        consistent with ``rho_ambient_mh_cm3`` being a number density of hydrogen masses.
        """
        return self.mu * self.units.mh() / self.units.k_boltzmann()


class SimulationParameters(BaseModel):
    """
    The derived physical state of the moving cloud problem, in code units (temperatures in K).

    Attributes
    ----------
    rho_ambient: float
        Density of the ambient medium; equal to 1 by construction.
    T_ambient: float
        Ambient temperature.
    T_cloud: float
        Cloud temperature.
    velocity_cloud: float
        Bulk velocity of the cloud along the x axis.
    rho_cloud: float
        Cloud density, in pressure equilibrium with the ambient medium.
    pressure: float
        The uniform pressure.
    cloud_radius_factor: float
        Scale factor from code length to cloud radii.
    """

    model_config = ConfigDict(frozen=True)

    NAMESPACE: ClassVar[str] = "moving_cloud"
    PUBLISHED: ClassVar[tuple[str, ...]] = (
        "velocity_cloud",
        "rho_ambient",
        "rho_cloud",
        "pressure",
        "cloud_radius_factor",
    )

    rho_ambient: float
    T_ambient: float
    T_cloud: float
    velocity_cloud: float
    rho_cloud: float
    pressure: float
    cloud_radius_factor: float

    def as_params(self) -> Mapping[str, float]:
        """The published parameters, keyed as ``moving_cloud/<name>``, as a read-only mapping."""
        return MappingProxyType(
            {f"{self.NAMESPACE}/{name}": getattr(self, name) for name in self.PUBLISHED}
        )


class ProblemContext(BaseModel):
    """Everything a mesh block needs to build its initial state; resolved once per process."""

    model_config = ConfigDict(frozen=True)

    hydro: HydroPackage
    parameters: SimulationParameters

    @property
    def gamma(self) -> float:
        return self.hydro.gamma

    @property
    def units(self) -> UnitSystem:
        return self.hydro.units


class ParameterResolver:
    """
    Derive the :py:class:`SimulationParameters` of the moving cloud problem from the input.

    Parameters
    ----------
    pin: ParameterInput
        The run configuration; inputs are read from ``<problem/moving_cloud>``.
    hydro: HydroPackage
        The upstream hydro package, providing units and ``mbar_over_kb``.

    Notes
    -----
    By convention the ambient density is 1 in code units, so ``rho_ambient_mh_cm3`` must be chosen
    to match the unit system. The resolver is deterministic and does not communicate; every process
    resolves the same parameters from the same input.
    """

    BLOCK: ClassVar[str] = "problem/moving_cloud"
    DEFAULT_CLOUD_RADIUS_FACTOR: ClassVar[float] = 1.1
    NORMALIZATION_TOLERANCE: ClassVar[float] = 1e-8

    logger = ComponentLogDescriptor()

    def __init__(self, pin: ParameterInput, hydro: HydroPackage):
        self.pin = pin
        self.hydro = hydro

    @property
    def units(self) -> UnitSystem:
        return self.hydro.units

    @property
    def mh_per_cm3(self) -> float:
        """One hydrogen mass per cubic centimeter, in code density."""
        return self.units.mh() / self.units.cm3()

    def resolve(self) -> SimulationParameters:
        """Read the inputs, check the normalization and derive the problem parameters.

        Raises
        ------
        MissingParameterError
            If a required input is absent.
        ConfigurationError
            If ``rho_ambient_mh_cm3`` does not give an ambient density of 1 in code units.
        """
        pin, block = self.pin, self.BLOCK

        rho_ambient = pin.get_real(block, "rho_ambient_mh_cm3") * self.mh_per_cm3
        T_ambient = pin.get_real(block, "T_ambient_K")
        T_cloud = pin.get_real(block, "T_cloud_K")
        cloud_radius_factor = pin.get_or_add_real(
            block, "cloud_radius_factor", self.DEFAULT_CLOUD_RADIUS_FACTOR
        )
        velocity_cloud = pin.get_real(block, "velocity_cloud_km_s") * self.units.km_s()

        if np.abs(rho_ambient - 1.0) > self.NORMALIZATION_TOLERANCE:
            raise ConfigurationError(
                f"Inconsistent input: rho_ambient_mh_cm3 gives rho_ambient = {rho_ambient} in code units, "
                f"but it must be 1.0. Set {block}/rho_ambient_mh_cm3 = {1.0 / self.mh_per_cm3!r}."
            )

        parameters = SimulationParameters(
            rho_ambient=rho_ambient,
            T_ambient=T_ambient,
            T_cloud=T_cloud,
            velocity_cloud=velocity_cloud,
            rho_cloud=rho_ambient * T_ambient / T_cloud,
            pressure=rho_ambient * T_ambient / self.hydro.mbar_over_kb,
            cloud_radius_factor=cloud_radius_factor,
        )
        self.logger.debug("Resolved %s.", parameters)

        return parameters

    def report(self, parameters: SimulationParameters) -> str:
        """Human readable summary of the inputs, derived values and unit scales."""
        units, mh_per_cm3 = self.units, self.mh_per_cm3
        p = parameters

        lines = [
            "######################################",
            "###### Moving cloud problem generator",
            "#### Input parameters",
            f"## Ambient density:     {p.rho_ambient / mh_per_cm3:.2g} mh/cm^3",
            f"## Ambient temperature: {p.T_ambient:.2g} K",
            f"## Cloud temperature:   {p.T_cloud:.2g} K",
            f"## Cloud velocity:      {p.velocity_cloud / units.km_s():.2g} km/s = {p.velocity_cloud:.2g} code units",
            "#### Derived parameters",
            f"## Cloud density: {p.rho_cloud / mh_per_cm3:.2g} mh/cm^3 = {p.rho_cloud:.2g} code units",
            f"## Uniform pressure: {p.pressure / units.erg_cm3():.2g} erg / cm3 = {p.pressure:.2g} code units",
            f"## Cloud to ambient density ratio: {p.rho_cloud / p.rho_ambient:.2g}",
            "######################################",
            "",
            "######################################",
            "#### Problem units",
            f"## Length unit: {p.cloud_radius_factor:.2g} x cloud radius",
            f"##              {units.code_length_cgs():.2g} cm = {1 / units.kpc():.2g} kpc",
            f"## Mass unit:   {units.code_mass_cgs():.2g} g = {1 / units.msun():.2g} M_sol",
            f"## Time unit:   {units.code_time_cgs():.2g} s = {1 / units.myr():.2g} Myr",
            "######################################",
        ]
        return "\n".join(lines)


def emit_report(report: str, rank: int | None = None):
    """Write the setup report to ``mylog``; only the lead process (rank 0) writes."""
    if rank is None:
        rank = process_rank()

    if rank == 0:
        mylog.info("Moving cloud setup:\n%s", report)
