"""
Code unit system
================

The simulation performs its arithmetic in "code units": a system in which the units of length,
mass and time are fixed multiples of their cgs counterparts. :py:class:`UnitSystem` holds those
three scale factors and exposes the value of common physical quantities expressed in code units.

Every accessor answers the question "what is *one* of this physical unit in code units?", so that
converting a physical value into code units is a multiplication:

.. code-block:: python

    >>> units = UnitSystem.from_quantities(length=(1, "kpc"), mass=(1e8, "Msun"), time=(1, "Myr"))
    >>> velocity_code = 200 * units.km_s()
    >>> velocity_kms = velocity_code / units.km_s()

Notes
-----
Temperatures are not rescaled; code temperatures are in Kelvin. Physical constants are taken
from :py:mod:`unyt.physical_constants`.
"""
from numbers import Number
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from unyt import Unit, dimensions, unyt_quantity

from moving_cloud.utilities import physics
from moving_cloud.utilities.types import MaybeUnitScalar, ensure_ytquantity

if TYPE_CHECKING:
    from moving_cloud.parameters import ParameterInput

DEFAULT_CODE_LENGTH_CGS: float = unyt_quantity(1.0, "kpc").to_value("cm")
DEFAULT_CODE_MASS_CGS: float = unyt_quantity(1.0e8, "Msun").to_value("g")
DEFAULT_CODE_TIME_CGS: float = unyt_quantity(1.0, "Myr").to_value("s")


class UnitSystem(BaseModel):
    """
    Immutable set of conversion factors between cgs and code units.

    Parameters
    ----------
    length_cgs: float
        The code length unit in centimeters.
    mass_cgs: float
        The code mass unit in grams.
    time_cgs: float
        The code time unit in seconds.

    Notes
    -----
    Derived factors are composed from the three base factors; for instance the energy factor is
    ``g() * cm()**2 / s()**2``. Inputs are assumed to be positive and are not validated.
    """

    model_config = ConfigDict(frozen=True)

    length_cgs: float = Field(default=DEFAULT_CODE_LENGTH_CGS)
    mass_cgs: float = Field(default=DEFAULT_CODE_MASS_CGS)
    time_cgs: float = Field(default=DEFAULT_CODE_TIME_CGS)

    @classmethod
    def from_quantities(
        cls, length: MaybeUnitScalar, mass: MaybeUnitScalar, time: MaybeUnitScalar
    ) -> "UnitSystem":
        """Build the unit system from unit-bearing scales, e.g. ``length=(1, "kpc")``.

        Bare numbers are read as cgs values.
        """
        return cls(
            length_cgs=float(ensure_ytquantity(length, "cm").v),
            mass_cgs=float(ensure_ytquantity(mass, "g").v),
            time_cgs=float(ensure_ytquantity(time, "s").v),
        )

    @classmethod
    def from_input(cls, pin: "ParameterInput") -> "UnitSystem":
        """Read ``<units>/code_{length,mass,time}_cgs`` from a :py:class:`~parameters.ParameterInput`."""
        return cls(
            length_cgs=pin.get_or_add_real(
                "units", "code_length_cgs", DEFAULT_CODE_LENGTH_CGS
            ),
            mass_cgs=pin.get_or_add_real("units", "code_mass_cgs", DEFAULT_CODE_MASS_CGS),
            time_cgs=pin.get_or_add_real("units", "code_time_cgs", DEFAULT_CODE_TIME_CGS),
        )

    # -- Generic conversion -- #
    def _scale(self, dims) -> float:
        # cgs value of one code unit with the given dimensions.
        scale = 1.0
        for base, power in dims.as_powers_dict().items():
            if isinstance(base, Number) or base.is_number:
                continue

            power = int(power) if power.is_integer else float(power)
            if base == dimensions.length:
                scale *= self.length_cgs**power
            elif base == dimensions.mass:
                scale *= self.mass_cgs**power
            elif base == dimensions.time:
                scale *= self.time_cgs**power
            elif base == dimensions.temperature:
                continue
            else:
                raise ValueError(
                    f"Cannot express dimension {base} in code units; only length, mass, time and temperature are supported."
                )

        return float(scale)

    def to_code(self, quantity: unyt_quantity) -> float:
        """Express a unit-bearing quantity in code units.

        Parameters
        ----------
        quantity: unyt_quantity
            The physical quantity.

        Returns
        -------
        float
            The value in code units.
        """
        scale = self._scale(quantity.units.dimensions)
        return float(quantity.in_cgs().v) / scale

    def from_code(self, value: float, units: str | Unit) -> unyt_quantity:
        """Attach physical units to a code-unit value; the inverse of :py:meth:`to_code`."""
        units = Unit(units)
        cgs_value = unyt_quantity(
            value * self._scale(units.dimensions), units.get_cgs_equivalent()
        )
        return cgs_value.to(units)

    # -- Scale accessors -- #
    def code_length_cgs(self) -> float:
        return self.length_cgs

    def code_mass_cgs(self) -> float:
        return self.mass_cgs

    def code_time_cgs(self) -> float:
        return self.time_cgs

    # -- One physical unit in code units -- #
    def cm(self) -> float:
        return 1.0 / self.length_cgs

    def g(self) -> float:
        return 1.0 / self.mass_cgs

    def s(self) -> float:
        return 1.0 / self.time_cgs

    def cm3(self) -> float:
        return self.cm() ** 3

    def km_s(self) -> float:
        return self.to_code(unyt_quantity(1.0, "km/s"))

    def erg(self) -> float:
        return self.to_code(unyt_quantity(1.0, "erg"))

    def erg_cm3(self) -> float:
        """One erg per cubic centimeter (a pressure) in code units."""
        return self.to_code(unyt_quantity(1.0, "erg/cm**3"))

    def kpc(self) -> float:
        return self.to_code(unyt_quantity(1.0, "kpc"))

    def msun(self) -> float:
        return self.to_code(unyt_quantity(1.0, "Msun"))

    def myr(self) -> float:
        return self.to_code(unyt_quantity(1.0, "Myr"))

    def mh(self) -> float:
        """Mass of one hydrogen atom in code units."""
        return self.to_code(physics.mh)

    def atomic_mass_unit(self) -> float:
        return self.to_code(physics.amu)

    def k_boltzmann(self) -> float:
        """Boltzmann's constant in code energy per Kelvin."""
        return self.to_code(physics.kboltz)
