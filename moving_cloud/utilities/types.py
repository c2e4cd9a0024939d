"""Special types and type hinting utilities."""
from numbers import Number
from typing import Any, Mapping, Self

from unyt import Unit, unyt_quantity

MaybeUnitScalar = unyt_quantity | Number | tuple[Number, str]


class AttrDict(dict):
    """Attribute accessible dictionary."""

    def __init__(self, mapping: Mapping):
        super(AttrDict, self).__init__(mapping)
        self.__dict__ = self

        for key in self.keys():
            self[key] = self.__class__.from_nested_dict(self[key])

    @classmethod
    def from_nested_dict(cls, data: Any) -> Self:
        """Construct nested AttrDicts from nested dictionaries."""
        if not isinstance(data, dict):
            return data
        else:
            return AttrDict({key: cls.from_nested_dict(data[key]) for key in data})


def ensure_ytquantity(x: MaybeUnitScalar, default_units: Unit | str) -> unyt_quantity:
    """Ensure that an input ``x`` is a unit-ed quantity with the expected units.

    Parameters
    ----------
    x: Any
        The value to enforce units on. Bare numbers are assumed to already carry ``default_units``;
        tuples are read as ``(value, unit)``.
    default_units: Unit
        The unit expected / to be applied if missing.

    Returns
    -------
    unyt_quantity
        The corresponding quantity with correct units.
    """
    if isinstance(x, unyt_quantity):
        return unyt_quantity(x.v, x.units).in_units(default_units)
    elif isinstance(x, tuple):
        return unyt_quantity(x[0], x[1]).in_units(default_units)
    else:
        return unyt_quantity(x, default_units)
