"""Utilities module for physics routines and constants."""
import os

from unyt import physical_constants as pc
from unyt import unyt_quantity

from moving_cloud.utilities.config import mcparams

mh: unyt_quantity = (pc.mh).to("g")
#: :py:class:`unyt.unyt_quantity`: Hydrogen mass in grams.
amu: unyt_quantity = unyt_quantity(1.0, "amu").to("g")
#: :py:class:`unyt.unyt_quantity`: Atomic mass unit in grams.
kboltz: unyt_quantity = (pc.kboltz).to("erg/K")
#: :py:class:`unyt.unyt_quantity`: Boltzmann's constant in cgs.
X_H: float = mcparams.config.physics.hydrogen_abundance
""" float: The cosmological hydrogen abundance.

The adopted value for :math:`X_H` may be changed in the ``moving_cloud`` configuration. Default is 0.76.
"""

_RANK_VARIABLES = ("OMPI_COMM_WORLD_RANK", "PMI_RANK", "PMIX_RANK", "SLURM_PROCID")


def mean_molecular_weight(hydrogen_abundance: float = None) -> float:
    r"""The mean molecular mass of a fully ionized H/He plasma, ignoring metals.

    .. math::

        \mu = \frac{1}{2X_H + \frac{3}{4}(1-X_H)}

    Parameters
    ----------
    hydrogen_abundance: float, optional
        The hydrogen mass fraction. Defaults to the configured :py:data:`X_H`.
    """
    if hydrogen_abundance is None:
        hydrogen_abundance = X_H

    return 1.0 / (2.0 * hydrogen_abundance + 0.75 * (1.0 - hydrogen_abundance))


def mean_molecular_weight_from_helium(he_mass_fraction: float) -> float:
    r"""The same quantity as :py:func:`mean_molecular_weight`, written with the helium mass fraction :math:`Y`.

    .. math::

        \mu = \frac{4}{8 - 5Y}
    """
    return 4.0 / (8.0 - 5.0 * he_mass_fraction)


def process_rank() -> int:
    """Rank of this process as reported by the MPI launcher, ``0`` when running serially."""
    for variable in _RANK_VARIABLES:
        if variable in os.environ:
            return int(os.environ[variable])

    return 0
