r"""
Cloud profiles
==============

Primitive state of the moving cloud problem. The cloud sits at the coordinate origin; the
transition from cloud to ambient medium is a ``tanh`` sigmoid in the normalized radius
:math:`r_{\rm cl} = r \times f_{\rm cl}`,

.. math::

    w = \frac{1}{2}\left[1 - \tanh\left(s\,(r_{\rm cl} - 1)\right)\right],

with fixed steepness :math:`s = 10`. Density and velocity are blended with :math:`w`:

.. math::

    \rho = \rho_{\rm amb} + w\,(\rho_{\rm cl} - \rho_{\rm amb}), \qquad v_x = w\,v_{\rm cl}.

The ambient medium is at rest and only the x component of the velocity is set. Pressure is
uniform. The smooth edge keeps the interface from exciting grid-scale oscillations.
"""
from typing import TYPE_CHECKING, NamedTuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from moving_cloud.utilities.logging import ComponentLogDescriptor

if TYPE_CHECKING:
    from moving_cloud.mesh import MeshBlockDomain
    from moving_cloud.parameters import ProblemContext, SimulationParameters

STEEPNESS: float = 10.0
""" float: Steepness of the tanh transition at the cloud edge."""


def normalized_radius(x: ArrayLike, y: ArrayLike, z: ArrayLike, cloud_radius_factor: float):
    """Distance from the cloud center in units of the cloud radius."""
    rad = np.sqrt(np.square(x) + np.square(y) + np.square(z))
    return rad * cloud_radius_factor


def blend_factor(rad_cl: ArrayLike, steepness: float = STEEPNESS):
    """Weight of the cloud state; 1/2 exactly at ``rad_cl == 1``."""
    return 0.5 * (1.0 - np.tanh(steepness * (np.asarray(rad_cl) - 1.0)))


def cloud_density(rad_cl: ArrayLike, rho_ambient: float, rho_cloud: float):
    return rho_ambient + blend_factor(rad_cl) * (rho_cloud - rho_ambient)


def cloud_velocity(rad_cl: ArrayLike, velocity_cloud: float):
    return blend_factor(rad_cl) * velocity_cloud


class PrimitiveState(NamedTuple):
    """Primitive variables over a block interior, each of shape ``(nk, nj, ni)``."""

    density: NDArray[np.floating]
    velocity: NDArray[np.floating]
    pressure: NDArray[np.floating]


class ProfileInitializer:
    """Evaluate the moving cloud profile on mesh block interiors.

    Parameters
    ----------
    context: ProblemContext
        The resolved problem context.
    """

    logger = ComponentLogDescriptor()

    def __init__(self, context: "ProblemContext"):
        self.context = context

    @property
    def parameters(self) -> "SimulationParameters":
        return self.context.parameters

    def primitive_state(self, domain: "MeshBlockDomain") -> PrimitiveState:
        p = self.parameters
        x, y, z = domain.cell_centers()

        rad_cl = np.broadcast_to(
            normalized_radius(x, y, z, p.cloud_radius_factor), domain.interior_shape
        )
        density = cloud_density(rad_cl, p.rho_ambient, p.rho_cloud)
        velocity = cloud_velocity(rad_cl, p.velocity_cloud)
        pressure = np.full(domain.interior_shape, p.pressure)

        self.logger.debug(
            "Profile on %s: rho in [%g, %g].", domain.interior_shape, density.min(), density.max()
        )
        return PrimitiveState(density=density, velocity=velocity, pressure=pressure)
