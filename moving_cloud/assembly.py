"""Conversion of the primitive cloud state into conserved variables."""
import numpy as np

from moving_cloud.fields import IDN, IEN, IM1, IM2, IM3, DeviceField, HostStagingBuffer
from moving_cloud.mesh import MeshBlockDomain
from moving_cloud.profiles import PrimitiveState
from moving_cloud.utilities.logging import ComponentLogDescriptor


class ConservedStateAssembler:
    """Write the conserved-variable tuple for every interior cell of a block.

    Parameters
    ----------
    gamma: float
        The adiabatic index.

    Notes
    -----
    The block is first assembled in a host staging buffer and then handed to the device field in a
    single :py:meth:`~fields.DeviceField.deep_copy`. Momentum is carried only along x; the total
    energy is ``P / (gamma - 1) + |m|^2 / (2 rho)``.
    """

    logger = ComponentLogDescriptor()

    def __init__(self, gamma: float):
        self.gamma = gamma

    def assemble(
        self, staging: HostStagingBuffer, domain: MeshBlockDomain, state: PrimitiveState
    ):
        """Fill the interior of ``staging`` from ``state``; ghost zones are left untouched."""
        u = staging.data
        k, j, i = domain.interior

        u[IDN, k, j, i] = state.density
        u[IM1, k, j, i] = state.density * state.velocity
        u[IM2, k, j, i] = 0.0
        u[IM3, k, j, i] = 0.0
        u[IEN, k, j, i] = state.pressure / (self.gamma - 1.0) + (
            np.square(u[IM1, k, j, i])
            + np.square(u[IM2, k, j, i])
            + np.square(u[IM3, k, j, i])
        ) / (2.0 * u[IDN, k, j, i])

    def __call__(self, field: DeviceField, domain: MeshBlockDomain, state: PrimitiveState):
        """Assemble into a fresh host mirror of ``field`` and transfer it back."""
        staging = field.get_host_mirror_and_copy()
        self.assemble(staging, domain, state)
        field.deep_copy(staging)
        self.logger.debug("Transferred %s.", field)
