"""
Cell field storage
==================

Conserved variables of a mesh block are stored as a single array with layout
``(NHYDRO, nk, nj, ni)`` (ghost zones included), components ordered as :py:data:`IDN`,
:py:data:`IM1`, :py:data:`IM2`, :py:data:`IM3`, :py:data:`IEN`.

Two buffers take part in initialization:

- :py:class:`DeviceField` is the block's storage read by the time integrator. Its data is never
  writable from outside; the only way to change it is :py:meth:`DeviceField.deep_copy`.
- :py:class:`HostStagingBuffer` is a transient, exclusively owned host mirror obtained from
  :py:meth:`DeviceField.get_host_mirror_and_copy`. Initialization writes into it freely and then
  hands it back in one transfer.

The transfer swaps the destination data in one step and releases it read-only, so downstream code
never observes a partially written block.
"""
import threading

import numpy as np
from numpy.typing import NDArray

from moving_cloud.utilities.exceptions import BufferOwnershipError

IDN, IM1, IM2, IM3, IEN = range(5)
NHYDRO: int = 5
""" int: Number of conserved hydrodynamic variables."""


class HostStagingBuffer:
    """Host-resident working copy of a :py:class:`DeviceField`.

    Parameters
    ----------
    data: numpy.ndarray
        The array to own. It is not copied.
    owner: DeviceField
        The field this buffer mirrors; it is the only valid transfer destination.
    """

    def __init__(self, data: NDArray[np.floating], owner: "DeviceField"):
        self._data = data
        self.owner = owner
        self._consumed = False

    def __repr__(self):
        state = "consumed" if self._consumed else "live"
        return f"<HostStagingBuffer of {self.owner.name} ({state})>"

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def data(self) -> NDArray[np.floating]:
        if self._consumed:
            raise BufferOwnershipError(
                f"{self} was already transferred and may no longer be written."
            )
        return self._data

    def release(self) -> NDArray[np.floating]:
        """Give up ownership of the staged array."""
        data = self.data
        self._data, self._consumed = None, True
        return data


class DeviceField:
    """Block-owned conserved-variable storage.

    Parameters
    ----------
    shape: tuple of int
        Full array shape, ``(NHYDRO, nk, nj, ni)`` with ghost zones.
    name: str
        Field label.
    dtype: numpy dtype
        Element type.
    """

    def __init__(self, shape: tuple[int, ...], name: str = "cons", dtype=np.float64):
        self.name = name
        self._data = np.zeros(shape, dtype=dtype)
        self._data.flags.writeable = False
        self._released = False
        self._lock = threading.Lock()

    def __repr__(self):
        return f"<DeviceField {self.name} shape={self.shape} released={self._released}>"

    @property
    def shape(self) -> tuple[int, ...]:
        return self._data.shape

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def released(self) -> bool:
        """``True`` once initialization has been transferred in."""
        return self._released

    @property
    def data(self) -> NDArray[np.floating]:
        """Read-only view of the current contents."""
        return self._data

    def get_host_mirror_and_copy(self) -> HostStagingBuffer:
        """A writable host copy of the current contents, bound to this field."""
        return HostStagingBuffer(np.array(self._data, copy=True), owner=self)

    def deep_copy(self, staging: HostStagingBuffer):
        """Replace the contents with ``staging`` and release the field read-only.

        Raises
        ------
        BufferOwnershipError
            If ``staging`` belongs to another field, has the wrong shape, was already
            transferred, or this field was already released.
        """
        if staging.owner is not self:
            raise BufferOwnershipError(f"{staging} cannot be copied into {self}.")

        with self._lock:
            if self._released:
                raise BufferOwnershipError(f"{self} has already been initialized.")

            incoming = staging.release()
            if incoming.shape != self.shape:
                raise BufferOwnershipError(
                    f"Staged shape {incoming.shape} does not match {self}."
                )

            data = np.array(incoming, dtype=self.dtype, copy=True)
            data.flags.writeable = False
            self._data, self._released = data, True
