"""
Mesh blocks
===========

Minimal uniform Cartesian mesh used to drive the problem generator. The domain is split into
equally sized :py:class:`MeshBlock` instances, each owning its interior index bounds
(:py:class:`MeshBlockDomain`) and its conserved-variable storage.

Indices follow the ghost-zone convention of block-structured codes: along every axis with more
than one cell, the block array carries ``nghost`` ghost cells on each side and the interior runs
from ``nghost`` to ``nghost + nx - 1`` inclusive. Degenerate axes (a single cell) carry no ghosts.

Refinement, load balancing and rank distribution are not modeled here.
"""
from dataclasses import dataclass, field
from itertools import product
from typing import TYPE_CHECKING, Collection, Iterator

import numpy as np
from numpy.typing import NDArray

from moving_cloud.fields import NHYDRO, DeviceField

if TYPE_CHECKING:
    from moving_cloud.parameters import ParameterInput


@dataclass(frozen=True)
class IndexRange:
    """Inclusive index range ``[s, e]``."""

    s: int
    e: int

    @property
    def size(self) -> int:
        return self.e - self.s + 1

    def indices(self) -> NDArray[np.int_]:
        return np.arange(self.s, self.e + 1)

    def as_slice(self) -> slice:
        return slice(self.s, self.e + 1)


@dataclass(frozen=True)
class UniformCoordinates:
    """Map from array index to cell-center position on a uniform grid.

    Parameters
    ----------
    xmin: tuple of float
        Position of the lower face of the first interior cell along (x1, x2, x3).
    dx: tuple of float
        Cell widths along (x1, x2, x3).
    nghost: tuple of int
        Ghost cells preceding the interior along (x1, x2, x3).
    """

    xmin: tuple[float, float, float]
    dx: tuple[float, float, float]
    nghost: tuple[int, int, int]

    def xc(self, axis: int, idx):
        """Cell-center coordinate along ``axis`` (0, 1, 2 for x1, x2, x3)."""
        return self.xmin[axis] + (np.asarray(idx) - self.nghost[axis] + 0.5) * self.dx[axis]

    def x1c(self, i):
        return self.xc(0, i)

    def x2c(self, j):
        return self.xc(1, j)

    def x3c(self, k):
        return self.xc(2, k)


@dataclass(frozen=True)
class MeshBlockDomain:
    """Interior index bounds and coordinates of a single mesh block."""

    ib: IndexRange
    jb: IndexRange
    kb: IndexRange
    coords: UniformCoordinates

    @property
    def interior_shape(self) -> tuple[int, int, int]:
        return self.kb.size, self.jb.size, self.ib.size

    @property
    def interior(self) -> tuple[slice, slice, slice]:
        """``(k, j, i)`` slices selecting the interior of a block array."""
        return self.kb.as_slice(), self.jb.as_slice(), self.ib.as_slice()

    def cell_centers(self) -> tuple[NDArray, NDArray, NDArray]:
        """Interior cell centers as ``(x, y, z)`` arrays broadcastable to :py:attr:`interior_shape`."""
        x = self.coords.x1c(self.ib.indices())[np.newaxis, np.newaxis, :]
        y = self.coords.x2c(self.jb.indices())[np.newaxis, :, np.newaxis]
        z = self.coords.x3c(self.kb.indices())[:, np.newaxis, np.newaxis]
        return x, y, z


@dataclass
class MeshBlock:
    """A rectangular piece of the domain with its own field storage."""

    gid: int
    domain: MeshBlockDomain
    full_shape: tuple[int, int, int]
    cons: DeviceField = field(init=False, repr=False)

    def __post_init__(self):
        self.cons = DeviceField((NHYDRO, *self.full_shape), name="cons")


class Mesh:
    """A uniform Cartesian mesh split into equally sized blocks.

    Parameters
    ----------
    nx: tuple of int
        Number of interior cells along (x1, x2, x3) for the whole domain.
    block_nx: tuple of int
        Cells per block along (x1, x2, x3); must divide ``nx``.
    bbox: array-like
        ``[[x1min, x2min, x3min], [x1max, x2max, x3max]]`` in code length.
    nghost: int
        Ghost cells per side on every non-degenerate axis.
    """

    def __init__(
        self,
        nx: Collection[int],
        block_nx: Collection[int],
        bbox: Collection[Collection[float]],
        nghost: int = 2,
    ):
        self.nx = tuple(int(n) for n in nx)
        self.block_nx = tuple(int(n) for n in block_nx)
        self.bbox = np.asarray(bbox, dtype="f8").reshape(2, 3)
        self.nghost = int(nghost)

        if any(n % b for n, b in zip(self.nx, self.block_nx)):
            raise ValueError(
                f"Block size {self.block_nx} does not divide mesh size {self.nx}."
            )

        self.blocks: list[MeshBlock] = self._build_blocks()

    def __repr__(self):
        return f"<Mesh nx={self.nx} blocks={len(self)}>"

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[MeshBlock]:
        return iter(self.blocks)

    @classmethod
    def from_input(cls, pin: "ParameterInput") -> "Mesh":
        """Build from ``<parthenon/mesh>`` and ``<parthenon/meshblock>``."""
        nx = [pin.get_integer("parthenon/mesh", f"nx{d}") for d in (1, 2, 3)]
        block_nx = [
            pin.get_or_add_integer("parthenon/meshblock", f"nx{d}", nx[d - 1])
            for d in (1, 2, 3)
        ]
        bbox = [
            [pin.get_real("parthenon/mesh", f"x{d}min") for d in (1, 2, 3)],
            [pin.get_real("parthenon/mesh", f"x{d}max") for d in (1, 2, 3)],
        ]
        nghost = pin.get_or_add_integer("parthenon/mesh", "nghost", 2)
        return cls(nx, block_nx, bbox, nghost=nghost)

    @property
    def dx(self) -> tuple[float, float, float]:
        return tuple(float(d) for d in (self.bbox[1] - self.bbox[0]) / np.asarray(self.nx))

    def _build_blocks(self) -> list[MeshBlock]:
        ng = tuple(self.nghost if n > 1 else 0 for n in self.nx)
        nblocks = [n // b for n, b in zip(self.nx, self.block_nx)]
        full_shape = tuple(b + 2 * g for b, g in zip(self.block_nx, ng))[::-1]
        dx = self.dx

        blocks = []
        # x1 varies fastest, matching the (k, j, i) array layout.
        for gid, (bk, bj, bi) in enumerate(
            product(range(nblocks[2]), range(nblocks[1]), range(nblocks[0]))
        ):
            offset = (bi, bj, bk)
            coords = UniformCoordinates(
                xmin=tuple(
                    float(self.bbox[0, d] + offset[d] * self.block_nx[d] * dx[d])
                    for d in range(3)
                ),
                dx=dx,
                nghost=ng,
            )
            ib, jb, kb = (
                IndexRange(ng[d], ng[d] + self.block_nx[d] - 1) for d in range(3)
            )
            blocks.append(
                MeshBlock(
                    gid=gid,
                    domain=MeshBlockDomain(ib=ib, jb=jb, kb=kb, coords=coords),
                    full_shape=full_shape,
                )
            )

        return blocks
