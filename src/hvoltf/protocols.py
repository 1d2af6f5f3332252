"""
Protocol definitions for the probe collaborator.

A probe answers derivative queries at voxels of a 3D scalar grid. The
histogram volume builder only depends on these interfaces, so any
reconstruction engine can stand in for the default ``GridProbe``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Protocol, runtime_checkable

import numpy as np


class ProbeItem(str, Enum):
    """Quantities a probe can reconstruct at a voxel."""

    VALUE = "value"  # scalar
    GRADIENT = "gradient"  # 3-vector
    HESSIAN = "hessian"  # 3x3 matrix


@runtime_checkable
class Probe(Protocol):
    """
    Protocol for per-voxel probes.

    ``shape`` is the grid size ``(sx, sy, sz)``. Voxels closer than
    ``margin`` to any face cannot be reconstructed; probing them raises
    ``ProbeFailure``.
    """

    shape: tuple[int, int, int]
    margin: int

    def probe(self, query: frozenset[ProbeItem], x: int, y: int, z: int) -> Mapping[ProbeItem, np.ndarray]:
        """
        Reconstruct the queried items at one voxel.

        :param query: Items to reconstruct
        :param x: Voxel index along the first axis
        :param y: Voxel index along the second axis
        :param z: Voxel index along the third axis
        :returns: Item -> value (scalar, [3] or [3, 3])
        """
        ...


@runtime_checkable
class SlabProbe(Probe, Protocol):
    """Probe that can answer a whole z-slice of interior voxels at once."""

    def probe_slab(self, query: frozenset[ProbeItem], z: int) -> Mapping[ProbeItem, np.ndarray]:
        """
        Reconstruct the queried items at every interior voxel of slice ``z``.

        Voxels are ordered with x varying fastest.

        :param query: Items to reconstruct
        :param z: Slice index
        :returns: Item -> array ([N], [N, 3] or [N, 3, 3])
        """
        ...
