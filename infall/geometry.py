"""
Geometric utilities for the infall engine.

This module provides the two pieces of geometry the engine needs:

- The body lattice: a regular n x n x n grid of cell-centre offsets that
  subdivides one falling body into independently simulated elements.
- The local radial frame of an element: an orthonormal basis whose first
  axis points from the element toward the black-hole centre. The render
  mapper stretches along this axis and compresses along the other two.
"""

import numpy as np
from typing import Tuple
from numpy.typing import NDArray


def lattice_offsets(subdivisions: int, size: float) -> NDArray[np.float64]:
    """
    Cell-centre offsets of a cubic lattice subdividing a body of edge `size`.

    Each axis is cut into `subdivisions` equal cells; the offset of a cell is
    the position of its centre relative to the body centre:

        offset_k = ((i_k + 0.5) / n - 0.5) * size,   i_k = 0..n-1

    Cells are enumerated in C order (x slowest, z fastest), so the row index
    of the returned array is the element index.

    Parameters
    ----------
    subdivisions : int
        Cells per axis, n >= 1.
    size : float
        Edge length of the whole body [m].

    Returns
    -------
    offsets : ndarray, shape (n**3, 3)
        Offsets [m]. For n = 1 the single offset is the zero vector.

    Examples
    --------
    >>> lattice_offsets(2, 2.0)
    array([[-0.5, -0.5, -0.5],
           [-0.5, -0.5,  0.5],
           [-0.5,  0.5, -0.5],
           [-0.5,  0.5,  0.5],
           [ 0.5, -0.5, -0.5],
           [ 0.5, -0.5,  0.5],
           [ 0.5,  0.5, -0.5],
           [ 0.5,  0.5,  0.5]])
    """
    if subdivisions < 1:
        raise ValueError(f"subdivisions must be positive, got {subdivisions}")
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")

    centres = ((np.arange(subdivisions, dtype=np.float64) + 0.5) / subdivisions - 0.5) * size
    gx, gy, gz = np.meshgrid(centres, centres, centres, indexing='ij')

    return np.column_stack([gx.ravel(), gy.ravel(), gz.ravel()])


def radial_basis(position: NDArray[np.float64], fallback_axis=(0.0, 0.0, 1.0)) -> NDArray[np.float64]:
    """
    Orthonormal frame whose first row points from `position` toward the origin.

    Parameters
    ----------
    position : ndarray, shape (3,)
        Element position relative to the black-hole centre.
    fallback_axis : array-like, shape (3,)
        Outward direction used when `position` is (numerically) the origin.

    Returns
    -------
    basis : ndarray, shape (3, 3)
        Rows are (radial, ortho1, ortho2). `radial` is the unit vector toward
        the centre; the other two complete a right-handed frame.

    Notes
    -----
    ortho1 is built from whichever world axis is least aligned with the
    radial direction, which keeps the cross product well conditioned.
    """
    position = np.asarray(position, dtype=np.float64)
    norm = np.linalg.norm(position)
    if norm > 0.0 and np.isfinite(norm):
        radial = -position / norm
    else:
        fallback = np.asarray(fallback_axis, dtype=np.float64)
        radial = -fallback / np.linalg.norm(fallback)

    helper = np.zeros(3)
    helper[np.argmin(np.abs(radial))] = 1.0

    ortho1 = np.cross(radial, helper)
    ortho1 /= np.linalg.norm(ortho1)
    ortho2 = np.cross(radial, ortho1)

    return np.vstack([radial, ortho1, ortho2])


def split_offset(offset: NDArray[np.float64], axis: NDArray[np.float64]) -> Tuple[float, NDArray[np.float64]]:
    """
    Split an offset into its component along `axis` and the lateral remainder.

    Returns
    -------
    along : float
        offset . axis
    lateral : ndarray, shape (3,)
        offset - along * axis
    """
    axis = np.asarray(axis, dtype=np.float64)
    along = float(np.dot(offset, axis))
    return along, offset - along * axis
