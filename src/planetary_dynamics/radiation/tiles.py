"""
Surface tiling of a spherical body.

Tiles are the nodes of a spherical Fibonacci spiral, spread evenly so each
covers roughly the same area. The tile count grows with the body radius in
steps of STEP_SIZE, up to MAX_TILES.
"""

from functools import lru_cache

import astropy.units as u
import numpy as np

REFERENCE_RADIUS = 6350 * u.km
REFERENCE_TILES = 96
STEP_SIZE = 4
MAX_TILES = 256
# Three shortest edges per node don't always connect the graph
EDGES_PER_NODE = 3.05


def tile_count(radius):
    """
    Number of surface tiles for a body of the given radius. Earth-sized
    bodies get 96 tiles.
    """
    size = int((radius / REFERENCE_RADIUS).decompose().value * REFERENCE_TILES)
    return min(size // STEP_SIZE * STEP_SIZE, MAX_TILES)


def tile_area(radius):
    n = tile_count(radius)
    if n == 0:
        raise ValueError(f"a body of radius {radius} has no surface tiles")
    return (4 * np.pi * radius**2 / n).to(u.km**2)


def spiral_rotations(n):
    return np.sqrt(n - 0.25) * 2.0


def tile_normals(n):
    """
    Unit outward normals of n spiral tiles, shape (n, 3). Tile 0 sits next to
    the +z pole and the last tile next to the -z pole.
    """
    if n == 0:
        return np.zeros((0, 3))
    fraction = (np.arange(n) + 0.5) / n
    phi = np.arccos(1.0 - 2.0 * fraction)
    theta = phi * spiral_rotations(n)
    return np.column_stack(
        (np.cos(theta) * np.sin(phi), np.sin(theta) * np.sin(phi), np.cos(phi))
    )


@lru_cache(maxsize=None)
def tile_neighbours(n):
    """
    Neighbour graph of the n spiral tiles, built from the shortest
    int(3.05 * n) tile-to-tile chords.
    Returns:
        tuple of tuple:
            Sorted neighbour indices for every tile
    """
    neighbours = [[] for _ in range(n)]
    if n < 2:
        return tuple(tuple(x) for x in neighbours)

    points = tile_normals(n)
    i, j = np.triu_indices(n, k=1)
    dist2 = np.sum((points[i] - points[j]) ** 2, axis=1)
    order = np.argsort(dist2, kind="stable")[: int(n * EDGES_PER_NODE)]
    for k in order:
        neighbours[i[k]].append(int(j[k]))
        neighbours[j[k]].append(int(i[k]))
    return tuple(tuple(sorted(x)) for x in neighbours)


@lru_cache(maxsize=None)
def neighbour_mean(n):
    """
    (n, n) matrix taking a per-tile value to the mean over each tile's
    neighbours. A tile without neighbours maps to itself.
    """
    weights = np.zeros((n, n))
    for i, adjacent in enumerate(tile_neighbours(n)):
        adjacent = list(adjacent) or [i]
        weights[i, adjacent] = 1.0 / len(adjacent)
    weights.flags.writeable = False
    return weights
