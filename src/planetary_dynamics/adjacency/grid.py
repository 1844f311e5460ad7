from itertools import product

import numpy as np

NEIGHBOUR_OFFSETS = tuple(product((-1, 0, 1), repeat=3))


class SpatialGrid:
    """
    Uniform 3-D bucket grid. With cell_size equal to the search radius, any
    two points within that radius fall in the same or adjacent cells.
    """

    def __init__(self, cell_size):
        if not cell_size > 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self.cells = {}

    def __len__(self):
        return sum(len(members) for members in self.cells.values())

    def insert(self, keys, positions):
        """
        Args:
            keys (iterable):
                Identifier per point, stored in insertion order
            positions (np.array):
                Nx3 array of coordinates in the same unit as cell_size
        """
        indices = np.floor(np.asarray(positions) / self.cell_size).astype(np.int64)
        for key, index in zip(keys, map(tuple, indices)):
            self.cells.setdefault(index, []).append(key)

    def candidate_pairs(self):
        """
        Yield every unordered pair of keys that share a cell or sit in
        neighbouring cells, each pair exactly once
        """
        for cell, members in self.cells.items():
            for offset in NEIGHBOUR_OFFSETS:
                other = tuple(c + o for c, o in zip(cell, offset))
                if other < cell or other not in self.cells:
                    continue
                others = self.cells[other]
                for i, first in enumerate(members):
                    start = i + 1 if other == cell else 0
                    for second in others[start:]:
                        yield first, second
