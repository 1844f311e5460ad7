import logging
from dataclasses import dataclass, field

import astropy.units as u
import numpy as np

from planetary_dynamics.adjacency.grid import SpatialGrid
from planetary_dynamics.entity import BodyId
from planetary_dynamics.util.misc import as_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class AdjacencyEdge:
    """
    Unordered pair of bodies within the adjacency threshold. The lower slot
    is always stored first, so edges sort by (first slot, second slot).
    """

    first: BodyId
    second: BodyId
    distance: u.Quantity = field(compare=False)

    @classmethod
    def between(cls, a, b, distance):
        if b.index < a.index:
            a, b = b, a
        return cls(a, b, distance)

    def __contains__(self, body_id):
        return body_id in (self.first, self.second)

    def other(self, body_id):
        if body_id == self.first:
            return self.second
        if body_id == self.second:
            return self.first
        raise KeyError(body_id)


class AdjacencyResolver:
    """
    Finds every pair of living bodies closer than a threshold distance, from
    the positions committed by the propagator
    """

    def __init__(self, store) -> None:
        self.store = store

    def resolve(self, threshold, predicate=None):
        """
        Args:
            threshold (astropy Quantity):
                Maximum separation for two bodies to be adjacent
            predicate (callable):
                Optional extra visibility test, called as
                predicate(first, second, distance) for pairs within range
        Returns:
            list of AdjacencyEdge:
                Sorted by (first slot, second slot)
        """
        limit = as_value(threshold, u.m, "threshold")
        if not limit > 0:
            raise ValueError(f"threshold must be a positive distance, got {threshold}")

        store = self.store
        slots = store.alive_slots()
        position = store.column("position").data

        grid = SpatialGrid(limit)
        grid.insert(slots, position[slots])

        edges = []
        tested = 0
        for a, b in grid.candidate_pairs():
            tested += 1
            distance = float(np.linalg.norm(position[a] - position[b]))
            if distance > limit:
                continue
            edge = AdjacencyEdge.between(
                store.id_at(a), store.id_at(b), (distance * u.m).to(threshold.unit)
            )
            if predicate is not None and not predicate(edge.first, edge.second, edge.distance):
                continue
            edges.append(edge)
        edges.sort()
        logger.debug(
            "%d adjacency edges from %d candidate pairs over %d bodies",
            len(edges),
            tested,
            len(slots),
        )
        return edges
