__all__ = ["AdjacencyEdge", "AdjacencyResolver", "SpatialGrid"]

from .grid import SpatialGrid
from .resolver import AdjacencyEdge, AdjacencyResolver
