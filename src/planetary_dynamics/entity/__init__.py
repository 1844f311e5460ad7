__all__ = ["BodyId", "Column", "EntitySlot", "EntityStore"]

from .store import BodyId, Column, EntitySlot, EntityStore
