import logging
from dataclasses import dataclass

import numpy as np

from planetary_dynamics.errors import InvalidId

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class BodyId:
    """
    Generational index of a body. Only valid while the slot's generation
    matches the one the id was issued with.
    """

    index: int
    generation: int

    def __repr__(self):
        return f"BodyId({self.index}v{self.generation})"


@dataclass
class EntitySlot:
    alive: bool = False
    generation: int = 0


class Column:
    """
    Growable per-slot array. Entries for dead slots stay in place as
    placeholders so the column never shrinks.
    """

    def __init__(self, name, dtype=float, shape=(), default=0.0):
        self.name = name
        self.dtype = np.dtype(dtype)
        self.shape = tuple(shape)
        self.default = default
        self._data = np.empty((0, *self.shape), dtype=self.dtype)
        self._len = 0

    def __len__(self):
        return self._len

    def __repr__(self):
        return f"Column({self.name!r}, len={self._len}, dtype={self.dtype})"

    @property
    def data(self):
        """
        View of the live part of the column, indexed by slot
        """
        return self._data[: self._len]

    def append_default(self):
        if self._len == self._data.shape[0]:
            capacity = max(8, 2 * self._data.shape[0])
            grown = np.empty((capacity, *self.shape), dtype=self.dtype)
            grown[: self._len] = self._data[: self._len]
            self._data = grown
        self._len += 1
        self.reset(self._len - 1)

    def reset(self, slot):
        if self.dtype == object:
            # Default factories keep mutable defaults from being shared
            self._data[slot] = self.default() if callable(self.default) else self.default
        else:
            self._data[slot] = self.default

    def __getitem__(self, slot):
        return self.data[slot]

    def __setitem__(self, slot, value):
        self.data[slot] = value


class EntityStore:
    """
    Arena of body slots. Hands out BodyIds and licenses every registered
    column to be indexed by the slot a BodyId resolves to.
    """

    def __init__(self) -> None:
        self.slots = []
        self._free = []
        self._columns = {}

    def __len__(self):
        return sum(slot.alive for slot in self.slots)

    def __contains__(self, body_id):
        return self.is_alive(body_id)

    def __repr__(self):
        return (
            f"{type(self).__name__}({len(self)} alive, {len(self.slots)} slots, "
            f"columns={list(self._columns)})"
        )

    def register_column(self, name, dtype=float, shape=(), default=0.0):
        """
        Add a per-body column, backfilled with the default for existing slots
        Args:
            name (str):
                Column name, must be unique within the store
            dtype (numpy dtype):
                Element type, object columns accept a default factory
            shape (tuple):
                Trailing shape of each entry, e.g. (3,) for vectors
            default:
                Value (or factory for object columns) for fresh slots
        Returns:
            column (Column):
                The registered column
        """
        if name in self._columns:
            raise ValueError(f"Column {name!r} is already registered")
        column = Column(name, dtype=dtype, shape=shape, default=default)
        for _ in self.slots:
            column.append_default()
        self._columns[name] = column
        return column

    def column(self, name):
        return self._columns[name]

    def allocate(self):
        if self._free:
            slot = self._free.pop()
            for column in self._columns.values():
                column.reset(slot)
        else:
            slot = len(self.slots)
            self.slots.append(EntitySlot())
            for column in self._columns.values():
                column.append_default()
        entry = self.slots[slot]
        entry.alive = True
        body_id = BodyId(slot, entry.generation)
        logger.debug("Allocated %r", body_id)
        return body_id

    def deallocate(self, body_id):
        slot = self.resolve(body_id)
        entry = self.slots[slot]
        entry.alive = False
        entry.generation += 1
        self._free.append(slot)
        logger.debug("Deallocated %r", body_id)

    def resolve(self, body_id):
        """
        Validate a BodyId and return its slot index
        Raises:
            InvalidId:
                The id is unknown, dead or from an older generation
        """
        if not isinstance(body_id, BodyId):
            raise InvalidId(body_id, "not a BodyId")
        if not 0 <= body_id.index < len(self.slots):
            raise InvalidId(body_id, "unknown slot")
        entry = self.slots[body_id.index]
        if entry.generation != body_id.generation:
            raise InvalidId(body_id, "expired reference")
        if not entry.alive:
            raise InvalidId(body_id, "body is not alive")
        return body_id.index

    def is_alive(self, body_id):
        try:
            self.resolve(body_id)
        except InvalidId:
            return False
        return True

    def get(self, name, body_id):
        return self._columns[name][self.resolve(body_id)]

    def set(self, name, body_id, value):
        self._columns[name][self.resolve(body_id)] = value

    def alive_slots(self):
        """
        Slot indices of living bodies in ascending order
        """
        return np.array(
            [i for i, slot in enumerate(self.slots) if slot.alive], dtype=int
        )

    def id_at(self, slot):
        slot = int(slot)
        entry = self.slots[slot]
        if not entry.alive:
            raise InvalidId(BodyId(slot, entry.generation), "body is not alive")
        return BodyId(slot, entry.generation)

    def ids(self):
        return [BodyId(i, slot.generation) for i, slot in enumerate(self.slots) if slot.alive]
