"""Tests for the generational-index entity store."""
import numpy as np
import pytest

from planetary_dynamics.entity import BodyId, EntityStore
from planetary_dynamics.errors import InvalidId


@pytest.fixture
def store():
    return EntityStore()


class TestAllocate:

    def test_fresh_slots(self, store):
        assert store.allocate() == BodyId(0, 0)
        assert store.allocate() == BodyId(1, 0)
        assert len(store) == 2

    def test_resolve(self, store):
        store.allocate()
        body = store.allocate()
        assert store.resolve(body) == 1

    def test_reuse_bumps_generation(self, store):
        old = store.allocate()
        store.deallocate(old)
        new = store.allocate()
        assert new.index == old.index
        assert new.generation == old.generation + 1
        assert new != old

    def test_ids_in_slot_order(self, store):
        ids = [store.allocate() for _ in range(4)]
        store.deallocate(ids[1])
        assert store.ids() == [ids[0], ids[2], ids[3]]
        np.testing.assert_array_equal(store.alive_slots(), [0, 2, 3])


class TestStaleIds:

    def test_resolve_after_deallocate(self, store):
        body = store.allocate()
        store.deallocate(body)
        with pytest.raises(InvalidId):
            store.resolve(body)

    def test_stale_id_after_reuse(self, store):
        old = store.allocate()
        store.deallocate(old)
        store.allocate()
        with pytest.raises(InvalidId):
            store.resolve(old)
        assert not store.is_alive(old)

    def test_double_free(self, store):
        body = store.allocate()
        store.deallocate(body)
        with pytest.raises(InvalidId):
            store.deallocate(body)

    def test_unknown_slot(self, store):
        with pytest.raises(InvalidId):
            store.resolve(BodyId(5, 0))

    def test_not_a_body_id(self, store):
        store.allocate()
        with pytest.raises(InvalidId):
            store.resolve(0)

    def test_invalid_id_is_a_key_error(self, store):
        with pytest.raises(KeyError):
            store.resolve(BodyId(0, 0))

    def test_alive_count_matches_valid_ids(self, store):
        ids = [store.allocate() for _ in range(5)]
        for body in ids[::2]:
            store.deallocate(body)
        valid = [body for body in ids if store.is_alive(body)]
        assert len(valid) == len(store) == 2


class TestColumns:

    def test_columns_track_slots(self, store):
        mass = store.register_column("mass", default=-1.0)
        ids = [store.allocate() for _ in range(3)]
        assert len(mass) == 3
        store.deallocate(ids[0])
        # Dead slots keep their placeholder
        assert len(mass) == 3

    def test_backfill_on_register(self, store):
        store.allocate()
        store.allocate()
        position = store.register_column("position", shape=(3,))
        assert position.data.shape == (2, 3)

    def test_growth_beyond_initial_capacity(self, store):
        column = store.register_column("value")
        ids = [store.allocate() for _ in range(50)]
        for i, body in enumerate(ids):
            store.set("value", body, float(i))
        assert store.get("value", ids[42]) == 42.0
        assert len(column) == 50

    def test_reused_slot_reset_to_default(self, store):
        store.register_column("mass", default=1.0)
        body = store.allocate()
        store.set("mass", body, 99.0)
        store.deallocate(body)
        new = store.allocate()
        assert store.get("mass", new) == 1.0

    def test_object_column_factory_not_shared(self, store):
        store.register_column("tags", dtype=object, default=list)
        a = store.allocate()
        b = store.allocate()
        store.get("tags", a).append("x")
        assert store.get("tags", b) == []

    def test_get_with_stale_id(self, store):
        store.register_column("mass")
        body = store.allocate()
        store.deallocate(body)
        store.allocate()
        with pytest.raises(InvalidId):
            store.get("mass", body)

    def test_duplicate_column(self, store):
        store.register_column("mass")
        with pytest.raises(ValueError):
            store.register_column("mass")
