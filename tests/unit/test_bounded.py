"""
Unit tests for BoundedIndexStore and size-bound eviction.
"""
import json

import pytest

from boundedstore.bounded import BoundedIndexStore, collect_oversize
from boundedstore.exceptions import MechanismError, ReservedKeyError
from boundedstore.index import INDEX_KEY
from boundedstore.mechanism import InMemoryMechanism
from boundedstore.storage import TOMBSTONE, ExpiringStore


def persisted_index(mechanism):
    """Read the index entry straight from the mechanism."""
    text = mechanism.get(INDEX_KEY)
    if text is None:
        return None
    return json.loads(text)["data"]


def fill(store, clock, keys, **kwargs):
    """Set each key to its own name, one millisecond apart."""
    for key in keys:
        clock.advance(1)
        store.set(key, key, **kwargs)


class TestCollectOversize:
    """Test size-bound trimming of a key list."""

    def test_under_limit_returns_copy(self):
        removed = []
        keys = ["a", "b"]
        result = collect_oversize(keys, 2, removed.append)
        assert result == keys
        assert result is not keys
        assert removed == []

    def test_evicts_oldest_prefix(self):
        """Test that the oldest keys are removed exactly once."""
        removed = []
        result = collect_oversize(["a", "b", "c", "d", "e"], 2, removed.append)
        assert result == ["d", "e"]
        assert removed == ["a", "b", "c"]

    def test_removal_failure_propagates(self):
        def fail(key):
            raise MechanismError(f"cannot remove {key}")

        with pytest.raises(MechanismError, match="cannot remove a"):
            collect_oversize(["a", "b"], 1, fail)


class TestBoundedSet:
    """Test set() and the max items invariant."""

    def test_max_items_must_be_positive(self, base_store):
        with pytest.raises(ValueError, match="positive"):
            BoundedIndexStore(base_store, 0)

    @pytest.mark.parametrize("max_items", [2.5, True, "3"])
    def test_max_items_must_be_integer(self, base_store, max_items):
        """Test that non-integer bounds are rejected before any write."""
        with pytest.raises(ValueError, match="positive integer"):
            BoundedIndexStore(base_store, max_items)

    def test_oldest_key_evicted(self, store, mechanism, clock):
        """Test that a fourth key evicts the first with max_items=3."""
        fill(store, clock, ["a", "b", "c", "d"])

        assert store.get("a") is None
        assert [store.get(k) for k in ["b", "c", "d"]] == ["b", "c", "d"]
        assert persisted_index(mechanism) == ["b", "c", "d"]

    def test_only_most_recent_keys_survive(self, make_store, mechanism, clock):
        """Test that many distinct sets leave exactly max_items keys."""
        store = make_store(5)
        keys = [f"key{i}" for i in range(20)]
        fill(store, clock, keys)

        assert store.keys() == keys[-5:]
        assert sorted(k for k in mechanism.keys() if k != INDEX_KEY) == sorted(keys[-5:])

    def test_reset_moves_key_to_youngest(self, store, clock):
        """Test that re-setting a key refreshes its position."""
        fill(store, clock, ["a", "b", "c"])
        clock.advance(1)
        store.set("a", "updated")
        assert store.keys() == ["b", "c", "a"]

        fill(store, clock, ["d"])
        assert store.keys() == ["c", "a", "d"]
        assert store.get("a") == "updated"
        assert store.get("b") is None

    def test_reset_does_not_grow_index(self, store, clock):
        fill(store, clock, ["a", "b"])
        fill(store, clock, ["a", "a", "b"])
        assert store.keys() == ["a", "b"]

    def test_expired_entries_evicted_before_oldest(self, store, clock):
        """Test that expired keys are collected before trimming by age."""
        clock.advance(1)
        store.set("a", "a", expiration=clock.now + 5)
        fill(store, clock, ["b", "c"])
        clock.advance(10)
        fill(store, clock, ["d"])

        assert store.keys() == ["b", "c", "d"]
        assert store.get("b") == "b"

    def test_tombstone_removes_without_eviction(self, make_store, base_store, mechanism, clock):
        """Test that deleting through set() never trims other keys."""
        fill(base_store, clock, ["a", "b", "c", "d"])
        store = make_store(2)

        store.set("a", TOMBSTONE)

        assert mechanism.get("a") is None
        assert store.keys() == ["b", "c", "d"]
        assert persisted_index(mechanism) == ["b", "c", "d"]

    def test_reserved_key_rejected(self, store):
        with pytest.raises(ReservedKeyError):
            store.set(INDEX_KEY, "value")
        with pytest.raises(ReservedKeyError):
            store.remove(INDEX_KEY)
        with pytest.raises(ReservedKeyError):
            store.get(INDEX_KEY)
        with pytest.raises(ReservedKeyError):
            store.get_wrapper(INDEX_KEY)

    def test_max_items_one(self, make_store, clock):
        store = make_store(1)
        fill(store, clock, ["a", "b"])
        assert store.keys() == ["b"]


class TestBoundedRemove:
    """Test remove()."""

    def test_remove_updates_index(self, store, mechanism, clock):
        fill(store, clock, ["a", "b", "c"])
        store.remove("b")

        assert store.get("b") is None
        assert persisted_index(mechanism) == ["a", "c"]

    def test_remove_unknown_key(self, store, mechanism, clock):
        fill(store, clock, ["a"])
        store.remove("ghost")
        assert persisted_index(mechanism) == ["a"]

    def test_remove_without_index_does_not_rebuild(self, store, base_store, mechanism, clock):
        """Test that a missing index is left missing on remove."""
        fill(base_store, clock, ["a", "b"])

        store.remove("a")

        assert mechanism.get(INDEX_KEY) is None
        assert mechanism.get("a") is None
        assert store.keys() == ["b"]


class TestIndexRecovery:
    """Test rebuilding a missing or corrupted index."""

    def test_rebuild_after_index_deleted(self, store, mechanism, clock):
        """Test that the rebuilt order matches creation order."""
        fill(store, clock, ["b", "a", "c"])
        mechanism.remove(INDEX_KEY)

        fill(store, clock, ["d"])

        assert store.keys() == ["a", "c", "d"]
        assert persisted_index(mechanism) == ["a", "c", "d"]
        assert store.get("b") is None

    @pytest.mark.parametrize(
        "corruption",
        [
            "{not json",
            json.dumps({"data": "a,b,c", "creation": 1}),
            json.dumps({"data": ["a", "a"], "creation": 1}),
        ],
    )
    def test_rebuild_after_index_corrupted(self, store, mechanism, clock, corruption):
        fill(store, clock, ["a", "b"])
        mechanism.set(INDEX_KEY, corruption)

        store.collect_expired()

        assert persisted_index(mechanism) == ["a", "b"]

    def test_corrupted_entries_excluded_from_rebuild(self, store, mechanism, clock):
        fill(store, clock, ["a", "b"])
        mechanism.set("b", "garbage")
        mechanism.remove(INDEX_KEY)

        assert store.keys() == ["a"]

    def test_rebuild_failure_aborts_set(self, clock):
        """Test that mechanism errors during rebuild reach the caller."""

        class FailingMechanism(InMemoryMechanism):
            def get(self, key):
                if key == "flaky":
                    raise MechanismError("read failed")
                return super().get(key)

        mechanism = FailingMechanism({"flaky": "{}"})
        store = BoundedIndexStore(ExpiringStore(mechanism, clock=clock), 3)

        with pytest.raises(MechanismError, match="read failed"):
            store.set("a", 1)
        # Value write happened before the failing index read
        assert mechanism.get("a") is not None
        assert mechanism.get(INDEX_KEY) is None


class TestCollection:
    """Test caller initiated collection."""

    def test_collect_expired_scenario(self, store, mechanism, clock):
        """Test that only entries past their expiration are removed."""
        clock.now = 10
        store.set("a", 1, expiration=100)
        clock.now = 20
        store.set("b", 2, expiration=200)
        clock.now = 30
        store.set("c", 3)

        clock.now = 150
        assert store.collect_expired() == ["a"]

        assert store.keys() == ["b", "c"]
        assert persisted_index(mechanism) == ["b", "c"]
        assert mechanism.get("a") is None

    def test_collect_expired_strict(self, store, mechanism, clock):
        """Test that strict collection also drops undecodable entries."""
        fill(store, clock, ["a", "b"])
        mechanism.set("b", "garbage")

        assert store.collect_expired() == []
        assert persisted_index(mechanism) == ["a", "b"]

        assert store.collect_expired(strict=True) == ["b"]
        assert persisted_index(mechanism) == ["a"]
        assert mechanism.get("b") is None

    def test_collect_expired_prunes_stale_keys(self, store, mechanism, clock):
        """Test that index entries without data are dropped."""
        fill(store, clock, ["a", "b"])
        mechanism.remove("a")

        assert store.collect_expired() == ["a"]
        assert persisted_index(mechanism) == ["b"]

    def test_collect_oversize_after_shrinking_bound(self, make_store, mechanism, clock):
        fill(make_store(5), clock, ["a", "b", "c", "d", "e"])

        removed = make_store(2).collect_oversize()

        assert removed == ["a", "b", "c"]
        assert persisted_index(mechanism) == ["d", "e"]
        assert mechanism.get("c") is None

    def test_collect_oversize_expires_first(self, make_store, mechanism, clock):
        """Test that expired keys are removed before the oldest live ones."""
        store = make_store(5)
        fill(store, clock, ["a", "b"])
        clock.advance(1)
        store.set("c", "c", expiration=clock.now + 1)
        fill(store, clock, ["d"])
        clock.advance(10)

        removed = make_store(2).collect_oversize()

        assert removed == ["a", "c"]
        assert persisted_index(mechanism) == ["b", "d"]

    def test_collect_oversize_skip_expired(self, make_store, mechanism, clock):
        store = make_store(5)
        fill(store, clock, ["a", "b"])
        clock.advance(1)
        store.set("c", "c", expiration=clock.now + 1)
        clock.advance(10)

        removed = make_store(2).collect_oversize(skip_expired=True)

        assert removed == ["a"]
        assert persisted_index(mechanism) == ["b", "c"]
