"""
Integration tests for Snapshot reads and deletes.

Tests cover:
- Full and selective get
- Edge list pages
- Reads of missing nodes
- collection, remove/disconnect and destroy
"""

import pytest

from sdk.graphmodel.errors import PartitionUndefinedError, StoreError, ValidationError
from sdk.graphmodel.query import ALL, EdgeListQuery
from sdk.graphmodel.schema import ModelSchema, edge
from sdk.graphmodel.snapshot import Snapshot
from sdk.graphmodel.store.base import ThroughputExceededError
from sdk.graphmodel.store.memory import InMemoryGraphStore

THING = ModelSchema(
    key="Name",
    properties=("P1", "P2"),
    edges=(edge("E1"), edge("E2"), edge("Likes", many=True)),
)
TARGET = ModelSchema(key="Value")


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def things(store):
    return Snapshot(store, type="Thing", schema=THING, tenant="t1", max_gsik=4)


async def seed(store):
    """Create targetX (data 9) and a Thing with P1, P2 and E1 -> targetX."""
    targets = Snapshot(
        store,
        type="Target",
        schema=TARGET,
        tenant="t1",
        max_gsik=4,
        node_generator=lambda tenant: "targetX",
    )
    await targets.create({"Value": 9})
    things = Snapshot(
        store,
        type="Thing",
        schema=THING,
        tenant="t1",
        max_gsik=4,
        node_generator=lambda tenant: "n1",
    )
    await things.create({"Name": "thing", "P1": 1, "P2": 2, "E1": "targetX"})
    store.reset_calls()


class TestGet:
    """Tests for full reads."""

    @pytest.mark.asyncio
    async def test_full_read(self, store, things):
        """A full read issues three concurrent reads."""
        await seed(store)

        thing = await things.get("n1")

        assert store.call_count() == 3
        assert {name for name, _ in store.calls} == {
            "get_node_data",
            "get_node_properties",
            "get_node_edges",
        }
        assert store.max_in_flight == 3
        assert thing.property_map == {"P1": 1, "P2": 2}
        assert thing.edge_map["E1"].target == "targetX"
        assert thing.edge_map["E1"].data == 9
        assert thing.document == {
            "id": "n1",
            "Name": "thing",
            "P1": 1,
            "P2": 2,
            "E1": "targetX",
            "@E1": 9,
        }
        assert len(thing.history) == 3

    @pytest.mark.asyncio
    async def test_read_caches_max_gsik(self, store):
        """A Snapshot without max_gsik learns it from the node row."""
        await seed(store)
        empty = Snapshot(store, type="Thing", schema=THING, tenant="t1")

        thing = await empty.get("n1")
        updated = await thing.set("P1", 10)

        assert thing.max_gsik == 4
        assert store.call_count("get_node") == 0
        assert updated.property_map["P1"] == 10

    @pytest.mark.asyncio
    async def test_reread_bound_node(self, store, things):
        await seed(store)
        thing = await things.get("n1")
        await store.create_property(tenant="t1", node="n1", type="P2", data=20, max_gsik=4)

        refreshed = await thing.get()

        assert refreshed.property_map["P2"] == 20
        assert thing.property_map["P2"] == 2
        assert len(refreshed.history) == 6

    @pytest.mark.asyncio
    async def test_missing_node(self, store, things):
        """Reading a missing node is not an error."""
        missing = await things.get("ghost")

        assert missing.is_empty
        assert missing.node is None
        assert missing.data is None
        assert missing.properties == ()
        assert missing.edges == ()
        assert missing.document == {}
        assert len(missing.history) == 3

    @pytest.mark.asyncio
    async def test_missing_node_can_be_created(self, store, things):
        """The EMPTY result of a missing read accepts create."""
        missing = await things.get("ghost", properties=ALL)

        created = await missing.create({"Name": "thing"})

        assert missing.is_empty
        assert created.data == "thing"
        assert [e.operation for e in created.history][:2] == ["get_node", "get_node_type"]

    @pytest.mark.asyncio
    async def test_deleted_node_reads_empty(self, store, things):
        await seed(store)
        thing = await things.get("n1")
        await store.delete_node("n1")

        refreshed = await thing.get()

        assert refreshed.is_empty
        assert refreshed.max_gsik == 4

    @pytest.mark.asyncio
    async def test_node_required(self, things):
        with pytest.raises(ValidationError):
            await things.get()

    @pytest.mark.asyncio
    async def test_read_failure_settles_all_calls(self, store, things):
        await seed(store)
        store.fail_next("get_node_properties", ThroughputExceededError("throttled"))

        with pytest.raises(StoreError) as exc_info:
            await things.get("n1")

        assert exc_info.value.operation == "get_node_properties"
        assert [e.ok for e in exc_info.value.history] == [True, False, True]


class TestSelectiveGet:
    """Tests for reads with a selection."""

    @pytest.mark.asyncio
    async def test_selected_property(self, store, things):
        """Only the node row and the named rows are read."""
        await seed(store)

        thing = await things.get("n1", properties="P1")

        assert [name for name, _ in store.calls] == ["get_node", "get_node_type"]
        assert thing.property_map == {"P1": 1}
        assert thing.data == "thing"

    @pytest.mark.asyncio
    async def test_all_selection(self, store, things):
        await seed(store)

        thing = await things.get("n1", properties=ALL, edges=ALL)

        assert store.call_count("get_node_type") == 4
        assert thing.property_map == {"P1": 1, "P2": 2}
        assert [row.type for row in thing.edges] == ["E1"]

    @pytest.mark.asyncio
    async def test_undeclared_names_ignored(self, store, things):
        await seed(store)

        await things.get("n1", properties=["P1", "Other"], edges=["Likes"])

        assert store.call_count("get_node_type") == 1

    @pytest.mark.asyncio
    async def test_edge_list_page(self, store, things):
        """Edge lists are read in pages by discriminator prefix."""
        await seed(store)
        for i in range(5):
            await store.create_edge(
                tenant="t1", node="n1", type=f"Likes#{i}", target=f"u{i}", max_gsik=4
            )
        store.reset_calls()

        thing = await things.get("n1", edge_lists=[EdgeListQuery("Likes", limit=2)])
        filtered = await things.get(
            "n1", edge_lists=[EdgeListQuery("Likes", begins_with="4")]
        )

        _, params = store.calls[1]
        assert params == {"node": "n1", "limit": 2, "begins_with": "Likes#"}
        assert [row.target for row in thing.edges] == ["u0", "u1"]
        assert thing.document["Likes"] == {"0": "u0", "@0": None, "1": "u1", "@1": None}
        assert [row.target for row in filtered.edges] == ["u4"]

    @pytest.mark.asyncio
    async def test_edge_list_default_limit(self, store):
        await seed(store)
        things = Snapshot(store, type="Thing", schema=THING, tenant="t1", max_gsik=4, page_limit=3)

        await things.get("n1", edge_lists=[EdgeListQuery("Likes")])

        _, params = store.calls[1]
        assert params["limit"] == 3


class TestCollection:
    """Tests for listing all nodes of a type."""

    @pytest.mark.asyncio
    async def test_collection(self, store, things):
        await seed(store)
        for name in ("a", "b", "c"):
            await things.create({"Name": name, "P1": 1})
        store.reset_calls()

        items = await things.collection()

        assert store.call_count() == 1
        assert sorted(item.data for item in items) == ["a", "b", "c", "thing"]
        assert all(item.max_gsik == 4 for item in items)
        assert all(not item.is_empty for item in items)

    @pytest.mark.asyncio
    async def test_collection_resolves_max_gsik(self, store):
        await seed(store)
        thing = await Snapshot(store, type="Thing", schema=THING, tenant="t1").get("n1")
        store.reset_calls()

        items = await thing.evolve(max_gsik=None).collection()

        assert store.call_count("get_node") == 1
        assert [item.node for item in items] == ["n1"]

    @pytest.mark.asyncio
    async def test_collection_requires_max_gsik(self, store):
        empty = Snapshot(store, type="Thing", schema=THING, tenant="t1")

        with pytest.raises(PartitionUndefinedError):
            await empty.collection()


class TestRemoveAndDestroy:
    """Tests for deletes."""

    @pytest.mark.asyncio
    async def test_remove_property(self, store, things):
        await seed(store)
        thing = await things.get("n1")

        updated = await thing.remove("P1")

        assert updated.property_map == {"P2": 2}
        assert "P1" not in updated.document
        assert thing.property_map["P1"] == 1
        assert [row.type for row in store.rows("n1")] == ["Thing", "E1", "P2"]

    @pytest.mark.asyncio
    async def test_disconnect_edge(self, store, things):
        await seed(store)
        thing = await things.get("n1")

        updated = await thing.disconnect("E1")

        assert updated.edges == ()
        assert "@E1" not in updated.document

    @pytest.mark.asyncio
    async def test_remove_requires_bound_snapshot(self, things):
        with pytest.raises(ValidationError):
            await things.remove("P1")

    @pytest.mark.asyncio
    async def test_destroy(self, store, things):
        """destroy deletes every row and returns an EMPTY Snapshot."""
        await seed(store)
        thing = await things.get("n1")

        destroyed = await thing.destroy()

        assert destroyed.is_empty
        assert destroyed.data is None
        assert destroyed.properties == ()
        assert destroyed.edges == ()
        assert destroyed.document == {}
        assert destroyed.history[-1].operation == "delete_node"
        assert store.rows("n1") == []
        assert not thing.is_empty

    @pytest.mark.asyncio
    async def test_destroy_by_id(self, store, things):
        await seed(store)

        destroyed = await things.destroy("n1")

        assert destroyed.is_empty
        assert store.rows("n1") == []
        assert store.rows("targetX") != []

    @pytest.mark.asyncio
    async def test_destroyed_snapshot_can_create(self, store, things):
        await seed(store)
        thing = await things.get("n1")

        destroyed = await thing.destroy()
        recreated = await destroyed.create({"Name": "again"})

        assert recreated.node != "n1"
        assert recreated.data == "again"
