"""
Unit tests for schema declarations and document views.

Tests cover:
- EdgeDef / ModelSchema validation
- Cardinality helpers
- Document building from rows
"""

import pytest

from sdk.graphmodel.documents import EdgeRef, build_document, edge_map, edge_view, property_map
from sdk.graphmodel.schema import Cardinality, EdgeDef, ModelSchema, edge
from sdk.graphmodel.store.base import Row


class TestModelSchema:
    """Tests for ModelSchema."""

    def test_plain_strings_are_one_edges(self):
        """Edge names given as strings default to ONE cardinality."""
        schema = ModelSchema(key="Name", edges=["Author"])

        assert schema.edges == (EdgeDef("Author", Cardinality.ONE),)
        assert schema.one_edges[0].name == "Author"
        assert schema.many_edges == ()

    def test_many_edges(self):
        """edge(..., many=True) declares an edge list."""
        schema = ModelSchema(key="Name", edges=(edge("Author"), edge("Likes", many=True)))

        assert [e.name for e in schema.many_edges] == ["Likes"]
        assert schema.get_edge("Likes").many
        assert schema.get_edge("Unknown") is None

    def test_collections_are_tuples(self):
        """Lists are normalized to tuples."""
        schema = ModelSchema(key="Name", properties=["Genre", "Pages"])

        assert schema.properties == ("Genre", "Pages")

    def test_key_required(self):
        """Empty key is rejected."""
        with pytest.raises(ValueError, match="Key is undefined"):
            ModelSchema(key="")

    def test_duplicate_names_rejected(self):
        """A name cannot be both a property and an edge."""
        with pytest.raises(ValueError, match="Duplicate"):
            ModelSchema(key="Name", properties=("Author",), edges=("Author",))

    def test_separator_rejected(self):
        """Names cannot contain the list edge separator."""
        with pytest.raises(ValueError):
            ModelSchema(key="Name", properties=("Bad#Name",))
        with pytest.raises(ValueError):
            edge("Likes#x", many=True)

    def test_empty_edge_name_rejected(self):
        with pytest.raises(ValueError):
            EdgeDef("")


class TestDocuments:
    """Tests for document views."""

    @pytest.fixture
    def schema(self):
        return ModelSchema(
            key="Name",
            properties=("Genre",),
            edges=(edge("Author"), edge("Likes", many=True)),
        )

    def test_property_map(self):
        rows = [Row(node="n1", type="P1", data=1), Row(node="n1", type="P2", data=2)]

        assert property_map(rows) == {"P1": 1, "P2": 2}

    def test_edge_map(self):
        rows = [Row(node="n1", type="E1", data=9, target="x")]

        assert edge_map(rows) == {"E1": EdgeRef(target="x", data=9)}

    def test_scalar_edge_view(self, schema):
        """Scalar edges expose the target and the @-prefixed data."""
        rows = [Row(node="n1", type="Author", data="Brandon", target="a1")]

        assert edge_view(schema, rows) == {"Author": "a1", "@Author": "Brandon"}

    def test_list_edge_view(self, schema):
        """List edge rows are grouped by relation and keyed by discriminator."""
        rows = [
            Row(node="n1", type="Likes#d1", data="Bob", target="u1"),
            Row(node="n1", type="Likes#d2", data="Alice", target="u2"),
        ]

        assert edge_view(schema, rows) == {
            "Likes": {"d1": "u1", "@d1": "Bob", "d2": "u2", "@d2": "Alice"},
        }

    def test_undeclared_list_type_is_scalar(self, schema):
        """Rows of undeclared relations are kept as scalar edges."""
        rows = [Row(node="n1", type="Other#d1", data=None, target="x")]

        assert edge_view(schema, rows) == {"Other#d1": "x", "@Other#d1": None}

    def test_build_document(self, schema):
        properties = [Row(node="n1", type="Genre", data="Fantasy")]
        edges = [Row(node="n1", type="Author", data="Brandon", target="a1")]

        document = build_document(schema, "n1", "Elantris", properties, edges)

        assert document == {
            "id": "n1",
            "Name": "Elantris",
            "Genre": "Fantasy",
            "Author": "a1",
            "@Author": "Brandon",
        }

    def test_build_document_without_key(self, schema):
        document = build_document(schema, "n1", None, [], [], include_key=False)

        assert document == {"id": "n1"}

    def test_row_relation_and_discriminator(self):
        row = Row(node="n1", type="Likes#abc")

        assert row.relation == "Likes"
        assert row.discriminator == "abc"
        assert Row(node="n1", type="Genre").discriminator is None
