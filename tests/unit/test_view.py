"""Tests for the draw plan derivation."""

from nodel.graph.models import EdgeKind, EdgeSpec, NodeRole
from nodel.graph.view import build_draw_plan, node_label, visible_node_ids


class TestDrawPlan:
    """Visible nodes and edges."""

    def test_plain_graph(self, chain):
        store, ids = chain
        spec = build_draw_plan(store.nodes)

        assert list(spec.nodes) == [ids["a"], ids["b"], ids["c"]]
        assert spec.edges == [
            EdgeSpec(ids["a"], ids["b"], "default", EdgeKind.DIRECT),
            EdgeSpec(ids["b"], ids["c"], "default", EdgeKind.DIRECT),
        ]

    def test_collapsed_group_draws_edges_of_its_ends(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        d = store.add_node("tplA", data={"name": "d"})
        store.connect_nodes(ids["c"], d, "uses")

        spec = build_draw_plan(store.nodes)

        assert list(spec.nodes) == [ids["a"], d]
        assert spec.edges == [EdgeSpec(ids["a"], d, "uses", EdgeKind.DIRECT)]

    def test_edge_into_collapsed_group_is_redirected(self, chain):
        store, ids = chain
        outside = store.add_node("tplA")
        store.connect_nodes(outside, ids["b"])
        store.connect_nodes(outside, ids["c"])
        store.toggle_group(ids["a"], collapsed=True)

        spec = build_draw_plan(store.nodes)

        assert spec.edges == [EdgeSpec(outside, ids["a"], "default", EdgeKind.COLLAPSED)]

    def test_expanding_restores_edges(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        store.toggle_group(ids["a"], collapsed=False)

        spec = build_draw_plan(store.nodes)
        assert len(spec.nodes) == 3
        assert all(edge.kind == EdgeKind.DIRECT for edge in spec.edges)

    def test_nested_collapsed_groups_redirect_to_visible_one(self, chain):
        store, ids = chain
        outside = store.add_node("tplA")
        store.connect_nodes(outside, ids["c"])
        store.toggle_group(ids["b"], collapsed=True)
        store.toggle_group(ids["a"], collapsed=True)

        spec = build_draw_plan(store.nodes)
        assert EdgeSpec(outside, ids["a"], "default", EdgeKind.COLLAPSED) in spec.edges
        assert ids["b"] not in spec.nodes

    def test_child_hidden_only_by_hidden_groups_draws_no_edge(self, store):
        h = store.add_node("tplA")
        g = store.add_node("tplA")
        c = store.add_node("tplA")
        outside = store.add_node("tplA")
        store.connect_nodes(h, g)
        store.create_group(h, "outer")
        store.connect_nodes(g, c)
        store.toggle_group(g, collapsed=True)
        store.toggle_group(h, collapsed=True)
        store.connect_nodes(outside, c)

        spec = build_draw_plan(store.nodes)

        assert list(spec.nodes) == [h, outside]
        assert spec.edges == []

    def test_roles(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        store.create_group(ids["c"], "solo")

        spec = build_draw_plan(store.nodes)
        assert spec.nodes[ids["a"]].role == NodeRole.COLLAPSED_GROUP
        assert ids["c"] not in spec.nodes

        store.toggle_group(ids["a"], collapsed=False)
        spec = build_draw_plan(store.nodes)
        assert spec.nodes[ids["a"]].role == NodeRole.GROUP
        assert spec.nodes[ids["b"]].role == NodeRole.PLAIN
        assert spec.nodes[ids["c"]].role == NodeRole.GROUP

    def test_visible_node_ids(self, chain):
        store, ids = chain
        store.toggle_group(ids["b"], collapsed=True)
        assert visible_node_ids(store.nodes) == [ids["a"], ids["b"]]


class TestLabels:
    """Node labels."""

    def test_label_sources(self, chain):
        store, ids = chain
        assert node_label(store.nodes[ids["a"]]) == "a"
        assert node_label(store.nodes[ids["a"]], label_key="missing") == ids["a"]

        store.toggle_group(ids["a"], collapsed=True)
        assert node_label(store.nodes[ids["a"]]) == "a group"
