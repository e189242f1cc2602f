"""Tests for group creation, collapse, movement and group maps."""

from nodel.models import GroupMap


class TestCreateGroup:
    """Group creation captures ends once."""

    def test_ends_are_current_leaves(self, chain):
        store, ids = chain
        assert store.create_group(ids["a"], "pipeline")

        group = store.nodes[ids["a"]].group
        assert group.name == "pipeline"
        assert group.ends == [ids["c"]]
        assert not group.collapsed

    def test_ends_are_a_snapshot(self, chain):
        store, ids = chain
        store.create_group(ids["a"], "pipeline")
        extra = store.add_node("tplA")
        store.connect_nodes(ids["a"], extra)

        assert store.nodes[ids["a"]].group.ends == [ids["c"]]

    def test_group_on_unknown_node(self, store):
        assert not store.create_group("ghost", "nothing")
        assert store.diagnostics.latest().error_type == "NotFoundError"

    def test_recreating_keeps_collapsed_state(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        store.create_group(ids["a"], "renamed")

        group = store.nodes[ids["a"]].group
        assert group.name == "renamed"
        assert group.collapsed


class TestToggleGroup:
    """Collapse/expand and auto-creation."""

    def test_scenario_collapse_hides_child(self, store):
        n1 = store.add_node("tplA", 0, 0, {})
        n2 = store.add_node("tplA", 10, 10, {})
        store.connect_nodes(n1, n2, "default")

        assert store.toggle_group(n1) is True

        group = store.nodes[n1].group
        assert group.ends == [n2]
        assert group.name == f"{n1} group"
        assert not store.nodes[n2].is_visible(store.nodes)
        assert store.nodes[n1].is_visible(store.nodes)

    def test_auto_name_uses_data_name(self, chain):
        store, ids = chain
        store.toggle_group(ids["b"])
        assert store.nodes[ids["b"]].group.name == "b group"

    def test_flip_and_explicit_state(self, chain):
        store, ids = chain
        assert store.toggle_group(ids["a"]) is True
        assert store.toggle_group(ids["a"]) is False
        assert store.toggle_group(ids["a"], collapsed=False) is False
        assert store.toggle_group(ids["a"], collapsed=True) is True

    def test_expanding_reveals_members(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        assert [node.id for node in store.visible_nodes()] == [ids["a"]]

        store.toggle_group(ids["a"], collapsed=False)
        assert len(store.visible_nodes()) == 3

    def test_single_redraw_when_auto_creating(self, chain, renderer):
        store, ids = chain
        draws = len(renderer.draws)
        store.toggle_group(ids["a"])
        assert len(renderer.draws) == draws + 1

    def test_unknown_node(self, store):
        assert store.toggle_group("ghost") is None

    def test_group_queries(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        store.create_group(ids["b"], "inner")

        assert [node.id for node in store.get_groups()] == [ids["a"], ids["b"]]
        assert [node.id for node in store.get_groups(collapsed=True)] == [ids["a"]]


class TestMoveNode:
    """Moving nodes and collapsed groups."""

    def test_plain_move(self, chain):
        store, ids = chain
        assert store.move_node(ids["a"], 50, 60)

        assert (store.nodes[ids["a"]].x, store.nodes[ids["a"]].y) == (50, 60)
        assert (store.nodes[ids["c"]].x, store.nodes[ids["c"]].y) == (20, 20)

    def test_collapsed_group_moves_ends_only(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=True)
        store.move_node(ids["a"], 5, -5)

        assert (store.nodes[ids["c"]].x, store.nodes[ids["c"]].y) == (25, 15)
        # Intermediate members are not shifted
        assert (store.nodes[ids["b"]].x, store.nodes[ids["b"]].y) == (10, 10)

    def test_expanded_group_moves_alone(self, chain):
        store, ids = chain
        store.toggle_group(ids["a"], collapsed=False)
        store.move_node(ids["a"], 5, 5)
        assert (store.nodes[ids["c"]].x, store.nodes[ids["c"]].y) == (20, 20)

    def test_move_unknown_node(self, store):
        assert not store.move_node("ghost", 1, 1)


class TestGroupMaps:
    """Exporting and instantiating group subtrees."""

    def test_export_relative_offsets(self, chain):
        store, ids = chain
        store.create_group(ids["a"], "pipeline")
        group_map = store.export_group_map(ids["a"])

        assert group_map.id == ids["a"]
        assert group_map.group_name == "pipeline"
        assert (group_map.offset_x, group_map.offset_y) == (0, 0)

        (b_entry,) = group_map.children["default"]
        assert b_entry.id == ids["b"]
        assert (b_entry.offset_x, b_entry.offset_y) == (10, 10)
        (c_entry,) = b_entry.children["default"]
        assert c_entry.id == ids["c"]
        assert c_entry.template == "tplB"
        assert c_entry.children == {}

    def test_export_requires_group(self, chain):
        store, ids = chain
        assert store.export_group_map(ids["a"]) is None
        assert store.diagnostics.latest().error_type == "InvalidOperationError"

    def test_export_drops_looping_edges(self, store):
        a = store.add_node("tplA")
        b = store.add_node("tplA")
        store.connect_nodes(a, b)
        store.connect_nodes(b, a)
        store.create_group(a, "loop")

        group_map = store.export_group_map(a)
        (b_entry,) = group_map.children["default"]
        assert b_entry.id == b
        assert b_entry.children == {}

    def test_instantiate_creates_copy(self, chain, renderer, check_symmetric):
        store, ids = chain
        store.create_group(ids["a"], "pipeline")
        group_map = store.export_group_map(ids["a"])
        draws = len(renderer.draws)

        head = store.instantiate_group_map(group_map, 100, 200)

        assert len(store.nodes) == 6
        assert len(renderer.draws) == draws + 1
        new_head = store.nodes[head]
        assert (new_head.x, new_head.y) == (100, 200)
        assert new_head.group.name == "pipeline"

        (middle,) = new_head.children["default"]
        assert (store.nodes[middle].x, store.nodes[middle].y) == (110, 210)
        (leaf,) = store.nodes[middle].children["default"]
        assert (store.nodes[leaf].x, store.nodes[leaf].y) == (120, 220)
        assert store.nodes[leaf].data == {"name": "c"}
        assert new_head.group.ends == [leaf]
        check_symmetric(store.nodes)

    def test_instantiate_unknown_template(self, store):
        group_map = GroupMap(id="x", template="nope")
        assert store.instantiate_group_map(group_map, 0, 0) is None
        assert store.is_empty()
