"""Shared fixtures for nodel tests."""

from typing import Dict, Iterable, Tuple

import pytest

from nodel.graph import GraphNode, GraphStore, RenderSink


class RecordingRenderer(RenderSink):
    """Render sink that records every draw."""

    def __init__(self, templates: Iterable[str] = ("tplA", "tplB")):
        self.templates = set(templates)
        self.draws = []

    @property
    def format_name(self) -> str:
        return "recording"

    def verify(self, template: str, expected_exists: bool = True) -> bool:
        return bool(template) and (template in self.templates) == expected_exists

    def draw(self, nodes):
        self.draws.append(sorted(nodes))


def build_nodes(edges: Iterable[Tuple[str, str]], relation: str = "default", extra: Iterable[str] = ()) -> Dict[str, GraphNode]:
    """Build a symmetric node mapping from ``(parent, child)`` pairs."""
    nodes: Dict[str, GraphNode] = {}

    def ensure(node_id: str) -> GraphNode:
        if node_id not in nodes:
            nodes[node_id] = GraphNode(id=node_id, template="tplA")
        return nodes[node_id]

    for node_id in extra:
        ensure(node_id)

    for parent_id, child_id in edges:
        ensure(parent_id).children.setdefault(relation, []).append(child_id)
        ensure(child_id).parents.setdefault(relation, []).append(parent_id)

    return nodes


def assert_symmetric(nodes: Dict[str, GraphNode]) -> None:
    """Assert parent/child adjacency mirrors itself under every relation type."""
    for node in nodes.values():
        for relation, child_ids in node.children.items():
            for child_id in child_ids:
                assert node.id in nodes[child_id].parents.get(relation, [])
        for relation, parent_ids in node.parents.items():
            for parent_id in parent_ids:
                assert node.id in nodes[parent_id].children.get(relation, [])


@pytest.fixture
def renderer():
    """Recording render sink knowing templates tplA and tplB."""
    return RecordingRenderer()


@pytest.fixture
def store(renderer):
    """Empty graph store."""
    return GraphStore(renderer)


@pytest.fixture
def chain(store):
    """Store holding a -> b -> c, returning (store, ids)."""
    a = store.add_node("tplA", 0, 0, {"name": "a"})
    b = store.add_node("tplA", 10, 10, {"name": "b"})
    c = store.add_node("tplB", 20, 20, {"name": "c"})
    store.connect_nodes(a, b)
    store.connect_nodes(b, c)
    return store, {"a": a, "b": b, "c": c}


@pytest.fixture
def make_nodes():
    """Factory building node mappings from edge lists."""
    return build_nodes


@pytest.fixture
def check_symmetric():
    """Adjacency symmetry assertion."""
    return assert_symmetric
