"""Tests for the Mermaid renderer."""

import pytest

from nodel.config import RenderConfig
from nodel.graph import GraphStore, MermaidRenderer


@pytest.fixture
def mermaid():
    return MermaidRenderer(templates=["tplA", "tplB"])


@pytest.fixture
def mermaid_store(mermaid):
    return GraphStore(mermaid)


class TestMermaidRenderer:
    """Flowchart output."""

    def test_verify(self, mermaid):
        assert mermaid.verify("tplA")
        assert not mermaid.verify("nope")
        assert mermaid.verify("nope", expected_exists=False)
        assert not mermaid.verify("")

        mermaid.add_template("nope")
        assert mermaid.verify("nope")

    def test_draw_on_every_mutation(self, mermaid_store, mermaid):
        a = mermaid_store.add_node("tplA", data={"name": "Alpha"})
        b = mermaid_store.add_node("tplB", data={"name": "Beta"})
        mermaid_store.connect_nodes(a, b)

        assert mermaid.draw_count == 3
        output = mermaid.last_output
        assert output.startswith("flowchart TD")
        assert f"{a}(Alpha)" in output
        assert f"{a} --> {b}" in output

    def test_relation_label(self, mermaid_store, mermaid):
        a = mermaid_store.add_node("tplA")
        b = mermaid_store.add_node("tplA")
        mermaid_store.connect_nodes(a, b, "uses")
        assert f"{a} -->|uses| {b}" in mermaid.last_output

    def test_collapsed_group_output(self, mermaid_store, mermaid):
        g = mermaid_store.add_node("tplA", data={"name": "Pipe"})
        inner = mermaid_store.add_node("tplA")
        outside = mermaid_store.add_node("tplA")
        mermaid_store.connect_nodes(g, inner)
        mermaid_store.connect_nodes(outside, inner)
        mermaid_store.toggle_group(g, collapsed=True)

        output = mermaid.last_output
        assert f"{g}[[Pipe group]]" in output
        assert f"{outside} -.-> {g}" in output
        assert f"class {g} collapsedGroup" in output
        assert f"    {inner}(" not in output

    def test_direction_and_label_limit(self):
        config = RenderConfig(direction="LR", max_label_length=8)
        renderer = MermaidRenderer(templates=["tplA"], config=config)
        store = GraphStore(renderer)
        node_id = store.add_node("tplA", data={"name": "abcdefghij"})

        assert renderer.last_output.startswith("flowchart LR")
        assert f"{node_id}(abcde...)" in renderer.last_output

    def test_escapes_mermaid_syntax(self, mermaid_store, mermaid):
        node_id = mermaid_store.add_node("tplA", data={"name": 'a[b]|"c"'})
        assert f"{node_id}(a(b):'c')" in mermaid.last_output
