"""Derives what a renderer should draw from the current node set.

Nothing here is cached: the plan is rebuilt from the nodes on every call so
it always reflects the latest collapse state and adjacency.
"""

import logging
from typing import List, Mapping, Optional

from .models import EdgeKind, EdgeSpec, GraphSpec, NodeRole, NodeSpec
from .node import GraphNode

logger = logging.getLogger(__name__)


def visible_node_ids(nodes: Mapping[str, GraphNode]) -> List[str]:
    """Ids of visible nodes in store order."""
    return [node_id for node_id, node in nodes.items() if node.is_visible(nodes)]


def node_label(node: GraphNode, label_key: str = "name") -> str:
    """Collapsed groups show their group name; other nodes a data value."""
    if node.is_group(collapsed=True) and node.group.name:
        return node.group.name
    value = node.data.get(label_key)
    return str(value) if value is not None else node.id


def node_role(node: GraphNode) -> NodeRole:
    if node.is_group(collapsed=True):
        return NodeRole.COLLAPSED_GROUP
    if node.is_group():
        return NodeRole.GROUP
    return NodeRole.PLAIN


def hiding_group(nodes: Mapping[str, GraphNode], node: GraphNode, visible: set[str]) -> Optional[str]:
    """The visible collapsed group that stands in for a hidden node."""
    collapsed = [
        group_id for group_id in node.involved_groups(nodes)
        if nodes[group_id].group.collapsed
    ]
    for group_id in reversed(collapsed):
        if group_id in visible:
            return group_id
    return None


def build_draw_plan(
    nodes: Mapping[str, GraphNode],
    title: str = "Node Graph",
    label_key: str = "name",
) -> GraphSpec:
    """Build the visible nodes and edges for ``nodes``.

    A collapsed group draws the outgoing edges of its ends. An edge whose
    child is hidden is redirected to the collapsed group hiding that child.
    """
    spec = GraphSpec(title=title)
    visible_ids = visible_node_ids(nodes)
    visible = set(visible_ids)

    for node_id in visible_ids:
        node = nodes[node_id]
        spec.add_node(NodeSpec(
            id=node.id,
            label=node_label(node, label_key),
            template=node.template,
            role=node_role(node),
            x=node.x,
            y=node.y,
        ))

    for node_id in visible_ids:
        node = nodes[node_id]
        sources = node.group.ends if node.is_group(collapsed=True) else [node.id]

        for source_id in sources:
            source = nodes.get(source_id)
            if source is None:
                continue

            for relation, child_id in source.iter_children():
                child = nodes.get(child_id)
                if child is None:
                    continue

                if child_id in visible:
                    spec.add_edge(EdgeSpec(node.id, child_id, relation, EdgeKind.DIRECT))
                    continue

                target = hiding_group(nodes, child, visible)
                if target is None or target == node.id:
                    continue
                spec.add_edge(EdgeSpec(node.id, target, relation, EdgeKind.COLLAPSED))

    logger.debug(f"Draw plan has {len(spec.nodes)} nodes and {len(spec.edges)} edges")
    return spec
