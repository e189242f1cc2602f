"""Draw plan data models handed from the graph view to renderers."""

import re
from dataclasses import dataclass, field
from enum import Enum


class NodeRole(str, Enum):
    """How a visible node is presented."""
    PLAIN = "plain"
    GROUP = "group"
    COLLAPSED_GROUP = "collapsed_group"


class EdgeKind(str, Enum):
    """Edge kinds in a draw plan."""
    DIRECT = "direct"          # Child is visible
    COLLAPSED = "collapsed"    # Child is hidden, edge ends at its collapsed group


@dataclass
class NodeSpec:
    """A node to draw."""
    id: str
    label: str
    template: str
    role: NodeRole
    x: float = 0
    y: float = 0

    @property
    def safe_id(self) -> str:
        """Get ID safe for diagram rendering (alphanumeric + underscore)."""
        return safe_identifier(self.id)


@dataclass(frozen=True)
class EdgeSpec:
    """An edge to draw."""
    from_node: str
    to_node: str
    relation: str
    kind: EdgeKind = EdgeKind.DIRECT


@dataclass
class GraphSpec:
    """Visible nodes and the edges between them."""
    title: str
    nodes: dict[str, NodeSpec] = field(default_factory=dict)
    edges: list[EdgeSpec] = field(default_factory=list)

    def add_node(self, node: NodeSpec) -> None:
        self.nodes[node.id] = node

    def add_edge(self, edge: EdgeSpec) -> bool:
        """Add an edge unless an identical one is already present."""
        if edge in self.edges:
            return False
        self.edges.append(edge)
        return True


def safe_identifier(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", value)
