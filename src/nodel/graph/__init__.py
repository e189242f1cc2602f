"""Graph model, store and renderers for nodel."""

from .framework import RenderSink
from .mermaid import MermaidRenderer
from .models import EdgeKind, EdgeSpec, GraphSpec, NodeRole, NodeSpec
from .node import GraphNode, Group, RelationKind
from .store import GraphStore
from .view import build_draw_plan, visible_node_ids

__all__ = [
    "GraphNode",
    "Group",
    "RelationKind",
    "GraphStore",
    "RenderSink",
    "MermaidRenderer",
    "GraphSpec",
    "NodeSpec",
    "EdgeSpec",
    "NodeRole",
    "EdgeKind",
    "build_draw_plan",
    "visible_node_ids",
]
