"""Mermaid flowchart renderer for node graphs."""

import logging
from typing import Iterable, Mapping, Optional

from ..config import RenderConfig
from .framework import RenderSink
from .models import EdgeKind, EdgeSpec, GraphSpec, NodeRole, NodeSpec, safe_identifier
from .node import GraphNode
from .view import build_draw_plan

logger = logging.getLogger(__name__)


class MermaidRenderer(RenderSink):
    """Renders the visible part of a node graph as a Mermaid flowchart."""

    def __init__(
        self,
        templates: Iterable[str] = (),
        config: Optional[RenderConfig] = None,
        default_relation: str = "default",
        title: str = "Node Graph",
    ):
        self.templates: set[str] = set(templates)
        self.config = config or RenderConfig()
        self.default_relation = default_relation
        self.title = title
        self.last_output: str = ""
        self.draw_count = 0

    @property
    def format_name(self) -> str:
        return "mermaid"

    def get_file_extension(self) -> str:
        return ".mmd"

    def add_template(self, template: str) -> None:
        self.templates.add(template)

    def verify(self, template: str, expected_exists: bool = True) -> bool:
        if template and (template in self.templates) == expected_exists:
            return True

        logger.error(f"{'found' if not expected_exists else 'could not find'} template #{template}")
        return False

    def draw(self, nodes: Mapping[str, GraphNode]) -> str:
        spec = build_draw_plan(nodes, title=self.title, label_key=self.config.label_key)
        self.last_output = self.render(spec)
        self.draw_count += 1
        return self.last_output

    def render(self, spec: GraphSpec) -> str:
        """Render a draw plan as Mermaid text."""
        lines = [f"flowchart {self.config.direction}", f"    %% {spec.title}", ""]

        lines.append("    %% Nodes")
        for node in spec.nodes.values():
            lines.append(f"    {self._render_node(node)}")
        lines.append("")

        if spec.edges:
            lines.append("    %% Edges")
            for edge in spec.edges:
                lines.append(f"    {self._render_edge(edge)}")
            lines.append("")

        lines.extend(self._render_styling(spec))
        return "\n".join(lines)

    def _render_node(self, node: NodeSpec) -> str:
        label = self._escape_label(node.label)
        if node.role == NodeRole.COLLAPSED_GROUP:
            # Collapsed groups: subroutine shape
            return f"{node.safe_id}[[{label}]]"
        elif node.role == NodeRole.GROUP:
            return f"{node.safe_id}[{label}]"
        return f"{node.safe_id}({label})"

    def _render_edge(self, edge: EdgeSpec) -> str:
        from_safe = safe_identifier(edge.from_node)
        to_safe = safe_identifier(edge.to_node)
        arrow = "-.->" if edge.kind == EdgeKind.COLLAPSED else "-->"

        if edge.relation != self.default_relation:
            return f"{from_safe} {arrow}|{self._escape_label(edge.relation)}| {to_safe}"
        return f"{from_safe} {arrow} {to_safe}"

    def _render_styling(self, spec: GraphSpec) -> list:
        lines = []
        collapsed = [node for node in spec.nodes.values() if node.role == NodeRole.COLLAPSED_GROUP]
        if collapsed:
            lines.append("    %% Collapsed group styling")
            lines.append("    classDef collapsedGroup fill:#f3e5f5,stroke:#ad00d9,stroke-width:2px")
            for node in collapsed:
                lines.append(f"    class {node.safe_id} collapsedGroup")

        expanded = [node for node in spec.nodes.values() if node.role == NodeRole.GROUP]
        if expanded:
            lines.append("    %% Expanded group styling")
            lines.append("    classDef group stroke:#ad00d9,stroke-dasharray: 3 3")
            for node in expanded:
                lines.append(f"    class {node.safe_id} group")

        return lines

    def _escape_label(self, label: str) -> str:
        """Escape label for Mermaid rendering."""
        if not label:
            return ""

        label = label.replace('"', "'")
        label = label.replace("[", "(")
        label = label.replace("]", ")")
        label = label.replace("{", "(")
        label = label.replace("}", ")")
        label = label.replace("|", ":")

        limit = self.config.max_label_length
        if len(label) > limit:
            label = label[:limit - 3] + "..."

        return label
