"""Graph node entity and its traversal primitives.

Traversals take the full ``nodes`` mapping instead of holding references to
neighbors, so a node never owns a second copy of the graph. Every traversal
uses an explicit stack plus a visited set and therefore terminates on cyclic
input. Ids that no longer resolve (e.g. group ends of deleted nodes) are
skipped rather than treated as errors.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Set, Tuple

from ..errors import InvalidOperationError
from ..models.snapshot import GroupRecord, NodeRecord

logger = logging.getLogger(__name__)

Adjacency = Dict[str, List[str]]


class RelationKind(str, Enum):
    """Which side of a node's adjacency an operation targets."""
    PARENTS = "parents"
    CHILDREN = "children"


@dataclass
class Group:
    """Group membership of a node.

    ``ends`` is captured once when the group is created and is not
    recomputed when the graph below the group changes later.
    """
    name: Optional[str] = None
    collapsed: bool = False
    ends: List[str] = field(default_factory=list)


@dataclass
class GraphNode:
    """A vertex with typed parent/child adjacency."""
    id: str
    template: str
    x: float = 0
    y: float = 0
    data: Dict[str, object] = field(default_factory=dict)
    parents: Adjacency = field(default_factory=dict)
    children: Adjacency = field(default_factory=dict)
    group: Optional[Group] = None  # None for a plain node

    # -- structure -------------------------------------------------------

    def is_leaf(self) -> bool:
        return not any(self.children.values())

    def is_head(self) -> bool:
        return not any(self.parents.values())

    def is_group(self, collapsed: Optional[bool] = None) -> bool:
        """Whether the node is a group, optionally in the given collapsed state."""
        if self.group is None:
            return False
        if collapsed is None:
            return True
        return self.group.collapsed == collapsed

    def is_direct_child(self, node_id: str, relation: str) -> bool:
        return node_id in self.children.get(relation, ())

    def relation_to_child(self, node_id: str) -> Optional[str]:
        """First relation type under which ``node_id`` is a child."""
        for relation, ids in self.children.items():
            if node_id in ids:
                return relation
        return None

    def iter_children(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(relation, child_id)`` pairs over a copy of the adjacency."""
        return _iter_adjacency(self.children)

    def iter_parents(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(relation, parent_id)`` pairs over a copy of the adjacency."""
        return _iter_adjacency(self.parents)

    # -- traversal -------------------------------------------------------

    def compute_leaves(self, nodes: Mapping[str, "GraphNode"], visited: Optional[Set[str]] = None) -> List[str]:
        """Leaf ids reachable through children of any relation type.

        Depth-first, in child order. A node without children is its own
        single leaf. Returns an empty list when this node was already visited.
        """
        if visited is None:
            visited = set()

        leaves: List[str] = []
        stack = [self.id]
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = self if node_id == self.id else nodes.get(node_id)
            if node is None:
                logger.debug(f"Skipping unknown node {node_id} while collecting leaves")
                continue

            if node.is_leaf():
                leaves.append(node_id)
                continue

            stack.extend(reversed(_flatten(node.children)))

        return leaves

    def ancestor_groups(self, nodes: Mapping[str, "GraphNode"], visited: Optional[Set[str]] = None) -> List[str]:
        """Ids of all group nodes found walking up through parents."""
        if visited is None:
            visited = set()
        if self.id in visited:
            return []
        visited.add(self.id)

        groups: List[str] = []
        stack = list(reversed(_flatten(self.parents)))
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = nodes.get(node_id)
            if node is None:
                continue

            if node.is_group():
                groups.append(node_id)
            stack.extend(reversed(_flatten(node.parents)))

        return groups

    def contains_descendant(
        self,
        nodes: Mapping[str, "GraphNode"],
        target_id: str,
        stop_at_id: Optional[str] = None,
    ) -> bool:
        """Whether ``target_id`` is this node or reachable through its children.

        Branches are not followed past ``stop_at_id``; the stop node itself
        still matches when it is the target.
        """
        visited: Set[str] = set()
        stack = [self.id]
        while stack:
            node_id = stack.pop()
            if node_id == target_id:
                return True
            if node_id == stop_at_id or node_id in visited:
                continue
            visited.add(node_id)

            node = self if node_id == self.id else nodes.get(node_id)
            if node is not None:
                stack.extend(reversed(_flatten(node.children)))

        return False

    def group_boundary_contains(self, nodes: Mapping[str, "GraphNode"], target_id: str) -> bool:
        """Whether ``target_id`` lies between this group and one of its ends."""
        if self.group is None:
            return False
        return any(
            self.contains_descendant(nodes, target_id, end_id) for end_id in self.group.ends
        )

    def involved_groups(self, nodes: Mapping[str, "GraphNode"]) -> List[str]:
        """Ids of ancestor groups whose boundary actually contains this node."""
        return [
            group_id
            for group_id in self.ancestor_groups(nodes)
            if nodes[group_id].group_boundary_contains(nodes, self.id)
        ]

    def is_visible(self, nodes: Mapping[str, "GraphNode"]) -> bool:
        """False when any group this node is nested inside is collapsed."""
        return not any(nodes[group_id].group.collapsed for group_id in self.involved_groups(nodes))

    # -- mutation helpers ------------------------------------------------

    def reassign_relation(self, kind: RelationKind, neighbor_id: str, old_type: str, new_type: str) -> None:
        """Move ``neighbor_id`` from ``old_type`` to ``new_type`` in the given adjacency.

        Raises:
            InvalidOperationError: If the neighbor is not listed under ``old_type``
        """
        target = self.parents if RelationKind(kind) == RelationKind.PARENTS else self.children
        current = target.get(old_type, [])
        if neighbor_id not in current:
            raise InvalidOperationError(
                f"{neighbor_id} is not under relation '{old_type}' of {self.id}",
                operation="reassign_relation",
                node_id=self.id,
            )

        current.remove(neighbor_id)
        destination = target.setdefault(new_type, [])
        if neighbor_id not in destination:
            destination.append(neighbor_id)

    # -- snapshot conversion ---------------------------------------------

    def to_record(self) -> NodeRecord:
        group = GroupRecord()
        if self.group is not None:
            group = GroupRecord(
                name=self.group.name,
                collapsed=self.group.collapsed,
                ends=list(self.group.ends),
            )
        return NodeRecord(
            id=self.id,
            template=self.template,
            x=self.x,
            y=self.y,
            data=dict(self.data),
            parents=_copy_adjacency(self.parents),
            children=_copy_adjacency(self.children),
            group=group,
        )

    @classmethod
    def from_record(cls, record: NodeRecord) -> "GraphNode":
        group = None
        if record.group.name or record.group.ends:
            group = Group(
                name=record.group.name,
                collapsed=record.group.collapsed,
                ends=list(record.group.ends),
            )
        return cls(
            id=record.id,
            template=record.template,
            x=record.x,
            y=record.y,
            data=dict(record.data),
            parents=_copy_adjacency(record.parents),
            children=_copy_adjacency(record.children),
            group=group,
        )


def _flatten(adjacency: Adjacency) -> List[str]:
    return [node_id for ids in adjacency.values() for node_id in ids]


def _iter_adjacency(adjacency: Adjacency) -> Iterator[Tuple[str, str]]:
    pairs = [(relation, node_id) for relation, ids in adjacency.items() for node_id in ids]
    return iter(pairs)


def _copy_adjacency(adjacency: Mapping[str, List[str]]) -> Adjacency:
    return {relation: list(ids) for relation, ids in adjacency.items()}
