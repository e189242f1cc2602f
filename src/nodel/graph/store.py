"""Graph store: owns the node set and enforces its structural invariants.

All mutation goes through :class:`GraphStore`. Public operations validate
before they mutate, so a rejected request leaves the graph untouched. Failures
are recovered at this boundary and recorded in the store's diagnostics
collector instead of propagating to the caller.
"""

import functools
import logging
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Union

from pydantic import ValidationError

from ..config import GraphConfig
from ..diagnostics import ErrorCollector, ErrorContext, ErrorSeverity, create_error_collector
from ..errors import CycleGuardTriggered, InvalidOperationError, NodelError, NotFoundError
from ..models.snapshot import DataValue, GroupMap, NodeRecord, parse_node_data, parse_snapshot
from .framework import RenderSink
from .node import GraphNode, Group, RelationKind

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    ErrorSeverity.CRITICAL: logging.CRITICAL,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.INFO: logging.INFO,
}


def reported(default=None):
    """Recover ``NodelError`` from a store operation and return ``default``."""
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except NodelError as error:
                self._report(error, method.__name__)
                return default
        return wrapper
    return decorator


class GraphStore:
    """Model-facing half of the node manager."""

    def __init__(
        self,
        renderer: RenderSink,
        config: Optional[GraphConfig] = None,
        collector: Optional[ErrorCollector] = None,
    ):
        self.nodes: Dict[str, GraphNode] = {}
        self.render = renderer
        self.config = config or GraphConfig()
        self.diagnostics = collector or create_error_collector()
        self.draw_suspend_depth = 0
        self._redraw_owed = False
        self._on_draw_callbacks: List[Callable[[], None]] = []

    @classmethod
    def from_snapshot(
        cls,
        records: Iterable[Union[NodeRecord, dict]],
        renderer: RenderSink,
        config: Optional[GraphConfig] = None,
        collector: Optional[ErrorCollector] = None,
    ) -> "GraphStore":
        """Create a store holding the nodes of a snapshot."""
        store = cls(renderer, config=config, collector=collector)
        store.load(records)
        return store

    # -- helpers ---------------------------------------------------------

    def is_empty(self) -> bool:
        return not self.nodes

    def exists(self, node_id: Optional[str]) -> bool:
        return node_id is not None and node_id in self.nodes

    def verify(self, node_id: Optional[str], expected_exists: bool = True) -> bool:
        """Whether ``node_id``'s existence matches ``expected_exists``."""
        if self.exists(node_id) == expected_exists:
            return True

        logger.debug(f"{'found' if not expected_exists else 'could not find'} #{node_id}")
        return False

    def get(self, node_id: str) -> Optional[GraphNode]:
        return self.nodes.get(node_id)

    def get_heads(self) -> List[GraphNode]:
        return [node for node in self.nodes.values() if node.is_head()]

    def get_leaves(self) -> List[GraphNode]:
        return [node for node in self.nodes.values() if node.is_leaf()]

    def get_groups(self, collapsed: Optional[bool] = None) -> List[GraphNode]:
        return [node for node in self.nodes.values() if node.is_group(collapsed)]

    def visible_nodes(self) -> List[GraphNode]:
        return [node for node in self.nodes.values() if node.is_visible(self.nodes)]

    # -- redraw batching -------------------------------------------------

    @property
    def is_draw_paused(self) -> bool:
        return self.draw_suspend_depth > 0

    def on_draw(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked after every delivered draw."""
        self._on_draw_callbacks.append(callback)

    def redraw(self) -> bool:
        """Request a draw; deferred while drawing is paused.

        Returns:
            True if the draw was delivered now
        """
        if self.is_draw_paused:
            self._redraw_owed = True
            logger.debug(f"Deferring draw request, drawing is paused (depth {self.draw_suspend_depth})")
            return False

        self._deliver_draw()
        return True

    def pause_draw(self) -> None:
        self.draw_suspend_depth += 1
        logger.debug(f"Drawing paused: {self.draw_suspend_depth}")

    def unpause_draw(self) -> bool:
        """Leave one pause level, delivering an owed draw on the last one."""
        if self.draw_suspend_depth == 0:
            error = InvalidOperationError("Drawing is not paused", operation="unpause_draw")
            self._report(error, "unpause_draw", ErrorSeverity.ERROR)
            return False

        self.draw_suspend_depth -= 1
        logger.debug(f"Drawing unpaused: {self.draw_suspend_depth}")

        if self.draw_suspend_depth == 0 and self._redraw_owed:
            self._redraw_owed = False
            self._deliver_draw()
        return True

    @contextmanager
    def draw_paused(self) -> Iterator["GraphStore"]:
        """Batch the draw requests of the enclosed operations into one."""
        self.pause_draw()
        try:
            yield self
        finally:
            self.unpause_draw()

    def _deliver_draw(self) -> None:
        self.render.draw(self.nodes)
        for callback in self._on_draw_callbacks:
            callback()

    # -- node lifecycle --------------------------------------------------

    @reported(default=None)
    def add_node(self, template: str, x: float = 0, y: float = 0, data: Optional[Mapping] = None) -> Optional[str]:
        """Create a node from a template known to the renderer.

        Returns:
            The new node id, or None if the template is unknown
        """
        if not self.render.verify(template):
            raise NotFoundError(f"Unknown template '{template}'", operation="add_node")

        node_id = self._insert_node(template, x, y, self._validate_data(data, "add_node"))
        self.redraw()
        return node_id

    @reported(default=False)
    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every adjacency entry that refers to it."""
        node = self._require(node_id, "delete_node")
        del self.nodes[node_id]

        for relation, child_id in node.iter_children():
            child = self.nodes.get(child_id)
            if child is not None:
                _discard(child.parents, relation, node_id)

        for relation, parent_id in node.iter_parents():
            parent = self.nodes.get(parent_id)
            if parent is not None:
                _discard(parent.children, relation, node_id)

        logger.debug(f"Deleted node {node_id}")
        self.redraw()
        return True

    @reported(default=False)
    def move_node(self, node_id: str, x: float, y: float) -> bool:
        """Move a node; a collapsed group carries its ends along.

        Intermediate members between the group and its ends stay in place.
        """
        node = self._require(node_id, "move_node")
        delta_x = x - node.x
        delta_y = y - node.y
        node.x = x
        node.y = y

        if node.is_group(collapsed=True):
            for end_id in node.group.ends:
                end = self.nodes.get(end_id)
                if end is None or end_id == node_id:
                    continue
                end.x += delta_x
                end.y += delta_y

        logger.debug(f"Moved node {node_id} to {x}, {y}")
        self.redraw()
        return True

    # -- connections -----------------------------------------------------

    @reported(default=False)
    def connect_nodes(self, parent_id: str, child_id: str, relation: Optional[str] = None) -> bool:
        """Add a parent -> child edge; connecting an existing edge changes nothing."""
        if self._link(parent_id, child_id, relation or self.config.default_relation):
            self.redraw()
        return True

    @reported(default=False)
    def disconnect_nodes(self, parent_id: str, child_id: str, relation: Optional[str] = None) -> bool:
        """Remove a parent -> child edge.

        Returns:
            True if an edge was removed
        """
        relation = relation or self.config.default_relation
        if not self._unlink(parent_id, child_id, relation):
            error = NotFoundError(
                f"No '{relation}' edge from {parent_id} to {child_id}",
                operation="disconnect_nodes",
                node_id=parent_id,
            )
            self._report(error, "disconnect_nodes", ErrorSeverity.INFO, related_id=child_id)
            return False

        self.redraw()
        return True

    @reported(default=False)
    def toggle_connect(self, parent_id: str, child_id: str, relation: Optional[str] = None) -> bool:
        """Connect the pair if unconnected, else disconnect it.

        A collapsed group parent stands for its ends, so the toggle is applied
        between each end and the child instead.
        """
        relation = relation or self.config.default_relation
        parent = self._require(parent_id, "toggle_connect")
        self._require(child_id, "toggle_connect")

        if parent.is_group(collapsed=True):
            sources = [end_id for end_id in parent.group.ends if end_id in self.nodes]
        else:
            sources = [parent_id]

        if not sources:
            error = NotFoundError(
                f"Collapsed group {parent_id} has no remaining ends",
                operation="toggle_connect",
                node_id=parent_id,
            )
            self._report(error, "toggle_connect", ErrorSeverity.INFO, related_id=child_id)
            return False

        if child_id in sources:
            raise InvalidOperationError(
                f"Cannot connect {child_id} to itself",
                operation="toggle_connect",
                node_id=child_id,
            )

        for source_id in sources:
            if self.nodes[source_id].is_direct_child(child_id, relation):
                self._unlink(source_id, child_id, relation)
            else:
                self._link(source_id, child_id, relation)

        self.redraw()
        return True

    @reported(default=None)
    def get_connection_type(self, parent_id: str, child_id: str) -> Optional[str]:
        """Relation type of the edge between the pair, first found if several."""
        parent = self._require(parent_id, "get_connection_type")
        self._require(child_id, "get_connection_type")
        return parent.relation_to_child(child_id)

    @reported(default=False)
    def set_connection_type(self, parent_id: str, child_id: str, relation: str) -> bool:
        """Move the edge between the pair to another relation type."""
        parent = self._require(parent_id, "set_connection_type")
        child = self._require(child_id, "set_connection_type")

        previous = parent.relation_to_child(child_id)
        if previous is None or parent_id not in child.parents.get(previous, []):
            raise InvalidOperationError(
                f"No edge from {parent_id} to {child_id}",
                operation="set_connection_type",
                node_id=parent_id,
            )
        if previous == relation:
            return True

        parent.reassign_relation(RelationKind.CHILDREN, child_id, previous, relation)
        child.reassign_relation(RelationKind.PARENTS, parent_id, previous, relation)

        logger.debug(f"Moved edge {parent_id} -> {child_id} from '{previous}' to '{relation}'")
        self.redraw()
        return True

    # -- groups ----------------------------------------------------------

    @reported(default=False)
    def create_group(self, node_id: str, name: Optional[str]) -> bool:
        """Make a node a group bounded by the leaves currently below it."""
        node = self._require(node_id, "create_group")
        self._create_group(node, name)
        self.redraw()
        return True

    @reported(default=None)
    def toggle_group(self, node_id: str, collapsed: Optional[bool] = None) -> Optional[bool]:
        """Collapse or expand a group, creating it on first use.

        Returns:
            The new collapsed state
        """
        node = self._require(node_id, "toggle_group")

        if node.group is None:
            label = node.data.get("name", node.id)
            self._create_group(node, f"{label}{self.config.group_name_suffix}")

        node.group.collapsed = (not node.group.collapsed) if collapsed is None else collapsed
        logger.debug(f"Group {node_id} collapsed: {node.group.collapsed}")
        self.redraw()
        return node.group.collapsed

    @reported(default=None)
    def export_group_map(self, node_id: str) -> Optional[GroupMap]:
        """Describe a group's subtree with positions relative to each parent.

        Ends are terminal entries; branches that loop back are dropped.
        """
        node = self._require(node_id, "export_group_map")
        if node.group is None:
            raise InvalidOperationError(f"{node_id} is not a group", operation="export_group_map", node_id=node_id)

        group_map = self._map_entry(node, set(node.group.ends), node.x, node.y, set())
        group_map.group_name = node.group.name
        return group_map

    @reported(default=None)
    def instantiate_group_map(self, group_map: GroupMap, x: float, y: float) -> Optional[str]:
        """Create fresh nodes from a group map with its head at ``(x, y)``.

        Returns:
            Id of the new head node
        """
        missing = sorted(
            template for template in _map_templates(group_map) if not self.render.verify(template)
        )
        if missing:
            raise NotFoundError(f"Unknown templates: {', '.join(missing)}", operation="instantiate_group_map")
        for entry in _map_entries(group_map):
            self._validate_data(entry.data, "instantiate_group_map")

        with self.draw_paused():
            head_id = self._instantiate_entry(group_map, x, y, {})
            if group_map.group_name:
                self._create_group(self.nodes[head_id], group_map.group_name)
            self.redraw()

        logger.info(f"Instantiated group map {group_map.id} as {head_id}")
        return head_id

    # -- snapshots -------------------------------------------------------

    def to_snapshot(self) -> List[NodeRecord]:
        """Export every node, preserving ids, adjacency, groups, position and data."""
        return [node.to_record() for node in self.nodes.values()]

    @reported(default=False)
    def load(self, records: Iterable[Union[NodeRecord, dict]], replace: bool = True) -> bool:
        """Restore nodes from snapshot records.

        Args:
            records: Node records, or dictionaries in the snapshot shape
            replace: Drop current nodes first; otherwise merge into them
        """
        records = list(records)
        if not all(isinstance(record, NodeRecord) for record in records):
            try:
                records = parse_snapshot([
                    record.model_dump() if isinstance(record, NodeRecord) else record
                    for record in records
                ])
            except ValidationError as e:
                raise InvalidOperationError(f"Invalid snapshot records: {e}", operation="load")

        loaded: Dict[str, GraphNode] = {}
        for record in records:
            if record.id in loaded or (not replace and record.id in self.nodes):
                raise InvalidOperationError(
                    f"Duplicate node id {record.id} in snapshot", operation="load", node_id=record.id
                )
            loaded[record.id] = GraphNode.from_record(record)

        if replace:
            self.nodes = loaded
        else:
            self.nodes.update(loaded)

        logger.info(f"Loaded {len(loaded)} nodes")
        self.redraw()
        return True

    # -- internals -------------------------------------------------------

    def _require(self, node_id: str, operation: str) -> GraphNode:
        node = self.nodes.get(node_id) if node_id is not None else None
        if node is None:
            raise NotFoundError(f"Node {node_id} not found", operation=operation, node_id=node_id)
        return node

    def _generate_id(self) -> str:
        while True:
            node_id = uuid.uuid4().hex[:self.config.id_length]
            if node_id not in self.nodes:
                return node_id

    def _validate_data(self, data: Optional[Mapping], operation: str) -> Dict[str, DataValue]:
        try:
            return parse_node_data(dict(data or {}))
        except (TypeError, ValueError) as e:
            raise InvalidOperationError(f"Invalid node data: {e}", operation=operation)

    def _insert_node(self, template: str, x: float, y: float, data: Mapping[str, DataValue]) -> str:
        node_id = self._generate_id()
        self.nodes[node_id] = GraphNode(id=node_id, template=template, x=x, y=y, data=dict(data))
        logger.debug(f"Added node {node_id} from template {template}")
        return node_id

    def _link(self, parent_id: str, child_id: str, relation: str) -> bool:
        parent = self._require(parent_id, "connect_nodes")
        child = self._require(child_id, "connect_nodes")
        if parent_id == child_id:
            raise InvalidOperationError(
                f"Cannot connect {parent_id} to itself", operation="connect_nodes", node_id=parent_id
            )

        children = parent.children.setdefault(relation, [])
        parents = child.parents.setdefault(relation, [])
        changed = False
        if child_id not in children:
            children.append(child_id)
            changed = True
        if parent_id not in parents:
            parents.append(parent_id)
            changed = True

        if changed:
            logger.debug(f"Connected {parent_id} -> {child_id} ({relation})")
        return changed

    def _unlink(self, parent_id: str, child_id: str, relation: str) -> bool:
        parent = self._require(parent_id, "disconnect_nodes")
        child = self._require(child_id, "disconnect_nodes")

        removed = _discard(parent.children, relation, child_id)
        removed = _discard(child.parents, relation, parent_id) or removed
        if removed:
            logger.debug(f"Disconnected {parent_id} -> {child_id} ({relation})")
        return removed

    def _create_group(self, node: GraphNode, name: Optional[str]) -> None:
        ends = node.compute_leaves(self.nodes)
        if not name and not ends:
            raise InvalidOperationError(
                f"Group on {node.id} needs a name when no leaves are reachable",
                operation="create_group",
                node_id=node.id,
            )
        collapsed = node.group.collapsed if node.group is not None else False
        node.group = Group(name=name, collapsed=collapsed, ends=ends)
        logger.info(f"Created group '{name}' on {node.id} with {len(node.group.ends)} ends")

    def _map_entry(
        self,
        node: GraphNode,
        ends: Set[str],
        origin_x: float,
        origin_y: float,
        path: Set[str],
    ) -> GroupMap:
        if node.id in path:
            raise CycleGuardTriggered(f"Revisited {node.id}", operation="export_group_map", node_id=node.id)

        entry = GroupMap(
            id=node.id,
            template=node.template,
            data=dict(node.data),
            offset_x=node.x - origin_x,
            offset_y=node.y - origin_y,
        )
        if node.id in ends:
            return entry

        below = path | {node.id}
        for relation, child_id in node.iter_children():
            child = self.nodes.get(child_id)
            if child is None:
                continue
            try:
                child_entry = self._map_entry(child, ends, node.x, node.y, below)
            except CycleGuardTriggered:
                logger.debug(f"Dropping looping edge {node.id} -> {child_id} from group map")
                continue
            entry.children.setdefault(relation, []).append(child_entry)

        return entry

    def _instantiate_entry(self, entry: GroupMap, x: float, y: float, created: Dict[str, str]) -> str:
        if entry.id in created:
            return created[entry.id]

        node_x = x + entry.offset_x
        node_y = y + entry.offset_y
        node_id = self._insert_node(entry.template, node_x, node_y, entry.data)
        created[entry.id] = node_id

        for relation, child_entries in entry.children.items():
            for child_entry in child_entries:
                child_id = self._instantiate_entry(child_entry, node_x, node_y, created)
                if child_id != node_id:
                    self._link(node_id, child_id, relation)

        return node_id

    def _report(
        self,
        error: NodelError,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        related_id: Optional[str] = None,
    ) -> str:
        context = ErrorContext(
            operation=operation,
            component=type(self).__name__,
            node_id=error.node_id,
            related_id=related_id,
        )
        logger.log(_LOG_LEVELS[severity], f"{operation}: {error}")
        return self.diagnostics.collect_error(error, context, severity)


def _discard(adjacency: Dict[str, List[str]], relation: str, node_id: str) -> bool:
    ids = adjacency.get(relation)
    if ids and node_id in ids:
        ids.remove(node_id)
        return True
    return False


def _map_entries(entry: GroupMap) -> Iterator[GroupMap]:
    yield entry
    for child_entries in entry.children.values():
        for child_entry in child_entries:
            yield from _map_entries(child_entry)


def _map_templates(entry: GroupMap) -> Set[str]:
    templates = {entry.template}
    for child_entries in entry.children.values():
        for child_entry in child_entries:
            templates |= _map_templates(child_entry)
    return templates
