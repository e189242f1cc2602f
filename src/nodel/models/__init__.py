"""Data models for nodel snapshots."""

from .snapshot import (
    GroupMap,
    GroupRecord,
    NodeRecord,
    parse_node_data,
    parse_snapshot,
    read_snapshot,
    write_snapshot,
)

__all__ = [
    "GroupMap",
    "GroupRecord",
    "NodeRecord",
    "parse_node_data",
    "parse_snapshot",
    "read_snapshot",
    "write_snapshot",
]
