"""Snapshot records exchanged at the persistence boundary."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

logger = logging.getLogger(__name__)

DataValue = Union[str, bool, int, float]


class GroupRecord(BaseModel):
    """Group state of a node; all defaults means the node is not a group."""

    name: Optional[str] = Field(default=None, description="Group display name")
    collapsed: bool = Field(default=False, description="Whether the group hides its members")
    ends: List[str] = Field(default_factory=list, description="Leaf ids captured when the group was created")


class NodeRecord(BaseModel):
    """A single node as exported by ``GraphStore.to_snapshot``."""

    id: str = Field(description="Unique node identifier")
    template: str = Field(description="Presentation template reference")
    x: float = Field(default=0, description="Horizontal position")
    y: float = Field(default=0, description="Vertical position")
    data: Dict[str, DataValue] = Field(default_factory=dict, description="Caller payload")
    parents: Dict[str, List[str]] = Field(default_factory=dict, description="Parent ids by relation type")
    children: Dict[str, List[str]] = Field(default_factory=dict, description="Child ids by relation type")
    group: GroupRecord = Field(default_factory=GroupRecord)

    model_config = ConfigDict(extra="ignore")


class GroupMap(BaseModel):
    """Reusable description of a group's subtree, positioned relative to its parent."""

    id: str = Field(description="Source node id")
    template: str
    group_name: Optional[str] = Field(default=None, description="Group name, set on the head entry")
    data: Dict[str, DataValue] = Field(default_factory=dict)
    offset_x: float = Field(default=0, description="Offset from the parent entry")
    offset_y: float = Field(default=0, description="Offset from the parent entry")
    children: Dict[str, List["GroupMap"]] = Field(default_factory=dict)


GroupMap.model_rebuild()


_records_adapter = TypeAdapter(List[NodeRecord])
_data_adapter = TypeAdapter(Dict[str, DataValue])


def parse_snapshot(payload: list) -> List[NodeRecord]:
    """Validate a decoded JSON list into node records."""
    return _records_adapter.validate_python(payload)


def parse_node_data(payload: dict) -> Dict[str, DataValue]:
    """Validate a node payload: string keys, string, boolean or number values."""
    return _data_adapter.validate_python(payload)


def read_snapshot(path: Path) -> List[NodeRecord]:
    """Read node records from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid snapshot
    """
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in snapshot {path}: {e}")

    if isinstance(payload, dict) and "nodes" in payload:
        payload = payload["nodes"]

    try:
        records = parse_snapshot(payload)
    except Exception as e:
        raise ValueError(f"Invalid snapshot {path}: {e}")

    logger.info(f"Read {len(records)} node records from {path}")
    return records


def write_snapshot(path: Path, records: List[NodeRecord]) -> Path:
    """Write node records to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([record.model_dump() for record in records], f, indent=2, ensure_ascii=False)

    logger.info(f"Wrote {len(records)} node records to {path}")
    return path
