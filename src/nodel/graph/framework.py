"""Render collaborator contract consumed by the graph store."""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from .node import GraphNode


class RenderSink(ABC):
    """Abstract base class for renderers driven by a GraphStore."""

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Name of the output format."""
        pass

    @abstractmethod
    def verify(self, template: str, expected_exists: bool = True) -> bool:
        """Whether the template's existence matches ``expected_exists``."""
        pass

    @abstractmethod
    def draw(self, nodes: Mapping[str, GraphNode]) -> Any:
        """Draw the full node set. The store ignores the return value."""
        pass
