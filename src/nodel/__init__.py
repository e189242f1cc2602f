"""nodel - typed node graphs with collapsible groups.

nodel keeps a directed multigraph of template-backed nodes whose edges carry
relation types, lets a subtree be folded behind a group node, and derives
which nodes and edges a renderer should draw.
"""

__version__ = "0.1.0"
__author__ = "nodel contributors"
__description__ = "Typed node graphs with collapsible groups"

from nodel.config import NodelConfig
from nodel.errors import InvalidOperationError, NodelError, NotFoundError
from nodel.graph import GraphNode, GraphStore, MermaidRenderer

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "NodelConfig",
    "NodelError",
    "NotFoundError",
    "InvalidOperationError",
    "GraphNode",
    "GraphStore",
    "MermaidRenderer",
]
