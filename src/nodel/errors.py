"""Error taxonomy for nodel graph operations."""

from typing import Optional


class NodelError(Exception):
    """Base class for recoverable graph operation failures."""

    def __init__(self, message: str, operation: str = "", node_id: Optional[str] = None):
        self.operation = operation
        self.node_id = node_id
        super().__init__(message)


class NotFoundError(NodelError):
    """Raised when a node id or template reference is unknown."""
    pass


class InvalidOperationError(NodelError):
    """Raised for structurally nonsensical requests."""
    pass


class CycleGuardTriggered(NodelError):
    """Internal signal that a traversal revisited a node."""
    pass
