"""Exception hierarchy shared by the node supervisor components."""


class PirateNodeError(Exception):
    """Base exception for node supervisor errors."""


class NodeStateError(PirateNodeError):
    """Raised when an operation is called out of lifecycle order."""


class NodeNotInitializedError(NodeStateError):
    """Raised when the cluster client is used before ``initialize()``."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: cluster client is not initialized "
            "(call initialize() or wait for the node to become ready)"
        )
        self.operation = operation
