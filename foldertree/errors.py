"""
Exceptions raised by the tree engine.

Recoverable request failures (bad drop target, cyclic move, unknown ids) are
not exceptions: they come back inside an OperationResult. What is raised here
is either a broken caller contract or a payload that cannot become a tree.
"""

from typing import Any, Optional


class TreeError(Exception):
    """Base exception for tree errors, with the operation and node involved."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 node_id: Optional[str] = None, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.node_id = node_id
        self.context = context or {}

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(f"Operation: {self.operation}")
        if self.node_id:
            parts.append(f"Node: {self.node_id}")
        parts.append(f"Error: {self.message}")
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")
        return " | ".join(parts)


class IdCollisionError(TreeError):
    """Raised when an insert would put a second node with an existing id in the tree."""

    def __init__(self, node_id: str, parent_id: Optional[str] = None, operation: str = "insert_as_child"):
        super().__init__(f"Node id '{node_id}' already exists in the tree", operation, node_id,
                         context={"parent_id": parent_id if parent_id is not None else "<root>"})
        self.parent_id = parent_id


class TreeValidationError(TreeError):
    """Raised when a loaded structure is not a valid tree."""

    def __init__(self, message: str, operation: str = "validate",
                 validation_failures: Optional[list[str]] = None):
        super().__init__(message, operation)
        self.validation_failures = validation_failures or []

    def __str__(self) -> str:
        base = super().__str__()
        if not self.validation_failures:
            return base
        return base + " | Failures: " + "; ".join(self.validation_failures)


__all__ = ["IdCollisionError", "TreeError", "TreeValidationError"]
