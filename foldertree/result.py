"""Typed results for tree operations that may be refused without raising."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Tree


class Outcome(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"


class Failure(str, Enum):
    """Why a request did not change the tree."""

    NOT_FOUND = "not_found"
    TARGET_NOT_FOUND = "target_not_found"
    NOT_A_CONTAINER = "not_a_container"
    INVALID_TARGET = "invalid_target"
    CYCLIC_MOVE = "cyclic_move"
    TOO_DEEP = "too_deep"


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural edit.

    ``tree`` is always a complete snapshot: the new one when the edit was
    applied, otherwise the input tree untouched.
    """

    tree: Tree
    outcome: Outcome
    failure: Failure | None = None
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.FAILED

    @property
    def changed(self) -> bool:
        return self.outcome is Outcome.APPLIED

    @classmethod
    def applied(cls, tree: Tree, message: str, **details: Any) -> OperationResult:
        return cls(tree, Outcome.APPLIED, None, message, details)

    @classmethod
    def noop(cls, tree: Tree, message: str, failure: Failure | None = None, **details: Any) -> OperationResult:
        return cls(tree, Outcome.NOOP, failure, message, details)

    @classmethod
    def failed(cls, tree: Tree, failure: Failure, message: str, **details: Any) -> OperationResult:
        return cls(tree, Outcome.FAILED, failure, message, details)

    def as_dict(self) -> dict[str, Any]:
        """Report fields without the tree, for logs and JSON output."""
        return {
            "outcome": self.outcome.value,
            "failure": self.failure.value if self.failure else None,
            "msg": self.message,
            **self.details,
        }


__all__ = ["Failure", "OperationResult", "Outcome"]
