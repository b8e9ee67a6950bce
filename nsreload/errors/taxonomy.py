"""
errors/taxonomy.py - Error classification for the reload core

Every exception raised by nsreload carries an ErrorCode so callers
(reload drivers, editor integrations) can branch on codes rather than
on message text.
"""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional
import uuid


class ErrorCode(Enum):
    """Specific error codes."""

    GENERAL = 1000

    # Dependency (5xxx)
    DEP_CYCLE = 5003
    DEP_SELF_REFERENCE = 5004

    # Snapshot (51xx)
    SNAPSHOT_INVALID = 5101

    # Drain (61xx)
    DRAIN_FAILED = 6101


class NsReloadError(Exception):
    """Base exception for all nsreload errors."""

    code: ErrorCode = ErrorCode.GENERAL

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message
        self.error_id = uuid.uuid4().hex[:8]
        self.created_at = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "type": type(self).__name__,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


class DependencyGraphError(NsReloadError):
    """Base exception for dependency graph errors."""

    code = ErrorCode.DEP_CYCLE


class CyclicDependencyError(DependencyGraphError):
    """
    Raised when a proposed edge would close a cycle.

    Attributes:
        node: The name that was to gain a dependency
        dependency: The name it was to depend on
        cycle: The closed path, starting and ending at ``node``
    """

    def __init__(
        self,
        node: Hashable,
        dependency: Hashable,
        cycle: Optional[List[Hashable]] = None,
    ):
        self.node = node
        self.dependency = dependency
        self.cycle = cycle or [node, dependency, node]

        if node == dependency:
            code = ErrorCode.DEP_SELF_REFERENCE
            message = f"{node!r} cannot depend on itself"
        else:
            code = ErrorCode.DEP_CYCLE
            path = " -> ".join(str(n) for n in self.cycle)
            message = f"Cyclic dependency detected: {path}"

        super().__init__(message, code)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["node"] = str(self.node)
        data["dependency"] = str(self.dependency)
        data["cycle"] = [str(n) for n in self.cycle]
        return data


class SnapshotError(NsReloadError):
    """Raised when a snapshot cannot be turned back into a value."""

    code = ErrorCode.SNAPSHOT_INVALID


class DrainError(NsReloadError):
    """
    Raised when an unloader or loader callback fails during a drain.

    The pending sequences are left intact so the same lists can be
    drained again once the underlying problem is fixed.
    """

    code = ErrorCode.DRAIN_FAILED

    def __init__(self, name: Hashable, stage: str, cause: Optional[BaseException] = None):
        self.name = name
        self.stage = stage
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to {stage} {name!r}{detail}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["name"] = str(self.name)
        data["stage"] = self.stage
        return data
