"""
System Layer.

This package wraps the privileged filesystem operations performed during
installation and removal.
"""

from .executor import (
    CommandResult,
    Operation,
    OperationKind,
    PrivilegedExecutor,
    is_dir_empty,
)

__all__ = [
    "CommandResult",
    "Operation",
    "OperationKind",
    "PrivilegedExecutor",
    "is_dir_empty",
]
