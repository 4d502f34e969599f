"""
Infrastructure layer for tagguard.

Contains the abstraction over the version-control system:
- GitClient: Git tag command execution (list, resolve, create,
  delete, push, fetch)

It provides a clean interface that can be replaced by an in-memory
fake for testing.
"""

from .git_client import GitClient, GitResult, PushResult

__all__ = [
    'GitClient',
    'GitResult',
    'PushResult',
]
