"""
Infrastructure layer for shellpm.

Contains abstractions for external systems:
- GitClient: Git command execution
- FileStore: JSON file persistence

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitResult
from .file_store import FileStore

__all__ = [
    'GitClient',
    'GitResult',
    'FileStore',
]
