#
# src/lode/__init__.py
#
"""
Lode: a test-runner result tree with lazy loading, selective runs and
status aggregation.
"""

from lode.exceptions import ConfigurationError, EntityNotFoundError, LodeError, RunnerError, SnapshotError
from lode.status import Status, StatusPrecedence

__all__ = [
    "ConfigurationError",
    "EntityNotFoundError",
    "LodeError",
    "RunnerError",
    "SnapshotError",
    "Status",
    "StatusPrecedence",
]

# 🔼⚙️
