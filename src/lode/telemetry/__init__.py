#
# src/lode/telemetry/__init__.py
#
"""
Logging setup and shared logger types for lode.
"""

from .logger import StructLogger, setup_logging

__all__ = ["StructLogger", "setup_logging"]

# 🔼⚙️
