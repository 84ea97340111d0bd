# src/lode/runtime/__init__.py

"""
Runtime coordination: orchestrator, run handler and the TUI bridge.
"""

from .orchestrator import RunOrchestrator
from .run_handler import RunHandler
from .tui_interface import TUIInterface

__all__ = ["RunHandler", "RunOrchestrator", "TUIInterface"]
