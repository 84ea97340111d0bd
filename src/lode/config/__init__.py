#
# config/__init__.py
#
"""
Configuration handling sub-package for lode.

Exports the loading function and core configuration models.
"""

from .loader import load_config
from .models import (
    FrameworkConfig,
    GlobalConfig,
    LodeConfig,
    SshConfig,
)

__all__ = [
    "FrameworkConfig",
    "GlobalConfig",
    "LodeConfig",
    "SshConfig",
    "load_config",
]

# 🔼⚙️
