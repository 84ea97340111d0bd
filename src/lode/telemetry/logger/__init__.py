#
# src/lode/telemetry/logger/__init__.py
#
from .base import BASE_LOGGER_NAME, StructLogger, setup_logging

__all__ = ["BASE_LOGGER_NAME", "StructLogger", "setup_logging"]

# 🔼⚙️
