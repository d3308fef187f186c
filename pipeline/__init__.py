"""Pipeline module: runs capture, analysis and reporting in sequence."""

from .runner import MonitorResult, MonitorRunner

__all__ = [
    "MonitorResult",
    "MonitorRunner",
]
