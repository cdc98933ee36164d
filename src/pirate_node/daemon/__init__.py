"""Supervision of the local search daemon process."""

from .config_file import ConfigMaterializer, DaemonConfigError
from .java import JavaHomeNotFoundError, resolve_java_home
from .process import DaemonProcess, NodeState
from .readiness import MarkerReadinessDetector, ReadinessDetector

__all__ = [
    "ConfigMaterializer",
    "DaemonConfigError",
    "DaemonProcess",
    "JavaHomeNotFoundError",
    "MarkerReadinessDetector",
    "NodeState",
    "ReadinessDetector",
    "resolve_java_home",
]
