"""Locates the Java runtime the daemon needs."""

from __future__ import annotations

import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Optional

from ..exceptions import PirateNodeError

logger = logging.getLogger(__name__)

MACOS_JAVA_HOME_TOOL = "/usr/libexec/java_home"


class JavaHomeNotFoundError(PirateNodeError):
    """Raised when no Java runtime can be located."""

    def __init__(self) -> None:
        super().__init__("Could not locate a Java runtime; set JAVA_HOME")


def _discover_from_path() -> Optional[str]:
    java = shutil.which("java")
    if not java:
        return None
    # <home>/bin/java, usually reached through /usr/bin/java -> alternatives symlinks
    return str(Path(java).resolve().parent.parent)


def _discover_macos() -> Optional[str]:
    if platform.system() != "Darwin" or not os.path.exists(MACOS_JAVA_HOME_TOOL):
        return None
    try:
        result = subprocess.run(
            [MACOS_JAVA_HOME_TOOL],
            capture_output=True,
            text=True,
            timeout=10,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"{MACOS_JAVA_HOME_TOOL} failed: {e}")
        return None
    return result.stdout.strip() or None


def discover_java_home() -> Optional[str]:
    """Auto-discover a Java home without looking at JAVA_HOME."""
    return _discover_macos() or _discover_from_path()


def resolve_java_home(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Resolve the Java home passed to the daemon.

    An explicit ``JAVA_HOME`` in the environment wins over auto-discovery.

    Args:
        environ: Environment to consult. Defaults to ``os.environ``.

    Returns:
        Absolute path of the Java home directory.

    Raises:
        JavaHomeNotFoundError: If neither source yields a path.
    """
    env = os.environ if environ is None else environ
    override = env.get("JAVA_HOME")
    if override:
        return override

    discovered = discover_java_home()
    if discovered:
        logger.debug(f"Discovered Java home at {discovered}")
        return discovered

    raise JavaHomeNotFoundError()
