"""
Daemon process lifecycle.

Spawns the search daemon as a child process and watches its two output
streams for the lifetime of the process:

- stdout is scanned for the readiness signal; the first matching chunk moves
  the node from STARTING to READY and fires the ready hook exactly once.
- stderr chunks are relayed unmodified as ``error`` events. They never stop
  the process or change its state.

When the child exits, the node moves to DOWN.
"""

from __future__ import annotations

import asyncio
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from ..events import Event, EventBus, EventType, Severity
from ..exceptions import NodeStateError
from ..identity import NodeIdentity
from .readiness import Chunk, ReadinessDetector

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096
TERMINATE_TIMEOUT_SECONDS = 10.0


class NodeState(str, Enum):
    """Lifecycle of a supervised node. There is no failed state."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    DOWN = "down"


class DaemonProcess:
    """
    Owns one child daemon process and its output pumps.

    Usage:
        process = DaemonProcess(root, identity, bus, detector, on_ready=hook)
        await process.spawn(java_home)
        await process.wait_until_ready()
    """

    def __init__(
        self,
        install_root: Path,
        identity: NodeIdentity,
        bus: EventBus,
        detector: ReadinessDetector,
        on_ready: Callable[[], None],
    ):
        """
        Args:
            install_root: Daemon installation root (contains ``bin/``).
            identity: Identity of the node being launched.
            bus: Bus receiving ``error`` and lifecycle events.
            detector: Readiness strategy applied to stdout chunks.
            on_ready: Called synchronously, once, when readiness is detected.
        """
        self.install_root = Path(install_root)
        self.identity = identity
        self.bus = bus
        self.detector = detector
        self.on_ready = on_ready
        self.state = NodeState.NOT_STARTED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._pumps: List[asyncio.Task] = []
        self._exit_watcher: Optional[asyncio.Task] = None
        self._ready: Optional[asyncio.Future] = None

    @property
    def executable(self) -> Path:
        """Daemon launcher script."""
        return self.install_root / "bin" / "elasticsearch"

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    def build_env(self, java_home: str) -> dict:
        """Parent environment with JAVA_HOME injected."""
        env = dict(os.environ)
        env["JAVA_HOME"] = java_home
        return env

    async def spawn(self, java_home: str) -> None:
        """Launch the daemon and start watching its output.

        Raises:
            NodeStateError: If this process was already spawned.
            OSError: If the launcher cannot be executed.
        """
        if self.state is not NodeState.NOT_STARTED:
            raise NodeStateError(f"Daemon already launched (state: {self.state.value})")

        loop = asyncio.get_running_loop()
        self._ready = loop.create_future()

        logger.info(f"Launching {self.executable} for node {self.identity.node_name}")
        self._process = await asyncio.create_subprocess_exec(
            str(self.executable),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self.build_env(java_home),
            cwd=str(self.install_root),
        )
        self.state = NodeState.STARTING
        logger.debug(f"Daemon started with pid {self._process.pid}")

        self._pumps = [
            asyncio.create_task(self._pump(self._process.stdout, self.handle_output)),
            asyncio.create_task(self._pump(self._process.stderr, self.handle_error)),
        ]
        self._exit_watcher = asyncio.create_task(self._watch_exit())

    def handle_output(self, chunk: Chunk) -> None:
        """Process one stdout chunk; fires readiness on the first match."""
        if self.state is not NodeState.STARTING:
            return
        if not self.detector.matches(chunk):
            return

        self.state = NodeState.READY
        logger.info(f"Node {self.identity.node_name} is ready")
        if self._ready is not None and not self._ready.done():
            self._ready.set_result(None)
        try:
            self.on_ready()
        except Exception as e:
            # stdout must keep draining after a failing hook
            logger.error(f"Readiness hook failed for node {self.identity.node_name}: {e}")
        self.bus.emit(Event(
            type=EventType.DAEMON_READY,
            source=self.identity.node_name,
            severity=Severity.INFO,
        ))

    def handle_error(self, chunk: Chunk) -> None:
        """Relay one stderr chunk as an ``error`` event."""
        self.bus.emit(Event(
            type=EventType.ERROR,
            source=self.identity.node_name,
            severity=Severity.ERROR,
            payload={"data": chunk},
        ))

    async def _pump(self, stream: asyncio.StreamReader, handler: Callable[[Chunk], None]) -> None:
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                break
            handler(chunk)

    async def _watch_exit(self) -> None:
        returncode = await self._process.wait()
        await asyncio.gather(*self._pumps, return_exceptions=True)

        was_ready = self.state is NodeState.READY
        self.state = NodeState.DOWN
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(NodeStateError(
                f"Daemon exited with code {returncode} before becoming ready"
            ))
            # Consumed by wait_until_ready(); avoids "exception never retrieved".
            self._ready.exception()

        log = logger.info if was_ready else logger.warning
        log(f"Daemon for node {self.identity.node_name} exited with code {returncode}")
        self.bus.emit(Event(
            type=EventType.DAEMON_EXIT,
            source=self.identity.node_name,
            severity=Severity.INFO if was_ready else Severity.WARNING,
            payload={"returncode": returncode},
        ))

    async def wait_until_ready(self) -> None:
        """Suspend until readiness is observed.

        Raises:
            NodeStateError: If the daemon was never spawned or exited first.
        """
        if self._ready is None:
            raise NodeStateError("Daemon has not been launched")
        await asyncio.shield(self._ready)

    async def wait_closed(self) -> None:
        """Suspend until the child has exited and its streams are drained."""
        if self._exit_watcher is not None:
            await self._exit_watcher

    async def terminate(self, timeout: float = TERMINATE_TIMEOUT_SECONDS) -> None:
        """Stop a still-running child, escalating to SIGKILL after ``timeout``."""
        if self._process is None:
            return

        if self._process.returncode is None:
            logger.info(f"Terminating daemon pid {self._process.pid}")
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self._process.wait(), timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Daemon pid {self._process.pid} did not exit, killing")
                self._process.kill()
                await self._process.wait()

        try:
            await asyncio.wait_for(asyncio.shield(self._exit_watcher), timeout)
        except asyncio.TimeoutError:
            # Output pipes held open by grandchildren; stop reading them.
            for pump in self._pumps:
                pump.cancel()
            await self.wait_closed()
