# Copyright Rand Arete @ Ananke 2025
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Lifecycle of the language server process.

The server is started lazily by the first request that needs it and is
restarted the same way after it terminates. While it runs, a heartbeat is
sent every few seconds.

States:
    ABSENT -> STARTING -> RUNNING -> TERMINATED -> (STARTING on next use)

When the server terminates the stored handle is cleared, the heartbeat is
cancelled and the request and cancellation counters go back to zero, so a
restarted server sees request ids starting fresh. Request id values used
before the restart may therefore be reused.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Optional

from .config import CodeiumConfig, ServicePaths
from .errors import NotInstalled, Outdated
from .installation import (
    LATEST_SUPPORTED_VERSION,
    InstallationChecker,
    InstallationKind,
)
from .metadata import MetadataBuilder
from .protocol import Heartbeat, Metadata
from .server import CodeiumLanguageServer, LanguageServerHandle

logger = logging.getLogger(__name__)

ServerFactory = Callable[[Path], LanguageServerHandle]


class ServerState(Enum):
    ABSENT = auto()
    STARTING = auto()
    RUNNING = auto()
    TERMINATED = auto()


@dataclass
class RequestCounters:
    """Process-wide request and cancellation counters."""

    request_counter: int = 0
    cancellation_counter: int = 0

    def next_request_id(self) -> int:
        self.request_counter += 1
        return self.request_counter

    def next_cancellation(self) -> int:
        self.cancellation_counter += 1
        return self.cancellation_counter

    def reset(self) -> None:
        self.request_counter = 0
        self.cancellation_counter = 0


class CodeiumLifecycle:
    """Owns the single language server handle and its heartbeat.

    Attributes:
        server: Current handle, None when not started or after termination
        state: Current ServerState
        counters: Request/cancellation counters reset on termination
        language_server_version: Version found by the last installation check
    """

    def __init__(
        self,
        metadata_builder: MetadataBuilder,
        installation_checker: InstallationChecker,
        paths: ServicePaths,
        config: Optional[CodeiumConfig] = None,
        on_service_launched: Optional[Callable[[], None]] = None,
        server_factory: Optional[ServerFactory] = None,
    ):
        self.metadata_builder = metadata_builder
        self.installation_checker = installation_checker
        self.paths = paths
        self.config = config or CodeiumConfig()
        self.on_service_launched = on_service_launched or (lambda: None)
        self.manager_root = Path(
            self.config.manager_root
            or Path(tempfile.gettempdir()) / "codeium-service"
        )

        self.server: Optional[LanguageServerHandle] = None
        self.heartbeat_task: Optional[asyncio.Task] = None
        self.state = ServerState.ABSENT
        self.counters = RequestCounters()
        self.language_server_version = LATEST_SUPPORTED_VERSION

        self._server_factory = server_factory or self._create_language_server
        self._launch_task: Optional[asyncio.Task] = None

    async def ensure_started(self) -> LanguageServerHandle:
        """Return the running handle, launching the server if needed.

        The launch runs in a task owned by the lifecycle. Callers wait on it
        through a shield, so a cancelled caller abandons only its own wait
        and the launch carries on for the others.

        Raises:
            NotInstalled: If no language server is installed
            Outdated: If the installed language server is too old
            ServiceInstalling: If an installation is in progress
            NotSignedIn: If no API key is available
            TransportFailure: If the process cannot be spawned
        """
        launch = self._launch_task
        if launch is None or launch.done():
            if self.server is not None:
                return self.server
            launch = self._launch_task = asyncio.create_task(self._run_launch())
            launch.add_done_callback(_retrieve_exception)
        return await asyncio.shield(launch)

    def build_metadata(self, request_id: Optional[int] = None) -> Metadata:
        """Metadata for a request; defaults to the current request id."""
        if request_id is None:
            request_id = self.counters.request_counter
        return self.metadata_builder.build(request_id, self.language_server_version)

    async def terminate(self) -> None:
        """Stop the server and clear the handle. Idempotent.

        A launch in progress is allowed to finish first so that the process
        it spawns is stopped too.
        """
        launch = self._launch_task
        if launch is not None:
            await asyncio.wait([launch])

        server = self.server
        if server is None:
            return
        heartbeat = self.heartbeat_task
        self._clear(server)
        logger.info("Language server is terminated by request.")

        if heartbeat is not None:
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
        await server.terminate()

    async def _run_launch(self) -> LanguageServerHandle:
        previous_state = self.state
        self.state = ServerState.STARTING
        try:
            return await self._launch()
        except BaseException:
            if self.server is None:
                self.state = previous_state
            raise
        finally:
            self._launch_task = None

    async def _launch(self) -> LanguageServerHandle:
        status = self.installation_checker.check_installation()
        if status.kind is InstallationKind.NOT_INSTALLED:
            raise NotInstalled()
        if status.kind is InstallationKind.OUTDATED:
            self.language_server_version = status.version
            raise Outdated(status.version, status.required_version)
        self.language_server_version = status.version

        metadata = self.build_metadata()
        manager_dir = self._create_manager_dir()

        server = self._server_factory(manager_dir)
        server.termination_handler = lambda: self._handle_termination(server)
        server.launch_handler = lambda: self._handle_launch(server, metadata)
        self.server = server

        try:
            await server.start()
        except BaseException:
            self._clear(server)
            shutil.rmtree(manager_dir, ignore_errors=True)
            raise
        return server

    def _create_language_server(self, manager_dir: Path) -> LanguageServerHandle:
        return CodeiumLanguageServer(
            executable_path=self.paths.language_server,
            manager_dir=manager_dir,
            support_dir=self.paths.support,
            api_server_url=self.config.api_server_url,
            launch_timeout=self.config.launch_timeout,
            port_poll_interval=self.config.port_poll_interval,
            request_timeout=self.config.request_timeout,
            server_command=self.config.server_command,
        )

    def _create_manager_dir(self) -> Path:
        manager_dir = self.manager_root / str(uuid.uuid4())
        manager_dir.mkdir(parents=True, exist_ok=True)
        return manager_dir

    def _handle_launch(self, server: LanguageServerHandle, metadata: Metadata) -> None:
        if self.server is not server:
            return
        self.state = ServerState.RUNNING
        self.on_service_launched()
        if self.heartbeat_task is not None:
            self.heartbeat_task.cancel()
        self.heartbeat_task = asyncio.create_task(self._heartbeat(server, metadata))

    def _handle_termination(self, server: LanguageServerHandle) -> None:
        # A handle that was already replaced must not clear its successor.
        if self.server is not server:
            return
        self._clear(server)
        logger.info("Language server is terminated, will be restarted when needed.")

    def _clear(self, server: LanguageServerHandle) -> None:
        if self.server is not server:
            return
        self.server = None
        if self.heartbeat_task is not None:
            self.heartbeat_task.cancel()
            self.heartbeat_task = None
        if self.config.reset_request_ids_on_restart:
            self.counters.reset()
        self.state = ServerState.TERMINATED

    async def _heartbeat(self, server: LanguageServerHandle, metadata: Metadata) -> None:
        while True:
            try:
                await server.send_request(Heartbeat(metadata=metadata))
            except Exception as e:
                logger.debug(f"Heartbeat failed: {e}")
            await asyncio.sleep(self.config.heartbeat_interval)


def _retrieve_exception(task: asyncio.Task) -> None:
    # Launch failures reach every waiting caller; a launch nobody waits for
    # any more is only logged.
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Language server launch failed: {task.exception()}")
