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
"""Handle on a running Codeium language server process.

The language server is started as a subprocess with a private manager
directory. Once it is listening it drops a file named after its port
number into that directory; from then on requests are JSON bodies POSTed
to ``http://127.0.0.1:<port>/exa.language_server_pb.LanguageServerService/<Method>``.

Lifecycle hooks:
- launch_handler: called once the port is known
- termination_handler: called once when the process exits, for any reason
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

import aiohttp

from .errors import TransportFailure
from .protocol import CodeiumRequest

logger = logging.getLogger(__name__)

TERMINATE_GRACE_PERIOD = 2.0


class LanguageServerHandle(Protocol):
    """What the lifecycle manager needs from a backend handle."""

    termination_handler: Optional[Callable[[], None]]
    launch_handler: Optional[Callable[[], None]]

    async def start(self) -> None:
        ...

    async def send_request(self, request: CodeiumRequest) -> Any:
        ...

    async def terminate(self) -> None:
        ...


def find_port(manager_dir: Path) -> Optional[int]:
    """Port announced by the language server in its manager directory."""
    try:
        names = sorted(p.name for p in Path(manager_dir).iterdir())
    except OSError:
        return None
    for name in names:
        if name.isdigit():
            return int(name)
    return None


class CodeiumLanguageServer:
    """A language server subprocess spoken to over local HTTP.

    Attributes:
        executable_path: Language server binary
        manager_dir: Private directory the server announces its port in
        support_dir: Database directory of the server
        port: Port once the server is ready, else None
    """

    def __init__(
        self,
        executable_path: Path,
        manager_dir: Path,
        support_dir: Path,
        api_server_url: str = "https://server.codeium.com",
        launch_timeout: float = 10.0,
        port_poll_interval: float = 0.2,
        request_timeout: float = 10.0,
        server_command: Optional[List[str]] = None,
    ):
        self.executable_path = Path(executable_path)
        self.manager_dir = Path(manager_dir)
        self.support_dir = Path(support_dir)
        self.api_server_url = api_server_url
        self.launch_timeout = launch_timeout
        self.port_poll_interval = port_poll_interval
        self.request_timeout = request_timeout
        self.server_command = list(server_command or [])

        self.termination_handler: Optional[Callable[[], None]] = None
        self.launch_handler: Optional[Callable[[], None]] = None
        self.port: Optional[int] = None

        self._process: Optional[asyncio.subprocess.Process] = None
        self._ready: Optional[asyncio.Event] = None
        self._failure: Optional[str] = None
        self._port_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._session: Optional[aiohttp.ClientSession] = None
        self._terminating = False
        self._termination_notified = False

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def command(self) -> List[str]:
        return [
            *self.server_command,
            str(self.executable_path),
            "--api_server_url",
            self.api_server_url,
            "--manager_dir",
            str(self.manager_dir),
            "--database_dir",
            str(self.support_dir),
        ]

    async def start(self) -> None:
        """Spawn the process; readiness is reported via launch_handler.

        Raises:
            TransportFailure: If the process cannot be spawned
        """
        if self._process is not None:
            return

        self._ready = asyncio.Event()
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning(f"Failed to start language server: {e}")
            raise TransportFailure(f"Failed to start language server: {e}") from e

        self._watch_task = asyncio.create_task(self._watch_process())
        self._port_task = asyncio.create_task(self._wait_for_port())

    async def send_request(self, request: CodeiumRequest) -> Any:
        """Send a request, waiting for the server to become ready first.

        Returns:
            The request's typed response

        Raises:
            TransportFailure: On any transport or HTTP error
        """
        if self._process is None or self._ready is None:
            raise TransportFailure("Language server is not started")

        await self._ready.wait()
        if self.port is None or self._terminating or not self.is_running:
            raise TransportFailure(self._failure or "Language server is not running")

        session = self._get_session()
        try:
            async with session.post(request.path, json=request.to_dict()) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise TransportFailure(
                        f"HTTP {response.status}: {body}",
                        status_code=response.status,
                        response_body=body,
                    )
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise TransportFailure(f"{request.method} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportFailure(
                f"{request.method} timed out after {self.request_timeout}s"
            ) from e
        except ValueError as e:
            raise TransportFailure(f"{request.method} returned invalid JSON: {e}") from e

        return request.parse_response(data or {})

    async def terminate(self) -> None:
        """Stop the process and release the HTTP session. Idempotent."""
        if self._terminating:
            return
        self._terminating = True

        if self._port_task is not None and not self._port_task.done():
            self._port_task.cancel()
            try:
                await self._port_task
            except asyncio.CancelledError:
                pass

        if self._ready is not None:
            self._failure = self._failure or "Language server was terminated"
            self._ready.set()

        if self._process is not None and self._process.returncode is None:
            try:
                self._process.terminate()
                await asyncio.wait_for(self._process.wait(), timeout=TERMINATE_GRACE_PERIOD)
            except ProcessLookupError:
                pass
            except asyncio.TimeoutError:
                self._process.kill()
                await self._process.wait()

        if self._watch_task is not None:
            await self._watch_task

        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                base_url=f"http://127.0.0.1:{self.port}",
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def _wait_for_port(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.launch_timeout

        while True:
            port = find_port(self.manager_dir)
            if port is not None:
                self.port = port
                self._ready.set()
                logger.info(f"Language server is listening on port {port}")
                if self.launch_handler is not None:
                    self.launch_handler()
                return

            if self._process is None or self._process.returncode is not None:
                return

            if loop.time() >= deadline:
                self._failure = (
                    f"Language server did not report a port within {self.launch_timeout}s"
                )
                logger.warning(self._failure)
                self._ready.set()
                try:
                    self._process.kill()
                except ProcessLookupError:
                    pass
                return

            await asyncio.sleep(self.port_poll_interval)

    async def _watch_process(self) -> None:
        returncode = await self._process.wait()
        logger.debug(f"Language server exited with code {returncode}")

        if not self._ready.is_set():
            self._failure = f"Language server exited with code {returncode} before it was ready"
            self._ready.set()
        if self._port_task is not None and not self._port_task.done():
            self._port_task.cancel()

        shutil.rmtree(self.manager_dir, ignore_errors=True)

        if not self._termination_notified:
            self._termination_notified = True
            if self.termination_handler is not None:
                self.termination_handler()
