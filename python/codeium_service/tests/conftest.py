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
"""Pytest configuration for codeium_service tests.

Puts the ``python`` source directory on the path so the tests run without
an installed package, and provides an in-memory language server double.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

import pytest
from hypothesis import HealthCheck, settings

# The first draw of st.text() builds Hypothesis' unicode charmap cache, which
# can trip the too_slow health check on a fresh checkout.
settings.register_profile("default", suppress_health_check=[HealthCheck.too_slow])
settings.load_profile("default")

python_dir = Path(__file__).parent.parent.parent
if str(python_dir) not in sys.path:
    sys.path.insert(0, str(python_dir))

from codeium_service.auth import StaticAuthProvider  # noqa: E402
from codeium_service.config import CodeiumConfig  # noqa: E402
from codeium_service.errors import TransportFailure  # noqa: E402
from codeium_service.installation import InstallationStatus  # noqa: E402
from codeium_service.protocol import CodeiumRequest, GetCompletion  # noqa: E402
from codeium_service.service import CodeiumService  # noqa: E402


class FakeLanguageServer:
    """In-memory stand-in for CodeiumLanguageServer.

    Records every request. GetCompletions answers with one item per call,
    tagged with the request id, unless completion_items is set. Calls can
    be held back with gates, consumed in order. start() can be slowed
    down with start_delay or made to fail with start_error.
    """

    def __init__(self, manager_dir: Optional[Path] = None):
        self.manager_dir = manager_dir
        self.termination_handler: Optional[Callable[[], None]] = None
        self.launch_handler: Optional[Callable[[], None]] = None
        self.requests: List[CodeiumRequest] = []
        self.started = False
        self.terminated = False
        self.launch_on_start = True
        self.start_delay = 0.0
        self.start_error: Optional[Exception] = None
        self.fail_methods: Set[str] = set()
        self.completion_items: Optional[List[Dict[str, Any]]] = None
        self.raw_completion_response: Optional[Dict[str, Any]] = None
        self.gates: List[asyncio.Event] = []

    async def start(self) -> None:
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            raise self.start_error
        self.started = True
        if self.launch_on_start:
            self.launch()

    def launch(self) -> None:
        if self.launch_handler is not None:
            self.launch_handler()

    def crash(self) -> None:
        if self.termination_handler is not None:
            self.termination_handler()

    async def terminate(self) -> None:
        self.terminated = True
        self.crash()

    async def send_request(self, request: CodeiumRequest) -> Any:
        if not self.started:
            raise TransportFailure("Language server is not started")
        self.requests.append(request)
        if request.method in self.fail_methods:
            raise TransportFailure(f"{request.method} failed")

        if isinstance(request, GetCompletion):
            if self.gates:
                await self.gates.pop(0).wait()
            return request.parse_response(self._completion_response(request))
        return request.parse_response({})

    def requests_of(self, method: str) -> List[CodeiumRequest]:
        return [r for r in self.requests if r.method == method]

    def _completion_response(self, request: GetCompletion) -> Dict[str, Any]:
        if self.raw_completion_response is not None:
            return self.raw_completion_response
        if self.completion_items is not None:
            return {"completionItems": self.completion_items}
        request_id = request.metadata.request_id
        return {
            "completionItems": [
                {
                    "completion": {
                        "completionId": f"c{request_id}",
                        "text": f"suggestion {request_id}",
                    },
                    "range": {
                        "startPosition": {"row": "1", "col": "2"},
                        "endPosition": {"row": "1", "col": "8"},
                    },
                }
            ]
        }


class StaticInstallationChecker:
    def __init__(self, status: InstallationStatus):
        self.status = status
        self.calls = 0

    def check_installation(self) -> InstallationStatus:
        self.calls += 1
        return self.status


@dataclass
class ServiceHarness:
    service: CodeiumService
    servers: List[FakeLanguageServer] = field(default_factory=list)
    launches: List[int] = field(default_factory=list)

    @property
    def server(self) -> FakeLanguageServer:
        return self.servers[-1]

    @property
    def lifecycle(self):
        return self.service.lifecycle


@pytest.fixture
def config(tmp_path) -> CodeiumConfig:
    return CodeiumConfig(
        support_root=tmp_path / "support",
        manager_root=tmp_path / "managers",
        heartbeat_interval=0.01,
    )


@pytest.fixture
def make_service(config) -> Callable[..., ServiceHarness]:
    """Factory for a CodeiumService wired to FakeLanguageServer instances."""

    def factory(
        key: Optional[str] = "test-key",
        status: Optional[InstallationStatus] = None,
        project_root: str = "/project",
        configure: Optional[Callable[[FakeLanguageServer], None]] = None,
        **config_overrides: Any,
    ) -> ServiceHarness:
        for name, value in config_overrides.items():
            setattr(config, name, value)

        servers: List[FakeLanguageServer] = []
        launches: List[int] = []

        def server_factory(manager_dir: Path) -> FakeLanguageServer:
            server = FakeLanguageServer(manager_dir)
            if configure is not None:
                configure(server)
            servers.append(server)
            return server

        service = CodeiumService.create(
            project_root,
            StaticAuthProvider(key),
            config=config,
            on_service_launched=lambda: launches.append(len(servers)),
            installation_checker=StaticInstallationChecker(
                status or InstallationStatus.installed("1.2.104")
            ),
            server_factory=server_factory,
        )
        return ServiceHarness(service=service, servers=servers, launches=launches)

    return factory
