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
"""Integration tests against a real subprocess speaking the HTTP API.

The subprocess is fake_language_server.py run with the current interpreter.
"""

from __future__ import annotations

import asyncio
import shutil
import sys
from pathlib import Path

import pytest

from codeium_service.auth import StaticAuthProvider
from codeium_service.config import CodeiumConfig, ServicePaths
from codeium_service.errors import TransportFailure
from codeium_service.installation import VERSION_FILE
from codeium_service.protocol import (
    CursorPosition,
    DocumentPayload,
    EditorOptions,
    GetCompletion,
    Heartbeat,
    Metadata,
)
from codeium_service.server import CodeiumLanguageServer, find_port
from codeium_service.service import CodeiumService

FAKE_SERVER = Path(__file__).parent / "fake_language_server.py"

METADATA = Metadata(
    ide_name="xcode",
    ide_version="15.0.0",
    extension_version="1.2.104",
    api_key="key",
    session_id="session",
    request_id=1,
)


def make_server(tmp_path: Path, **kwargs) -> CodeiumLanguageServer:
    manager_dir = tmp_path / "manager"
    manager_dir.mkdir(exist_ok=True)
    options = dict(
        executable_path=FAKE_SERVER,
        manager_dir=manager_dir,
        support_dir=tmp_path,
        api_server_url="http://127.0.0.1:1",
        port_poll_interval=0.05,
        server_command=[sys.executable],
    )
    options.update(kwargs)
    return CodeiumLanguageServer(**options)


def completion_request(text: str = "x = 1") -> GetCompletion:
    return GetCompletion(
        metadata=METADATA,
        document=DocumentPayload(
            absolute_path="/project/main.py",
            relative_path="main.py",
            text=text,
            editor_language="python",
            language=33,
            cursor_position=CursorPosition(0, 5),
        ),
        editor_options=EditorOptions(tab_size=4, insert_spaces=True),
    )


class TestFindPort:
    def test_numeric_file_name(self, tmp_path) -> None:
        (tmp_path / "notes").touch()
        (tmp_path / "41234").touch()
        assert find_port(tmp_path) == 41234

    def test_no_port_yet(self, tmp_path) -> None:
        assert find_port(tmp_path) is None
        assert find_port(tmp_path / "missing") is None


# =============================================================================
# Process Handle
# =============================================================================


class TestCodeiumLanguageServer:
    def test_command_line(self, tmp_path) -> None:
        server = make_server(tmp_path)
        assert server.command == [
            sys.executable,
            str(FAKE_SERVER),
            "--api_server_url",
            "http://127.0.0.1:1",
            "--manager_dir",
            str(tmp_path / "manager"),
            "--database_dir",
            str(tmp_path),
        ]

    def test_request_round_trip(self, tmp_path) -> None:
        server = make_server(tmp_path)
        events = []
        server.launch_handler = lambda: events.append("launched")
        server.termination_handler = lambda: events.append("terminated")

        async def run():
            await server.start()
            await server.send_request(Heartbeat(metadata=METADATA))
            response = await server.send_request(completion_request())
            await server.terminate()
            return response

        response = asyncio.run(run())

        suggestions = response.to_suggestions(CursorPosition(0, 5))
        assert [s.id for s in suggestions] == ["req-1"]
        assert suggestions[0].text == "main.py:0"
        assert suggestions[0].range.end == CursorPosition(0, 6)
        assert events == ["launched", "terminated"]
        assert not (tmp_path / "manager").exists()

    def test_http_error_is_transport_failure(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("FAKE_SERVER_MODE", "error")
        server = make_server(tmp_path)

        async def run():
            await server.start()
            try:
                await server.send_request(completion_request())
            finally:
                await server.terminate()

        with pytest.raises(TransportFailure) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code == 500
        assert "unavailable" in exc_info.value.response_body

    def test_early_exit_reports_termination(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("FAKE_SERVER_MODE", "exit")
        server = make_server(tmp_path)
        terminations = []
        server.termination_handler = lambda: terminations.append(True)

        async def run():
            await server.start()
            with pytest.raises(TransportFailure, match="exited with code 3"):
                await server.send_request(Heartbeat(metadata=METADATA))
            await server.terminate()

        asyncio.run(run())
        assert terminations == [True]

    def test_missing_port_times_out(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("FAKE_SERVER_MODE", "no_port")
        server = make_server(tmp_path, launch_timeout=0.5)
        launches = []
        server.launch_handler = lambda: launches.append(True)

        async def run():
            await server.start()
            with pytest.raises(TransportFailure, match="did not report a port"):
                await server.send_request(Heartbeat(metadata=METADATA))
            await server.terminate()

        asyncio.run(run())
        assert launches == []

    def test_missing_executable(self, tmp_path) -> None:
        server = make_server(
            tmp_path, executable_path=tmp_path / "absent", server_command=None
        )
        with pytest.raises(TransportFailure):
            asyncio.run(server.start())

    def test_send_before_start(self, tmp_path) -> None:
        server = make_server(tmp_path)
        with pytest.raises(TransportFailure, match="not started"):
            asyncio.run(server.send_request(Heartbeat(metadata=METADATA)))


# =============================================================================
# Full Service
# =============================================================================


def test_service_end_to_end(tmp_path, monkeypatch) -> None:
    """Install the fake binary and drive it through CodeiumService."""
    log_path = tmp_path / "requests.log"
    monkeypatch.setenv("FAKE_SERVER_LOG", str(log_path))

    support_root = tmp_path / "support"
    paths = ServicePaths.under(support_root)
    paths.executable.mkdir(parents=True)
    shutil.copy(FAKE_SERVER, paths.language_server)
    (paths.executable / VERSION_FILE).write_text("1.2.50")

    config = CodeiumConfig(
        support_root=support_root,
        manager_root=tmp_path / "managers",
        heartbeat_interval=0.05,
        port_poll_interval=0.05,
        server_command=[sys.executable],
    )
    launches = []
    service = CodeiumService.create(
        tmp_path / "project",
        StaticAuthProvider("key"),
        config=config,
        on_service_launched=lambda: launches.append(True),
    )

    async def run():
        async with service:
            await service.notify_open_text_document(tmp_path / "project" / "util.go", "package util")
            suggestions = await service.get_completions(
                tmp_path / "project" / "src" / "main.py",
                "import os",
                CursorPosition(0, 9),
                tab_size=4,
                indent_size=4,
                uses_tabs_for_indentation=False,
            )
            await service.notify_accepted(suggestions[0])
            await asyncio.sleep(0.2)
            return suggestions

    suggestions = asyncio.run(run())

    assert [s.id for s in suggestions] == ["req-1"]
    assert suggestions[0].text == "src/main.py:1"
    assert suggestions[0].range.start == CursorPosition(0, 9)
    assert launches == [True]

    methods = log_path.read_text().split()
    assert "GetCompletions" in methods
    assert "AcceptCompletion" in methods
    assert methods.count("Heartbeat") >= 2
    assert service.lifecycle.server is None


def test_service_request_right_after_background_start(tmp_path) -> None:
    """A request issued while the process is still starting waits for it."""
    support_root = tmp_path / "support"
    paths = ServicePaths.under(support_root)
    paths.executable.mkdir(parents=True)
    shutil.copy(FAKE_SERVER, paths.language_server)
    (paths.executable / VERSION_FILE).write_text("1.2.50")

    config = CodeiumConfig(
        support_root=support_root,
        manager_root=tmp_path / "managers",
        port_poll_interval=0.05,
        server_command=[sys.executable],
    )
    service = CodeiumService.create(tmp_path, StaticAuthProvider("key"), config=config)

    async def run():
        async with service:
            service.start()
            await asyncio.sleep(0)
            return await service.get_completions(
                tmp_path / "main.py",
                "x = 1",
                CursorPosition(0, 5),
                tab_size=4,
                indent_size=4,
                uses_tabs_for_indentation=False,
            )

    suggestions = asyncio.run(run())

    assert [s.id for s in suggestions] == ["req-1"]
    assert suggestions[0].text == "main.py:0"
