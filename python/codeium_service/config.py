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
"""Configuration and on-disk layout of the suggestion service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_SUPPORT_ROOT = Path.home() / ".codeium-service"
LANGUAGE_SERVER_BINARY = "language_server"


@dataclass
class CodeiumConfig:
    """Configuration for the suggestion service.

    Attributes:
        ide_name: Editor name reported in request metadata
        fallback_ide_version: Editor version used when none is supplied
        api_server_url: Remote API server the language server talks to
        support_root: Root of the support folder tree
        heartbeat_interval: Seconds between heartbeats
        launch_timeout: Seconds to wait for the server to report its port
        port_poll_interval: Seconds between port file checks
        request_timeout: Per-request timeout in seconds
        server_command: Command prefix for the executable (e.g. an interpreter)
        manager_root: Parent of the per-launch manager directories (default:
            the system temp directory)
        reset_request_ids_on_restart: Restart request ids at 0 after the
            server terminates
    """

    ide_name: str = "xcode"
    fallback_ide_version: str = "14.0.0"
    api_server_url: str = "https://server.codeium.com"
    support_root: Path = field(default_factory=lambda: DEFAULT_SUPPORT_ROOT)
    heartbeat_interval: float = 5.0
    launch_timeout: float = 10.0
    port_poll_interval: float = 0.2
    request_timeout: float = 10.0
    server_command: Optional[List[str]] = None
    manager_root: Optional[Path] = None
    reset_request_ids_on_restart: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> CodeiumConfig:
        """Build a config, overriding defaults from CODEIUM_* variables."""
        env = os.environ if environ is None else environ
        overrides: Dict[str, object] = {}
        if env.get("CODEIUM_IDE_NAME"):
            overrides["ide_name"] = env["CODEIUM_IDE_NAME"]
        if env.get("CODEIUM_IDE_VERSION"):
            overrides["fallback_ide_version"] = env["CODEIUM_IDE_VERSION"]
        if env.get("CODEIUM_API_SERVER_URL"):
            overrides["api_server_url"] = env["CODEIUM_API_SERVER_URL"]
        if env.get("CODEIUM_SUPPORT_ROOT"):
            overrides["support_root"] = Path(env["CODEIUM_SUPPORT_ROOT"]).expanduser()
        return cls(**overrides)  # type: ignore[arg-type]


@dataclass(frozen=True)
class ServicePaths:
    """Fixed folder tree holding the language server and its data.

    Attributes:
        application_support: Root folder
        codeium: Codeium folder inside the root
        executable: Folder holding the language server binary
        support: Database folder handed to the language server
    """

    application_support: Path
    codeium: Path
    executable: Path
    support: Path

    @classmethod
    def under(cls, root: Path) -> ServicePaths:
        codeium = root / "Codeium"
        return cls(
            application_support=root,
            codeium=codeium,
            executable=codeium / "executable",
            support=codeium / "support",
        )

    @property
    def language_server(self) -> Path:
        return self.executable / LANGUAGE_SERVER_BINARY

    def to_dict(self) -> Dict[str, str]:
        return {
            "application_support": str(self.application_support),
            "codeium": str(self.codeium),
            "executable": str(self.executable),
            "support": str(self.support),
        }


def create_folders_if_needed(root: Path) -> ServicePaths:
    """Create the support folder tree if absent.

    Creation failures are ignored; the caller finds out later when the
    language server is missing.
    """
    paths = ServicePaths.under(Path(root))
    for folder in (paths.application_support, paths.codeium, paths.support, paths.executable):
        if folder.exists():
            continue
        try:
            folder.mkdir()
        except OSError as e:
            logger.debug(f"Could not create {folder}: {e}")
    return paths
