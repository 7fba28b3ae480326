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
"""Installation state of the language server binary.

The binary and a sibling ``version`` file live in the executable folder.
Installation itself is done elsewhere (by the host app); this module only
answers whether a usable binary is present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional, Protocol, Tuple

from .config import LANGUAGE_SERVER_BINARY
from .errors import ServiceInstalling

logger = logging.getLogger(__name__)

LATEST_SUPPORTED_VERSION = "1.2.104"
MINIMUM_SUPPORTED_VERSION = "1.2.9"

VERSION_FILE = "version"
INSTALLING_MARKER = ".installing"


class InstallationKind(Enum):
    INSTALLED = auto()
    OUTDATED = auto()
    UNSUPPORTED = auto()
    NOT_INSTALLED = auto()


@dataclass(frozen=True)
class InstallationStatus:
    """Result of an installation check.

    Attributes:
        kind: Installation state
        version: Detected version (None when not installed)
        required_version: Version this client expects, for OUTDATED and
            UNSUPPORTED
    """

    kind: InstallationKind
    version: Optional[str] = None
    required_version: Optional[str] = None

    @classmethod
    def installed(cls, version: str) -> InstallationStatus:
        return cls(InstallationKind.INSTALLED, version)

    @classmethod
    def outdated(cls, version: str, required_version: str) -> InstallationStatus:
        return cls(InstallationKind.OUTDATED, version, required_version)

    @classmethod
    def unsupported(cls, version: str, required_version: str) -> InstallationStatus:
        return cls(InstallationKind.UNSUPPORTED, version, required_version)

    @classmethod
    def not_installed(cls) -> InstallationStatus:
        return cls(InstallationKind.NOT_INSTALLED)

    def to_dict(self) -> dict:
        return {
            "status": self.kind.name.lower(),
            "version": self.version,
            "required_version": self.required_version,
        }


class InstallationChecker(Protocol):
    def check_installation(self) -> InstallationStatus:
        ...


def parse_version(version: str) -> Tuple[int, ...]:
    """Numeric segments of a dotted version; non-numeric segments count as 0."""
    parts = []
    for segment in version.strip().split("."):
        digits = "".join(ch for ch in segment if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


class InstallationManager:
    """Checks the language server installed in an executable folder."""

    def __init__(
        self,
        executable_dir: Path,
        latest_supported_version: str = LATEST_SUPPORTED_VERSION,
        minimum_supported_version: str = MINIMUM_SUPPORTED_VERSION,
    ):
        self.executable_dir = Path(executable_dir)
        self.latest_supported_version = latest_supported_version
        self.minimum_supported_version = minimum_supported_version

    @property
    def binary_path(self) -> Path:
        return self.executable_dir / LANGUAGE_SERVER_BINARY

    def check_installation(self) -> InstallationStatus:
        """Check the installation.

        Raises:
            ServiceInstalling: If an installation is in progress
        """
        if (self.executable_dir / INSTALLING_MARKER).exists():
            raise ServiceInstalling()

        if not self.binary_path.exists():
            return InstallationStatus.not_installed()

        version = self._read_version()
        if version is None:
            return InstallationStatus.not_installed()

        if parse_version(version) < parse_version(self.minimum_supported_version):
            return InstallationStatus.outdated(version, self.latest_supported_version)
        if parse_version(version) > parse_version(self.latest_supported_version):
            return InstallationStatus.unsupported(version, self.latest_supported_version)
        return InstallationStatus.installed(version)

    def _read_version(self) -> Optional[str]:
        try:
            version = (self.executable_dir / VERSION_FILE).read_text(encoding="utf-8").strip()
        except OSError as e:
            logger.debug(f"No readable version file in {self.executable_dir}: {e}")
            return None
        return version or None
