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
"""Per-request metadata.

Every request except CancelRequest carries a Metadata envelope naming the
editor, the language server version, the user's API key, the session and
the request id. The session id is generated once per process.
"""

from __future__ import annotations

import uuid
from typing import Callable, Optional

from .auth import AuthProvider
from .errors import NotSignedIn
from .protocol import Metadata

SESSION_ID = str(uuid.uuid4())


def normalize_ide_version(version: str) -> str:
    """Pad or trim a dotted version to exactly three segments.

    Example:
        >>> normalize_ide_version("15")
        '15.0.0'
        >>> normalize_ide_version("15.2")
        '15.2.0'
    """
    segments = [s for s in version.strip().split(".") if s]
    if not segments:
        segments = ["0"]
    segments = (segments + ["0", "0"])[:3]
    return ".".join(segments)


class MetadataBuilder:
    """Builds Metadata from the editor identity and an auth provider.

    Attributes:
        ide_name: Editor name
        fallback_ide_version: Used when the version provider has nothing
        session_id: Session identifier shared by all requests
    """

    def __init__(
        self,
        auth_provider: AuthProvider,
        ide_name: str,
        fallback_ide_version: str,
        ide_version_provider: Optional[Callable[[], Optional[str]]] = None,
        session_id: str = SESSION_ID,
    ):
        self.auth_provider = auth_provider
        self.ide_name = ide_name
        self.fallback_ide_version = fallback_ide_version
        self.session_id = session_id
        self._ide_version_provider = ide_version_provider

    def ide_version(self) -> str:
        version = None
        if self._ide_version_provider is not None:
            version = self._ide_version_provider()
        return normalize_ide_version(version or self.fallback_ide_version)

    def build(self, request_id: int, extension_version: str) -> Metadata:
        """Build the envelope for one request.

        Raises:
            NotSignedIn: If the auth provider has no key
        """
        key = self.auth_provider.key
        if not key:
            raise NotSignedIn()
        return Metadata(
            ide_name=self.ide_name,
            ide_version=self.ide_version(),
            extension_version=extension_version,
            api_key=key,
            session_id=self.session_id,
            request_id=request_id,
        )
