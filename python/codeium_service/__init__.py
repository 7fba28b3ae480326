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
"""Client-side orchestration for the Codeium code-completion language server.

The package sits between an editor and a locally spawned language server:
it tracks open documents, issues completion requests at the cursor,
cancels superseded requests, and starts, heartbeats and restarts the
server process as needed.

Key Components:
- service.py: CodeiumService, the editor-facing entry point
- lifecycle.py: Lazy start, heartbeat and restart of the server
- server.py: Subprocess + local HTTP handle on the server
- documents.py: Pool of open documents sent as request context
- metadata.py: Per-request metadata envelope
- protocol.py: Request/response message types

Example:
    >>> service = CodeiumService.create("/path/to/project", StaticAuthProvider(key))
    >>> await service.notify_open_text_document("/path/to/project/a.py", text)
    >>> suggestions = await service.get_completions(
    ...     "/path/to/project/a.py", text, CursorPosition(3, 4),
    ...     tab_size=4, indent_size=4, uses_tabs_for_indentation=False,
    ... )
"""

from __future__ import annotations

from .auth import AuthProvider, EnvironmentAuthProvider, StaticAuthProvider
from .config import CodeiumConfig, ServicePaths, create_folders_if_needed
from .documents import OpenDocument, OpenedDocumentPool, relative_path
from .errors import (
    CodeiumError,
    NotInstalled,
    NotSignedIn,
    Outdated,
    RequestCancelled,
    ServiceInstalling,
    TransportFailure,
)
from .installation import InstallationKind, InstallationManager, InstallationStatus
from .language import CodeLanguage, LanguageIdentifier, language_identifier_from_path
from .lifecycle import CodeiumLifecycle, RequestCounters, ServerState
from .metadata import SESSION_ID, MetadataBuilder, normalize_ide_version
from .protocol import (
    AcceptCompletion,
    CancelRequest,
    CodeSuggestion,
    CursorPosition,
    CursorRange,
    GetCompletion,
    Heartbeat,
    Metadata,
)
from .server import CodeiumLanguageServer, LanguageServerHandle
from .service import CodeiumService

__all__ = [
    # Service
    "CodeiumService",
    "CodeiumLifecycle",
    "ServerState",
    "RequestCounters",
    "CodeiumLanguageServer",
    "LanguageServerHandle",
    # Documents
    "OpenDocument",
    "OpenedDocumentPool",
    "relative_path",
    # Metadata and auth
    "MetadataBuilder",
    "SESSION_ID",
    "normalize_ide_version",
    "AuthProvider",
    "StaticAuthProvider",
    "EnvironmentAuthProvider",
    # Configuration and installation
    "CodeiumConfig",
    "ServicePaths",
    "create_folders_if_needed",
    "InstallationKind",
    "InstallationManager",
    "InstallationStatus",
    # Languages
    "CodeLanguage",
    "LanguageIdentifier",
    "language_identifier_from_path",
    # Protocol types
    "AcceptCompletion",
    "CancelRequest",
    "CodeSuggestion",
    "CursorPosition",
    "CursorRange",
    "GetCompletion",
    "Heartbeat",
    "Metadata",
    # Errors
    "CodeiumError",
    "NotInstalled",
    "NotSignedIn",
    "Outdated",
    "RequestCancelled",
    "ServiceInstalling",
    "TransportFailure",
]
