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
"""Codeium language server message types.

This module defines the data structures exchanged with the Codeium
language server and the suggestion objects handed back to the editor.

Key Types:
- CursorPosition, CursorRange: Editor text locations
- CodeSuggestion: A completion ready for display
- Metadata: Per-request envelope (editor, session, credential)
- DocumentPayload, EditorOptions: Request body parts
- Heartbeat, GetCompletion, CancelRequest, AcceptCompletion: Requests

Request bodies use the snake_case field names the language server accepts.
Responses come back in protobuf JSON form (camelCase keys, 64-bit integers
encoded as strings), so parsing accepts both spellings and both encodings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple


SERVICE_PATH = "/exa.language_server_pb.LanguageServerService"


# =============================================================================
# Editor Types
# =============================================================================


@dataclass(frozen=True)
class CursorPosition:
    """Position in a text document (0-indexed).

    Attributes:
        line: Line number
        character: Character offset in line
    """

    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> CursorPosition:
        return cls(line=data["line"], character=data["character"])


@dataclass(frozen=True)
class CursorRange:
    """Range in a text document.

    Attributes:
        start: Start position (inclusive)
        end: End position (exclusive)
    """

    start: CursorPosition
    end: CursorPosition

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass(frozen=True)
class CodeSuggestion:
    """A completion suggestion for the editor.

    Attributes:
        id: Backend-assigned completion id (used when accepting)
        text: Suggested text
        position: Cursor position the suggestion was requested at
        range: Range the suggestion replaces
    """

    id: str
    text: str
    position: CursorPosition
    range: CursorRange

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "position": self.position.to_dict(),
            "range": self.range.to_dict(),
        }


# =============================================================================
# Request Body Types
# =============================================================================


@dataclass(frozen=True)
class Metadata:
    """Envelope identifying the editor, session and credential.

    Attributes:
        ide_name: Editor name reported to the server
        ide_version: Editor version, always three dot-separated segments
        extension_version: Language server version in use
        api_key: Signed-in user's API key
        session_id: Process-lifetime session identifier
        request_id: Id of the request this envelope belongs to
    """

    ide_name: str
    ide_version: str
    extension_version: str
    api_key: str
    session_id: str
    request_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ide_name": self.ide_name,
            "ide_version": self.ide_version,
            "extension_version": self.extension_version,
            "api_key": self.api_key,
            "session_id": self.session_id,
            "request_id": self.request_id,
        }


@dataclass(frozen=True)
class DocumentPayload:
    """A document snapshot sent with a completion request.

    Attributes:
        absolute_path: Absolute file path
        relative_path: Path relative to the project root
        text: Full document text
        editor_language: Editor language identifier (e.g. "python")
        language: Language server language enum value
        cursor_position: Cursor, only set on the target document
    """

    absolute_path: str
    relative_path: str
    text: str
    editor_language: str
    language: int
    cursor_position: Optional[CursorPosition] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "absolute_path": self.absolute_path,
            "relative_path": self.relative_path,
            "text": self.text,
            "editor_language": self.editor_language,
            "language": self.language,
        }
        if self.cursor_position is not None:
            result["cursor_position"] = {
                "row": self.cursor_position.line,
                "col": self.cursor_position.character,
            }
        return result


@dataclass(frozen=True)
class EditorOptions:
    """Indentation settings of the editor."""

    tab_size: int
    insert_spaces: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"tab_size": self.tab_size, "insert_spaces": self.insert_spaces}


# =============================================================================
# Response Types
# =============================================================================


def _field(data: Dict[str, Any], camel: str, snake: str) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake)


def _parse_int(value: Any) -> Optional[int]:
    """Parse a protobuf JSON integer (int or decimal string)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class WirePosition:
    """Row/column pair as reported by the server (either may be missing)."""

    row: Optional[int] = None
    col: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional[WirePosition]:
        if data is None:
            return None
        return cls(row=_parse_int(data.get("row")), col=_parse_int(data.get("col")))

    def to_cursor_position(self) -> CursorPosition:
        return CursorPosition(line=self.row or 0, character=self.col or 0)


@dataclass(frozen=True)
class CompletionItemPayload:
    """One completion item of a GetCompletions response."""

    completion_id: str
    text: str
    start_position: Optional[WirePosition] = None
    end_position: Optional[WirePosition] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CompletionItemPayload:
        completion = data.get("completion") or {}
        range_data = data.get("range") or {}
        return cls(
            completion_id=str(_field(completion, "completionId", "completion_id") or ""),
            text=completion.get("text", ""),
            start_position=WirePosition.from_dict(
                _field(range_data, "startPosition", "start_position")
            ),
            end_position=WirePosition.from_dict(
                _field(range_data, "endPosition", "end_position")
            ),
        )

    def to_suggestion(self, position: CursorPosition) -> CodeSuggestion:
        """Map to a CodeSuggestion; missing range coordinates become 0."""
        start = self.start_position or WirePosition()
        end = self.end_position or WirePosition()
        return CodeSuggestion(
            id=self.completion_id,
            text=self.text,
            position=position,
            range=CursorRange(
                start=start.to_cursor_position(),
                end=end.to_cursor_position(),
            ),
        )


@dataclass(frozen=True)
class GetCompletionResponse:
    completion_items: Optional[List[CompletionItemPayload]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GetCompletionResponse:
        items = _field(data, "completionItems", "completion_items")
        if items is None:
            return cls(completion_items=None)
        return cls(completion_items=[CompletionItemPayload.from_dict(i) for i in items])

    def to_suggestions(self, position: CursorPosition) -> List[CodeSuggestion]:
        if not self.completion_items:
            return []
        return [item.to_suggestion(position) for item in self.completion_items]


@dataclass(frozen=True)
class EmptyResponse:
    """Response of requests whose reply carries nothing of interest."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EmptyResponse:
        return cls()


# =============================================================================
# Requests
# =============================================================================


class CodeiumRequest(ABC):
    """A typed language server request.

    Subclasses name the RPC method and know how to serialize their body
    and parse the matching response.
    """

    method: ClassVar[str]

    @property
    def path(self) -> str:
        return f"{SERVICE_PATH}/{self.method}"

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        ...

    def parse_response(self, data: Dict[str, Any]) -> Any:
        return EmptyResponse.from_dict(data)


@dataclass(frozen=True)
class Heartbeat(CodeiumRequest):
    method: ClassVar[str] = "Heartbeat"

    metadata: Metadata

    def to_dict(self) -> Dict[str, Any]:
        return {"metadata": self.metadata.to_dict()}


@dataclass(frozen=True)
class GetCompletion(CodeiumRequest):
    """Completion request for the document under the cursor.

    Attributes:
        metadata: Request envelope
        document: Target document, including the cursor position
        editor_options: Indentation settings
        other_documents: Other open documents, used as context
    """

    method: ClassVar[str] = "GetCompletions"

    metadata: Metadata
    document: DocumentPayload
    editor_options: EditorOptions
    other_documents: Tuple[DocumentPayload, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "document": self.document.to_dict(),
            "editor_options": self.editor_options.to_dict(),
            "other_documents": [d.to_dict() for d in self.other_documents],
        }

    def parse_response(self, data: Dict[str, Any]) -> GetCompletionResponse:
        return GetCompletionResponse.from_dict(data)


@dataclass(frozen=True)
class CancelRequest(CodeiumRequest):
    method: ClassVar[str] = "CancelRequest"

    request_id: int
    session_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"request_id": self.request_id, "session_id": self.session_id}


@dataclass(frozen=True)
class AcceptCompletion(CodeiumRequest):
    method: ClassVar[str] = "AcceptCompletion"

    metadata: Metadata
    completion_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "completion_id": self.completion_id,
        }
