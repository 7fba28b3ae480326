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
"""Bookkeeping of the documents open in the editor.

The language server has no open/change/close channel of its own. Instead,
every completion request carries a snapshot of all other open documents as
context, so the pool only has to hold the latest full text per document.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional, Union
from urllib.parse import unquote, urlparse

FileURL = Union[str, PurePath]


def path_from_url(url: FileURL) -> str:
    """Normalise a file:// URL or a plain path to an absolute path string."""
    if isinstance(url, PurePath):
        return str(url)
    if url.startswith("file://"):
        return unquote(urlparse(url).path)
    return url


def relative_path(file_url: FileURL, project_root: FileURL) -> str:
    """Path of a file relative to the project root.

    Files outside the root keep their absolute path.

    Example:
        >>> relative_path("/a/b/c/d.go", "/a/b")
        'c/d.go'
        >>> relative_path("/x/y.go", "/a/b")
        '/x/y.go'
    """
    file_path = path_from_url(file_url)
    try:
        return PurePath(file_path).relative_to(path_from_url(project_root)).as_posix()
    except ValueError:
        return file_path


@dataclass(frozen=True)
class OpenDocument:
    """An open document.

    Attributes:
        url: Absolute path of the document (pool key)
        relative_path: Path relative to the project root
        content: Latest full text
    """

    url: str
    relative_path: str
    content: str


class OpenedDocumentPool:
    """Tracks open documents in the order they were opened.

    Entries are immutable snapshots replaced as a whole, so readers never
    observe a half-updated document. A lock makes every operation atomic
    when editor events arrive from more than one thread; it is never held
    across an await.
    """

    def __init__(self) -> None:
        self._documents: OrderedDict[str, OpenDocument] = OrderedDict()
        self._lock = threading.Lock()

    def open_document(self, url: FileURL, relative_path: str, content: str) -> None:
        """Insert or replace the entry for url."""
        self._store(url, relative_path, content)

    def update_document(self, url: FileURL, relative_path: str, content: str) -> None:
        """Replace the content of url, opening it if it was never opened."""
        self._store(url, relative_path, content)

    def close_document(self, url: FileURL) -> None:
        """Remove url from the pool; unknown urls are ignored."""
        key = path_from_url(url)
        with self._lock:
            self._documents.pop(key, None)

    def get_other_documents(self, except_url: FileURL) -> List[OpenDocument]:
        """Snapshot of all open documents except except_url, in opening order."""
        key = path_from_url(except_url)
        with self._lock:
            return [doc for url, doc in self._documents.items() if url != key]

    def get_document(self, url: FileURL) -> Optional[OpenDocument]:
        with self._lock:
            return self._documents.get(path_from_url(url))

    def _store(self, url: FileURL, relative_path: str, content: str) -> None:
        key = path_from_url(url)
        document = OpenDocument(url=key, relative_path=relative_path, content=content)
        with self._lock:
            self._documents[key] = document

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    def __contains__(self, url: object) -> bool:
        if not isinstance(url, (str, PurePath)):
            return False
        with self._lock:
            return path_from_url(url) in self._documents
