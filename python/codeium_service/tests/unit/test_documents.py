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
"""Tests for the open-document pool and path helpers."""

from __future__ import annotations

import threading
from pathlib import Path, PurePosixPath

import pytest

from codeium_service.documents import (
    OpenDocument,
    OpenedDocumentPool,
    path_from_url,
    relative_path,
)


class TestPaths:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("/a/b.py", "/a/b.py"),
            ("file:///a/b.py", "/a/b.py"),
            ("file:///a/with%20space.py", "/a/with space.py"),
            (PurePosixPath("/a/b.py"), "/a/b.py"),
        ],
    )
    def test_path_from_url(self, url, expected) -> None:
        assert path_from_url(url) == expected

    def test_relative_path_inside_root(self) -> None:
        assert relative_path("/a/b/c/d.go", "/a/b") == "c/d.go"

    def test_relative_path_outside_root(self) -> None:
        assert relative_path("/x/y.go", "/a/b") == "/x/y.go"

    def test_relative_path_requires_component_match(self) -> None:
        # "/a/bc" shares a string prefix with "/a/b" but is not inside it.
        assert relative_path("/a/bc/d.go", "/a/b") == "/a/bc/d.go"

    def test_relative_path_accepts_file_urls(self) -> None:
        assert relative_path("file:///a/b/c.py", "file:///a") == "b/c.py"


class TestOpenedDocumentPool:
    """Tests for OpenedDocumentPool."""

    def test_open_and_get(self) -> None:
        pool = OpenedDocumentPool()
        pool.open_document("/p/a.py", "a.py", "x = 1")

        assert pool.get_document("/p/a.py") == OpenDocument("/p/a.py", "a.py", "x = 1")
        assert "/p/a.py" in pool
        assert len(pool) == 1

    def test_open_twice_replaces(self) -> None:
        pool = OpenedDocumentPool()
        pool.open_document("/p/a.py", "a.py", "old")
        pool.open_document("/p/a.py", "a.py", "new")

        assert len(pool) == 1
        assert pool.get_document("/p/a.py").content == "new"

    def test_update_unknown_document_opens_it(self) -> None:
        pool = OpenedDocumentPool()
        pool.update_document("/p/a.py", "a.py", "text")
        assert pool.get_document("/p/a.py").content == "text"

    def test_close_unknown_is_noop(self) -> None:
        pool = OpenedDocumentPool()
        pool.open_document("/p/a.py", "a.py", "")
        pool.close_document("/p/other.py")
        assert len(pool) == 1

    def test_get_other_documents_keeps_opening_order(self) -> None:
        pool = OpenedDocumentPool()
        for name in ("c", "a", "b"):
            pool.open_document(f"/p/{name}.py", f"{name}.py", name)
        pool.update_document("/p/c.py", "c.py", "c2")

        others = pool.get_other_documents(except_url="/p/a.py")

        assert [d.url for d in others] == ["/p/c.py", "/p/b.py"]
        assert others[0].content == "c2"

    def test_get_other_documents_is_a_snapshot(self) -> None:
        pool = OpenedDocumentPool()
        pool.open_document("/p/a.py", "a.py", "a")
        others = pool.get_other_documents(except_url="/p/z.py")
        pool.update_document("/p/a.py", "a.py", "changed")
        assert others[0].content == "a"

    def test_url_forms_share_a_key(self) -> None:
        pool = OpenedDocumentPool()
        pool.open_document("file:///p/a.py", "a.py", "x")
        assert pool.get_document(Path("/p/a.py")) is not None
        pool.close_document("/p/a.py")
        assert len(pool) == 0

    def test_contains_rejects_other_types(self) -> None:
        assert 42 not in OpenedDocumentPool()

    def test_concurrent_updates_keep_whole_documents(self) -> None:
        pool = OpenedDocumentPool()
        errors = []

        def writer(n: int) -> None:
            for i in range(200):
                pool.update_document("/p/shared.py", "shared.py", f"{n}:{i}")

        def reader() -> None:
            for _ in range(200):
                doc = pool.get_document("/p/shared.py")
                if doc is not None and doc.relative_path != "shared.py":
                    errors.append(doc)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        threads.append(threading.Thread(target=reader))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(pool) == 1
