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
"""Completion requests and document notifications for one project.

CodeiumService is what the editor talks to. It keeps the open-document
pool up to date, turns cursor positions into GetCompletions requests and
makes sure only the newest request ever delivers suggestions.

Supersession:
    Every call to get_completions cancels all earlier calls still in
    flight. Cancelled calls raise RequestCancelled, even if their response
    arrives later. The language server is told about the cancellation with
    a CancelRequest notice that nobody waits for.

Error policy:
    Setup errors (NotInstalled, Outdated, ServiceInstalling, NotSignedIn)
    and TransportFailure propagate from get_completions. Cancel notices and
    accepted-suggestion notices never raise.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, List, Optional, Set

from .auth import AuthProvider
from .config import CodeiumConfig, create_folders_if_needed
from .documents import (
    FileURL,
    OpenDocument,
    OpenedDocumentPool,
    path_from_url,
    relative_path,
)
from .errors import RequestCancelled
from .installation import InstallationChecker, InstallationManager
from .language import language_identifier_from_path
from .lifecycle import CodeiumLifecycle, ServerFactory, ServerState
from .metadata import MetadataBuilder
from .protocol import (
    AcceptCompletion,
    CancelRequest,
    CodeSuggestion,
    CursorPosition,
    DocumentPayload,
    EditorOptions,
    GetCompletion,
)

logger = logging.getLogger(__name__)


class _CompletionJob:
    """An in-flight get_completions call."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        self.superseded = False
        self.task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        self.superseded = True
        if self.task is not None:
            self.task.cancel()

    def check(self) -> None:
        if self.superseded:
            raise RequestCancelled()


class CodeiumService:
    """Suggestion service for a single project.

    Attributes:
        project_root: Root that relative paths are computed from
        lifecycle: Owner of the language server process
        document_pool: Documents currently open in the editor
    """

    def __init__(
        self,
        project_root: FileURL,
        lifecycle: CodeiumLifecycle,
        document_pool: Optional[OpenedDocumentPool] = None,
    ):
        self.project_root = path_from_url(project_root)
        self.lifecycle = lifecycle
        self.document_pool = document_pool or OpenedDocumentPool()
        self._ongoing_jobs: Set[_CompletionJob] = set()
        self._background_tasks: Set[asyncio.Task] = set()

    @classmethod
    def create(
        cls,
        project_root: FileURL,
        auth_provider: AuthProvider,
        config: Optional[CodeiumConfig] = None,
        on_service_launched: Optional[Callable[[], None]] = None,
        ide_version_provider: Optional[Callable[[], Optional[str]]] = None,
        installation_checker: Optional[InstallationChecker] = None,
        server_factory: Optional[ServerFactory] = None,
    ) -> CodeiumService:
        """Wire a service with its default collaborators.

        Creates the support folder tree if it does not exist yet.
        """
        config = config or CodeiumConfig()
        paths = create_folders_if_needed(config.support_root)
        metadata_builder = MetadataBuilder(
            auth_provider=auth_provider,
            ide_name=config.ide_name,
            fallback_ide_version=config.fallback_ide_version,
            ide_version_provider=ide_version_provider,
        )
        lifecycle = CodeiumLifecycle(
            metadata_builder=metadata_builder,
            installation_checker=installation_checker or InstallationManager(paths.executable),
            paths=paths,
            config=config,
            on_service_launched=on_service_launched,
            server_factory=server_factory,
        )
        return cls(project_root=project_root, lifecycle=lifecycle)

    # -------------------------------------------------------------------------
    # Completions
    # -------------------------------------------------------------------------

    async def get_completions(
        self,
        file_url: FileURL,
        content: str,
        cursor_position: CursorPosition,
        tab_size: int,
        indent_size: int,
        uses_tabs_for_indentation: bool,
    ) -> List[CodeSuggestion]:
        """Request suggestions at the cursor.

        Args:
            file_url: Path or file:// URL of the document
            content: Full current text of the document
            cursor_position: Cursor to complete at
            tab_size: Width of a tab character
            indent_size: Width of one indentation level
            uses_tabs_for_indentation: Whether the editor indents with tabs

        Returns:
            Suggestions, empty if the server returned none

        Raises:
            RequestCancelled: If a newer call superseded this one
            CodeiumError: Setup errors and TransportFailure
        """
        for job in self._ongoing_jobs:
            job.cancel()
        self._ongoing_jobs.clear()

        counters = self.lifecycle.counters
        self._spawn(self._send_cancel_notice(counters.request_counter))

        request_id = counters.next_request_id()
        request = self._build_completion_request(
            request_id,
            path_from_url(file_url),
            content,
            cursor_position,
            indent_size,
            uses_tabs_for_indentation,
        )

        job = _CompletionJob(request_id)
        job.task = asyncio.create_task(self._request_completions(job, request))
        self._ongoing_jobs.add(job)
        try:
            suggestions = await job.task
        except asyncio.CancelledError:
            if job.superseded:
                raise RequestCancelled() from None
            raise
        finally:
            self._ongoing_jobs.discard(job)

        # The task may have finished just before a newer call superseded it.
        job.check()
        return suggestions

    async def cancel_request(self) -> None:
        """Tell the server to drop the current request. Never raises."""
        await self._send_cancel_notice(self.lifecycle.counters.request_counter)

    def _build_completion_request(
        self,
        request_id: int,
        file_path: str,
        content: str,
        cursor_position: CursorPosition,
        indent_size: int,
        uses_tabs_for_indentation: bool,
    ) -> GetCompletion:
        language = language_identifier_from_path(file_path)
        other_documents = self.document_pool.get_other_documents(except_url=file_path)
        return GetCompletion(
            metadata=self.lifecycle.build_metadata(request_id),
            document=DocumentPayload(
                absolute_path=file_path,
                relative_path=self.relative_path(file_path),
                text=content,
                editor_language=language.editor_language,
                language=int(language.code_language),
                cursor_position=cursor_position,
            ),
            editor_options=EditorOptions(
                tab_size=indent_size,
                insert_spaces=not uses_tabs_for_indentation,
            ),
            other_documents=tuple(_document_payload(d) for d in other_documents),
        )

    async def _request_completions(
        self, job: _CompletionJob, request: GetCompletion
    ) -> List[CodeSuggestion]:
        job.check()
        server = await self.lifecycle.ensure_started()
        job.check()

        response = await server.send_request(request)

        job.check()
        return response.to_suggestions(request.document.cursor_position)

    async def _send_cancel_notice(self, request_id: int) -> None:
        server = self.lifecycle.server
        if server is None or self.lifecycle.state is not ServerState.RUNNING:
            return
        self.lifecycle.counters.next_cancellation()
        try:
            await server.send_request(
                CancelRequest(
                    request_id=request_id,
                    session_id=self.lifecycle.metadata_builder.session_id,
                )
            )
        except Exception as e:
            logger.debug(f"Cancel notice for request {request_id} failed: {e}")

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def notify_accepted(self, suggestion: CodeSuggestion) -> None:
        """Report an accepted suggestion. Never raises."""
        try:
            server = await self.lifecycle.ensure_started()
            await server.send_request(
                AcceptCompletion(
                    metadata=self.lifecycle.build_metadata(),
                    completion_id=suggestion.id,
                )
            )
        except Exception as e:
            logger.debug(f"Accept notice for {suggestion.id} failed: {e}")

    async def notify_open_text_document(self, file_url: FileURL, content: str) -> None:
        self.document_pool.open_document(
            url=file_url,
            relative_path=self.relative_path(file_url),
            content=content,
        )

    async def notify_change_text_document(self, file_url: FileURL, content: str) -> None:
        self.document_pool.update_document(
            url=file_url,
            relative_path=self.relative_path(file_url),
            content=content,
        )

    async def notify_close_text_document(self, file_url: FileURL) -> None:
        self.document_pool.close_document(file_url)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Launch the language server in the background."""
        self._spawn(self._start_in_background())

    async def terminate(self) -> None:
        await self.lifecycle.terminate()

    async def aclose(self) -> None:
        """Cancel in-flight work, stop the server and drain background tasks."""
        for job in self._ongoing_jobs:
            job.cancel()
        self._ongoing_jobs.clear()
        await self.terminate()
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> CodeiumService:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def relative_path(self, file_url: FileURL) -> str:
        return relative_path(file_url, self.project_root)

    async def _start_in_background(self) -> None:
        try:
            await self.lifecycle.ensure_started()
        except Exception as e:
            logger.warning(f"Language server could not be started: {e}")

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task


def _document_payload(document: OpenDocument) -> DocumentPayload:
    language = language_identifier_from_path(document.url)
    return DocumentPayload(
        absolute_path=document.url,
        relative_path=document.relative_path,
        text=document.content,
        editor_language=language.editor_language,
        language=int(language.code_language),
    )
