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
"""Errors raised by the Codeium suggestion service.

Setup errors (NotInstalled, Outdated, ServiceInstalling, NotSignedIn) are
meant to be shown to the user. RequestCancelled is a control-flow signal for
callers whose completion request was superseded. TransportFailure wraps any
error talking to the language server.
"""

from __future__ import annotations

from typing import Optional


class CodeiumError(Exception):
    """Base class for all service errors."""

    message = "Codeium service error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def description(self) -> str:
        return str(self)


class NotInstalled(CodeiumError):
    message = "Language server is not installed. Please install it in the host app."


class Outdated(CodeiumError):
    """The installed language server is older than the minimum supported one.

    Attributes:
        version: Detected language server version
        required_version: Version this client needs
    """

    message = (
        "Language server is outdated. "
        "Please update it in the host app or update the extension."
    )

    def __init__(self, version: str, required_version: str):
        super().__init__()
        self.version = version
        self.required_version = required_version


class ServiceInstalling(CodeiumError):
    message = "Language service is installing, please try again later."


class NotSignedIn(CodeiumError):
    message = "Codeium not signed in."


class RequestCancelled(CodeiumError):
    """A newer completion request superseded this one."""

    message = "Completion request was superseded by a newer request."


class TransportFailure(CodeiumError):
    """Error during communication with the language server.

    Attributes:
        status_code: HTTP status, if the server answered
        response_body: Raw response body, if any
    """

    message = "Language server request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


SETUP_ERRORS = (NotInstalled, Outdated, ServiceInstalling, NotSignedIn)
