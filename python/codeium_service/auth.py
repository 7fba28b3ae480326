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
"""API key providers.

The service never stores credentials itself; it asks an injected provider
for the current key each time it builds request metadata.
"""

from __future__ import annotations

import os
from typing import Optional, Protocol

API_KEY_ENV = "CODEIUM_API_KEY"


class AuthProvider(Protocol):
    """Anything exposing an optional API key."""

    @property
    def key(self) -> Optional[str]:
        ...


class StaticAuthProvider:
    """Holds a key set in code (sign in / sign out)."""

    def __init__(self, key: Optional[str] = None):
        self._key = key

    @property
    def key(self) -> Optional[str]:
        return self._key or None

    def sign_in(self, key: str) -> None:
        self._key = key

    def sign_out(self) -> None:
        self._key = None


class EnvironmentAuthProvider:
    """Reads the key from an environment variable on every access."""

    def __init__(self, variable: str = API_KEY_ENV):
        self.variable = variable

    @property
    def key(self) -> Optional[str]:
        return os.environ.get(self.variable) or None
