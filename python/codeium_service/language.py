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
"""Language identification for documents sent to the language server.

Every document in a completion request carries two language fields: the
editor language identifier (a string such as "python") and the language
server's own language enum. Both are derived from the file name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import PurePath
from typing import Dict, Tuple, Union


class CodeLanguage(IntEnum):
    """Language enum understood by the Codeium language server."""

    UNSPECIFIED = 0
    C = 1
    CLOJURE = 2
    COFFEESCRIPT = 3
    CPP = 4
    CSHARP = 5
    CSS = 6
    CUDACPP = 7
    DOCKERFILE = 8
    GO = 9
    GROOVY = 10
    HANDLEBARS = 11
    HASKELL = 12
    HCL = 13
    HTML = 14
    INI = 15
    JAVA = 16
    JAVASCRIPT = 17
    JSON = 18
    JULIA = 19
    KOTLIN = 20
    LATEX = 21
    LESS = 22
    LUA = 23
    MAKEFILE = 24
    MARKDOWN = 25
    OBJECTIVEC = 26
    OBJECTIVECPP = 27
    PERL = 28
    PHP = 29
    PLAINTEXT = 30
    PROTOBUF = 31
    PBTXT = 32
    PYTHON = 33
    R = 34
    RUBY = 35
    RUST = 36
    SASS = 37
    SCALA = 38
    SCSS = 39
    SHELL = 40
    SQL = 41
    STARLARK = 42
    SWIFT = 43
    TSX = 44
    TYPESCRIPT = 45
    VISUALBASIC = 46
    VUE = 47
    XML = 48
    XSL = 49
    YAML = 50
    SVELTE = 51
    TOML = 52
    DART = 53


@dataclass(frozen=True)
class LanguageIdentifier:
    """Language of a document.

    Attributes:
        editor_language: Editor language identifier
        code_language: Language server enum value
    """

    editor_language: str
    code_language: CodeLanguage


PLAINTEXT = LanguageIdentifier("plaintext", CodeLanguage.PLAINTEXT)


# Extension (lowercase, with dot) -> (editor language id, server enum)
EXTENSION_LANGUAGES: Dict[str, Tuple[str, CodeLanguage]] = {
    ".c": ("c", CodeLanguage.C),
    ".h": ("c", CodeLanguage.C),
    ".clj": ("clojure", CodeLanguage.CLOJURE),
    ".cljs": ("clojure", CodeLanguage.CLOJURE),
    ".coffee": ("coffeescript", CodeLanguage.COFFEESCRIPT),
    ".cc": ("cpp", CodeLanguage.CPP),
    ".cpp": ("cpp", CodeLanguage.CPP),
    ".cxx": ("cpp", CodeLanguage.CPP),
    ".hpp": ("cpp", CodeLanguage.CPP),
    ".hh": ("cpp", CodeLanguage.CPP),
    ".cs": ("csharp", CodeLanguage.CSHARP),
    ".css": ("css", CodeLanguage.CSS),
    ".cu": ("cuda-cpp", CodeLanguage.CUDACPP),
    ".go": ("go", CodeLanguage.GO),
    ".groovy": ("groovy", CodeLanguage.GROOVY),
    ".hbs": ("handlebars", CodeLanguage.HANDLEBARS),
    ".hs": ("haskell", CodeLanguage.HASKELL),
    ".tf": ("hcl", CodeLanguage.HCL),
    ".hcl": ("hcl", CodeLanguage.HCL),
    ".html": ("html", CodeLanguage.HTML),
    ".htm": ("html", CodeLanguage.HTML),
    ".ini": ("ini", CodeLanguage.INI),
    ".java": ("java", CodeLanguage.JAVA),
    ".js": ("javascript", CodeLanguage.JAVASCRIPT),
    ".mjs": ("javascript", CodeLanguage.JAVASCRIPT),
    ".cjs": ("javascript", CodeLanguage.JAVASCRIPT),
    ".jsx": ("javascriptreact", CodeLanguage.JAVASCRIPT),
    ".json": ("json", CodeLanguage.JSON),
    ".jl": ("julia", CodeLanguage.JULIA),
    ".kt": ("kotlin", CodeLanguage.KOTLIN),
    ".kts": ("kotlin", CodeLanguage.KOTLIN),
    ".tex": ("latex", CodeLanguage.LATEX),
    ".less": ("less", CodeLanguage.LESS),
    ".lua": ("lua", CodeLanguage.LUA),
    ".mk": ("makefile", CodeLanguage.MAKEFILE),
    ".md": ("markdown", CodeLanguage.MARKDOWN),
    ".markdown": ("markdown", CodeLanguage.MARKDOWN),
    ".m": ("objective-c", CodeLanguage.OBJECTIVEC),
    ".mm": ("objective-cpp", CodeLanguage.OBJECTIVECPP),
    ".pl": ("perl", CodeLanguage.PERL),
    ".pm": ("perl", CodeLanguage.PERL),
    ".php": ("php", CodeLanguage.PHP),
    ".txt": ("plaintext", CodeLanguage.PLAINTEXT),
    ".proto": ("proto", CodeLanguage.PROTOBUF),
    ".pbtxt": ("pbtxt", CodeLanguage.PBTXT),
    ".py": ("python", CodeLanguage.PYTHON),
    ".pyi": ("python", CodeLanguage.PYTHON),
    ".r": ("r", CodeLanguage.R),
    ".rb": ("ruby", CodeLanguage.RUBY),
    ".rs": ("rust", CodeLanguage.RUST),
    ".sass": ("sass", CodeLanguage.SASS),
    ".scala": ("scala", CodeLanguage.SCALA),
    ".scss": ("scss", CodeLanguage.SCSS),
    ".sh": ("shellscript", CodeLanguage.SHELL),
    ".bash": ("shellscript", CodeLanguage.SHELL),
    ".zsh": ("shellscript", CodeLanguage.SHELL),
    ".sql": ("sql", CodeLanguage.SQL),
    ".bzl": ("starlark", CodeLanguage.STARLARK),
    ".star": ("starlark", CodeLanguage.STARLARK),
    ".swift": ("swift", CodeLanguage.SWIFT),
    ".tsx": ("typescriptreact", CodeLanguage.TSX),
    ".ts": ("typescript", CodeLanguage.TYPESCRIPT),
    ".vb": ("vb", CodeLanguage.VISUALBASIC),
    ".vue": ("vue", CodeLanguage.VUE),
    ".xml": ("xml", CodeLanguage.XML),
    ".plist": ("xml", CodeLanguage.XML),
    ".xsl": ("xsl", CodeLanguage.XSL),
    ".yaml": ("yaml", CodeLanguage.YAML),
    ".yml": ("yaml", CodeLanguage.YAML),
    ".svelte": ("svelte", CodeLanguage.SVELTE),
    ".toml": ("toml", CodeLanguage.TOML),
    ".dart": ("dart", CodeLanguage.DART),
}

# Files recognised by their full name rather than their extension
FILENAME_LANGUAGES: Dict[str, Tuple[str, CodeLanguage]] = {
    "dockerfile": ("dockerfile", CodeLanguage.DOCKERFILE),
    "makefile": ("makefile", CodeLanguage.MAKEFILE),
    "gnumakefile": ("makefile", CodeLanguage.MAKEFILE),
    "build": ("starlark", CodeLanguage.STARLARK),
    "build.bazel": ("starlark", CodeLanguage.STARLARK),
    "workspace": ("starlark", CodeLanguage.STARLARK),
}


def language_identifier_from_path(path: Union[str, PurePath]) -> LanguageIdentifier:
    """Resolve the language of a file from its name.

    Unknown files are treated as plain text.
    """
    name = PurePath(path).name.lower()
    if name in FILENAME_LANGUAGES:
        return LanguageIdentifier(*FILENAME_LANGUAGES[name])
    entry = EXTENSION_LANGUAGES.get(PurePath(name).suffix)
    if entry is None:
        return PLAINTEXT
    return LanguageIdentifier(*entry)
