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
"""
Command-line access to the Codeium suggestion service.

Usage:
    python -m codeium_service status
    python -m codeium_service complete FILE --line N --character N

Examples:
    python -m codeium_service status
    CODEIUM_API_KEY=... python -m codeium_service complete src/app.py --line 10 --character 4
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .auth import EnvironmentAuthProvider
from .config import CodeiumConfig, create_folders_if_needed
from .errors import SETUP_ERRORS, CodeiumError, RequestCancelled
from .installation import InstallationManager
from .protocol import CursorPosition
from .service import CodeiumService


def status(config: CodeiumConfig) -> dict:
    """Installation state and support folders."""
    paths = create_folders_if_needed(config.support_root)
    try:
        installation = InstallationManager(paths.executable).check_installation().to_dict()
    except CodeiumError as e:
        installation = {"status": "installing", "message": str(e)}
    return {"installation": installation, "paths": paths.to_dict()}


async def complete(args: argparse.Namespace, config: CodeiumConfig) -> List[dict]:
    """Run one completion request against a real language server."""
    file_path = Path(args.file).resolve()
    content = file_path.read_text(encoding="utf-8")
    project_root = Path(args.project_root).resolve() if args.project_root else file_path.parent

    service = CodeiumService.create(project_root, EnvironmentAuthProvider(), config=config)
    async with service:
        await service.notify_open_text_document(file_path, content)
        suggestions = await service.get_completions(
            file_path,
            content,
            CursorPosition(line=args.line, character=args.character),
            tab_size=args.tab_size,
            indent_size=args.indent_size,
            uses_tabs_for_indentation=args.use_tabs,
        )
    return [s.to_dict() for s in suggestions]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Codeium suggestion service")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show installation state and support folders")

    complete_parser = subparsers.add_parser("complete", help="Request completions at a position")
    complete_parser.add_argument("file", help="File to complete in")
    complete_parser.add_argument("--line", type=int, required=True, help="Zero-based line")
    complete_parser.add_argument("--character", type=int, required=True, help="Zero-based column")
    complete_parser.add_argument("--project-root", default=None, help="Project root (default: file's folder)")
    complete_parser.add_argument("--tab-size", type=int, default=4)
    complete_parser.add_argument("--indent-size", type=int, default=4)
    complete_parser.add_argument("--use-tabs", action="store_true")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s %(message)s",
    )
    config = CodeiumConfig.from_env()

    if args.command == "status":
        print(json.dumps(status(config), indent=2))
        return 0

    try:
        suggestions = asyncio.run(complete(args, config))
    except RequestCancelled:
        return 1
    except SETUP_ERRORS as e:
        print(f"setup error: {e.description}", file=sys.stderr)
        return 2
    except (CodeiumError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(suggestions, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
