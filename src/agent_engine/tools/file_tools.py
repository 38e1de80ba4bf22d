"""Read-only workspace tools for agents that inspect a code base."""

from __future__ import annotations

import fnmatch
import logging
import re
from pathlib import Path
from typing import Annotated

from pydantic import Field

from agent_engine.tools.function_tool import FunctionTool

logger = logging.getLogger(__name__)

MAX_GREP_MATCHES = 200
MAX_FIND_RESULTS = 500


def create_file_tools(work_dir: Path) -> list[FunctionTool]:
    root = work_dir.resolve()

    def read_file(
        path: Annotated[str, Field(description="File path to read")],
        offset: Annotated[int, Field(description="Starting line (0-based)")] = 0,
        limit: Annotated[int | None, Field(description="Max lines to return")] = None,
    ) -> str:
        """Read the contents of a file. Use offset/limit for large files."""
        lines = _resolve(root, path).read_text(encoding="utf-8").splitlines()
        if offset or limit:
            end = offset + limit if limit else len(lines)
            lines = lines[offset:end]
        numbered = [f"{i + offset + 1:>4} | {line}" for i, line in enumerate(lines)]
        return f"File: {path}\n" + "\n".join(numbered)

    def list_directory(
        path: Annotated[str, Field(description="Directory path (default: '.')")] = ".",
    ) -> str:
        """List files and directories in the given path."""
        p = _resolve(root, path)
        entries = sorted(str(entry.relative_to(p)) for entry in p.iterdir())
        return "\n".join(entries) if entries else "(empty directory)"

    def grep(
        pattern: Annotated[str, Field(description="Regex or literal string to search for")],
        path: Annotated[str, Field(description="Directory or file to search in (default: '.')")] = ".",
        include: Annotated[str | None, Field(description="Glob to filter files, e.g. '*.py'")] = None,
    ) -> str:
        """Search file contents for a pattern (regex or literal). Returns matching lines as file:line:text."""
        try:
            regex = re.compile(pattern)
        except re.error:
            regex = re.compile(re.escape(pattern))

        matches: list[str] = []
        for fpath in _walk_files(_resolve(root, path), include):
            try:
                text = fpath.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug("Skipping unreadable file %s: %s", fpath, e)
                continue
            rel = fpath.relative_to(root)
            for i, line in enumerate(text.splitlines(), 1):
                if regex.search(line):
                    matches.append(f"{rel}:{i}: {line.rstrip()}")
                    if len(matches) >= MAX_GREP_MATCHES:
                        matches.append(f"... (truncated at {MAX_GREP_MATCHES} matches)")
                        return "\n".join(matches)
        if not matches:
            return f"No matches for '{pattern}'"
        return "\n".join(matches)

    def find_files(
        pattern: Annotated[str, Field(description="Glob pattern to match file names, e.g. '*.py'")],
        path: Annotated[str, Field(description="Directory to search in (default: '.')")] = ".",
    ) -> str:
        """Find files by name pattern (glob), searching recursively from the given path."""
        results: list[str] = []
        for fpath in _walk_files(_resolve(root, path), pattern):
            results.append(str(fpath.relative_to(root)))
            if len(results) >= MAX_FIND_RESULTS:
                results.append(f"... (truncated at {MAX_FIND_RESULTS} results)")
                break
        if not results:
            return f"No files matching '{pattern}'"
        return "\n".join(results)

    return [
        FunctionTool.from_callable(read_file),
        FunctionTool.from_callable(list_directory),
        FunctionTool.from_callable(grep),
        FunctionTool.from_callable(find_files),
    ]


def _resolve(root: Path, path: str) -> Path:
    """Resolve ``path`` inside ``root``; escaping the workspace is an error."""
    resolved = (root / path).resolve()
    if resolved != root and root not in resolved.parents:
        raise ValueError(f"Path '{path}' is outside the workspace")
    return resolved


def _walk_files(root: Path, include: str | None = None) -> list[Path]:
    """Recursively collect files, optionally filtered by glob."""
    if root.is_file():
        return [root]
    files: list[Path] = []
    for fpath in sorted(root.rglob("*")):
        if not fpath.is_file():
            continue
        if include and not fnmatch.fnmatch(fpath.name, include):
            continue
        files.append(fpath)
    return files
