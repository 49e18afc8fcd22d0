#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Reading and writing compile_commands.json files."""

import os
import json
import logging
from typing import Any, Iterable, List, Optional

from compdb.command_synth import CompileCommandEntry
from compdb.constants import ENTRY_SEPARATOR, EXECUTION_ROOT_PLACEHOLDER, WORKSPACE_PLACEHOLDER, CompilationDatabaseError

logger = logging.getLogger(__name__)

ENTRY_FIELDS = ("command", "directory", "file")


def entry_to_json(entry: CompileCommandEntry) -> str:
    """Render one entry as a JSON object with command, directory and file."""
    return json.dumps({"command": entry.command, "directory": entry.directory, "file": entry.file})


def compilation_db_json(entries: Iterable[CompileCommandEntry]) -> str:
    """Render entries as the compilation database JSON array."""
    return "[\n" + ENTRY_SEPARATOR.join(entry_to_json(entry) for entry in entries) + "\n]\n"


def _entry_from_object(index: int, obj: Any) -> CompileCommandEntry:
    if not isinstance(obj, dict):
        raise CompilationDatabaseError(f"Entry {index} is not a JSON object")
    if set(obj) != set(ENTRY_FIELDS):
        raise CompilationDatabaseError(f"Entry {index} must have exactly the fields {', '.join(ENTRY_FIELDS)}, got {', '.join(sorted(obj))}")
    for key in ENTRY_FIELDS:
        if not isinstance(obj[key], str):
            raise CompilationDatabaseError(f"Entry {index} field '{key}' must be a string")
    return CompileCommandEntry(command=obj["command"], directory=obj["directory"], file=obj["file"])


def parse_compilation_db(text: str) -> List[CompileCommandEntry]:
    """Parse compilation database JSON back into entries.

    Raises:
        CompilationDatabaseError: If the text is not a JSON array of entries
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CompilationDatabaseError(f"Invalid compilation database JSON: {e}") from e

    if not isinstance(data, list):
        raise CompilationDatabaseError("Compilation database must be a JSON array")

    return [_entry_from_object(i, obj) for i, obj in enumerate(data)]


def load_compilation_database(path: str) -> List[CompileCommandEntry]:
    """Load entries from a compile_commands.json file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise CompilationDatabaseError(f"Failed to read {path}: {e}") from e
    return parse_compilation_db(text)


def write_compilation_database(path: str, entries: Iterable[CompileCommandEntry]) -> int:
    """Write entries to path as UTF-8 JSON, creating parent directories.

    Returns:
        Number of entries written
    """
    entry_list = list(entries)
    content = compilation_db_json(entry_list)

    parent = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise CompilationDatabaseError(f"Failed to write {path}: {e}") from e

    logger.info("Wrote %s entries to %s", len(entry_list), path)
    return len(entry_list)


def resolve_placeholders(
    entries: Iterable[CompileCommandEntry], execution_root: Optional[str] = None, workspace_root: Optional[str] = None
) -> List[CompileCommandEntry]:
    """Substitute the execution root and workspace placeholders with concrete paths.

    A placeholder whose replacement is None is left untouched.
    """
    replacements = []
    if execution_root is not None:
        replacements.append((EXECUTION_ROOT_PLACEHOLDER, execution_root.rstrip("/") or "/"))
    if workspace_root is not None:
        replacements.append((WORKSPACE_PLACEHOLDER, workspace_root.rstrip("/") or "/"))

    def substitute(text: str) -> str:
        for placeholder, value in replacements:
            text = text.replace(placeholder, value)
        return text

    return [CompileCommandEntry(command=substitute(e.command), directory=substitute(e.directory), file=substitute(e.file)) for e in entries]
