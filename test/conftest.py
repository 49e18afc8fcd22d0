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
"""Pytest configuration and shared fixtures for compdb tests.

Fixture graphs:
- scenario_graph: single cc_library "//:lib" compiling a.cc
- diamond_graph: //app:a -> {//b:b, //c:c}, both -> //d:d

Fixture Scopes:
- function: Default, recreated for each test
- module: Shared across tests in one file, use for immutable data
"""

import sys
import json
import tempfile
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from compdb.build_graph import BuildGraph, BuildTarget, CompilationContext
from compdb.toolchain import CcToolchain

CXX = "/usr/bin/c++"
CC = "/usr/bin/cc"


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Use for: File I/O operations that need isolation
    """
    tmpdir = tempfile.mkdtemp(prefix="compdb_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def toolchain() -> CcToolchain:
    """Toolchain with both compile actions enabled and no extra features."""
    return CcToolchain(tools={"c++-compile": CXX, "c-compile": CC})


@pytest.fixture
def make_target() -> Callable[..., BuildTarget]:
    """Factory for cc_library targets with an (optionally empty) compilation context."""

    def _make(label: str, srcs: List[str] = (), deps: List[str] = (), kind: str = "cc_library", context: Any = None, **kwargs: Any) -> BuildTarget:
        if context is None:
            context = CompilationContext()
        elif isinstance(context, dict):
            context = CompilationContext.from_dict(context)
        return BuildTarget(label=label, kind=kind, srcs=tuple(srcs), deps=tuple(deps), compilation_context=context, **kwargs)

    return _make


@pytest.fixture
def scenario_graph(make_target: Callable[..., BuildTarget]) -> BuildGraph:
    """Single static library with one source, a quote include and a define."""
    lib = make_target("//:lib", srcs=["a.cc"], context={"quote_includes": ["inc"], "defines": ["FOO=1"]})
    return BuildGraph([lib])


@pytest.fixture
def diamond_graph(make_target: Callable[..., BuildTarget]) -> BuildGraph:
    """Diamond: //app:a depends on //b:b and //c:c, which both depend on //d:d.

    Structure:
        a
       / \\
      b   c
       \\ /
        d
    """
    return BuildGraph(
        [
            make_target("//app:a", srcs=["app/a.cc"], deps=["//b:b", "//c:c"], kind="cc_binary"),
            make_target("//b:b", srcs=["b/b.cc"], deps=["//d:d"]),
            make_target("//c:c", srcs=["c/c.cc"], deps=["//d:d"]),
            make_target("//d:d", srcs=["d/d.cc"], hdrs=["d/d.h"]),
        ]
    )


@pytest.fixture
def graph_description() -> Dict[str, Any]:
    """JSON build graph description with a binary, two libraries and an external dependency."""
    return {
        "workspace": "main",
        "toolchain": {
            "tools": {"c++-compile": CXX, "c-compile": CC},
            "features": [{"name": "pic", "flags": ["-fPIC"], "enabled": True}],
            "copts": ["-Wall"],
        },
        "targets": [
            {
                "label": "//app:main",
                "kind": "cc_binary",
                "srcs": ["app/main.cc"],
                "deps": ["//base", "@zlib//:zlib"],
                "compilation_context": {"includes": ["."], "defines": ["APP"]},
            },
            {
                "label": "//base:base",
                "kind": "cc_library",
                "srcs": ["base/base.cc"],
                "hdrs": ["base/base.h"],
                "compilation_context": {"includes": ["."], "system_includes": ["third_party"]},
            },
            {
                "label": "@zlib//:zlib",
                "kind": "cc_library",
                "srcs": ["external/zlib/inflate.c"],
                "compilation_context": {},
            },
        ],
    }


@pytest.fixture
def graph_file(temp_dir: str, graph_description: Dict[str, Any]) -> str:
    """graph_description written to a JSON file."""
    path = Path(temp_dir) / "build_graph.json"
    path.write_text(json.dumps(graph_description, indent=2), encoding="utf-8")
    return str(path)
