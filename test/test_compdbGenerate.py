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
"""Tests for the compdbGenerate.py command line tool"""
import sys
import json
from pathlib import Path
from typing import Any, Dict
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
from compdbGenerate import main
from compdb.constants import EXIT_INVALID_ARGS, EXIT_RUNTIME_ERROR, EXIT_SUCCESS


def _write(path: Path, data: Dict[str, Any]) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.mark.integration
class TestMain:
    """Test the CLI end to end."""

    def test_generate(self, graph_file: str, temp_dir: str) -> None:
        """Test writing the database for the fixture graph."""
        output = Path(temp_dir) / "compile_commands.json"
        assert main([graph_file, "//app:main", "-o", str(output), "--no-color"]) == EXIT_SUCCESS

        data = json.loads(output.read_text(encoding="utf-8"))
        assert [e["file"] for e in data] == [
            "__BAZEL_WORKSPACE__/app/main.cc",
            "__BAZEL_WORKSPACE__/base/base.cc",
            "__BAZEL_WORKSPACE__/base/base.h",
        ]
        assert data[0]["command"] == '"/usr/bin/c++" -Wall -I. -DAPP -fPIC -c app/main.cc'
        assert data[1]["command"] == '"/usr/bin/c++" -Wall -I. -isystem third_party -fPIC -c base/base.cc'
        assert all(e["directory"] == "__BAZEL_EXECUTION_ROOT__" for e in data)

    def test_extra_flags_and_placeholders(self, graph_file: str, temp_dir: str) -> None:
        """Test --copt/--cxxopt and placeholder resolution."""
        output = Path(temp_dir) / "db.json"
        exit_code = main(
            [
                graph_file,
                "//base",
                "-o",
                str(output),
                "--copt=-g",
                "--cxxopt=-std=c++17",
                "--execution-root",
                "/exec",
                "--workspace-root",
                "/ws",
                "--jobs",
                "2",
                "--no-color",
            ]
        )
        assert exit_code == EXIT_SUCCESS

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data[0] == {
            "command": '"/usr/bin/c++" -std=c++17 -Wall -g -I. -isystem third_party -fPIC -c base/base.cc',
            "directory": "/exec",
            "file": "/ws/base/base.cc",
        }

    def test_unknown_target(self, graph_file: str, temp_dir: str) -> None:
        """Test that an unknown root label is an invalid argument."""
        output = Path(temp_dir) / "db.json"
        assert main([graph_file, "//nope:nope", "-o", str(output), "--no-color"]) == EXIT_INVALID_ARGS
        assert not output.exists()

    def test_missing_graph(self, temp_dir: str) -> None:
        """Test a missing description file."""
        assert main([str(Path(temp_dir) / "missing.json"), "//a:a", "--no-color"]) == EXIT_INVALID_ARGS

    def test_cyclic_graph(self, temp_dir: str) -> None:
        """Test that a cyclic graph is a runtime error."""
        graph = _write(
            Path(temp_dir) / "cycle.json",
            {
                "targets": [
                    {"label": "//a:a", "kind": "cc_library", "deps": ["//b:b"]},
                    {"label": "//b:b", "kind": "cc_library", "deps": ["//a:a"]},
                ]
            },
        )
        assert main([graph, "//a:a", "--no-color"]) == EXIT_RUNTIME_ERROR

    def test_malformed_description(self, temp_dir: str) -> None:
        """Test that wrongly typed description fields are reported as invalid input."""
        string_srcs = _write(Path(temp_dir) / "srcs.json", {"targets": [{"label": "//a:a", "kind": "cc_library", "srcs": "a.cc"}]})
        label_targets = _write(Path(temp_dir) / "labels.json", {"targets": ["//a:a"]})
        string_copts = _write(
            Path(temp_dir) / "copts.json",
            {"targets": [{"label": "//a:a", "kind": "cc_library"}], "toolchain": {"copts": "-Wall"}},
        )
        for graph in (string_srcs, label_targets, string_copts):
            output = Path(temp_dir) / "db.json"
            assert main([graph, "//a:a", "-o", str(output), "--no-color"]) == EXIT_INVALID_ARGS
            assert not output.exists()

    def test_invalid_jobs(self, graph_file: str) -> None:
        """Test that --jobs must be positive."""
        assert main([graph_file, "//app:main", "--jobs", "0", "--no-color"]) == EXIT_INVALID_ARGS

    def test_empty_result_still_written(self, temp_dir: str) -> None:
        """Test that a graph without eligible targets writes an empty array."""
        graph = _write(Path(temp_dir) / "graph.json", {"targets": [{"label": "//g:g", "kind": "genrule", "srcs": ["g.cc"]}]})
        output = Path(temp_dir) / "db.json"
        assert main([graph, "//g:g", "-o", str(output), "--no-color"]) == EXIT_SUCCESS
        assert json.loads(output.read_text(encoding="utf-8")) == []

    def test_requires_target(self, graph_file: str) -> None:
        """Test that at least one target is required."""
        with pytest.raises(SystemExit) as exc_info:
            main([graph_file])
        assert exc_info.value.code == 2
