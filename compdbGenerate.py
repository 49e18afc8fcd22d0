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
"""
Compilation Database Generator

Generates a compile_commands.json for a set of root targets of a build graph.
For every C/C++/Objective-C target in the dependency closure of the roots it
reconstructs the compiler invocation of each source and header file from the
target's compilation context and the toolchain configuration.

USAGE:
    python3 compdbGenerate.py <GRAPH.json> <TARGET> [TARGET ...] [options]

EXAMPLES:
    # Database for one binary and everything it depends on
    python3 compdbGenerate.py build_graph.json //app:main

    # Several roots, written next to the sources
    python3 compdbGenerate.py build_graph.json //app:main //tools:cli -o src/compile_commands.json

    # Resolve the placeholders for tools that do not understand them
    python3 compdbGenerate.py build_graph.json //app:main --execution-root /tmp/execroot --workspace-root $PWD

    # Extra user flags for every compile
    python3 compdbGenerate.py build_graph.json //app:main --copt=-Wall --cxxopt=-std=c++17

METHOD:
    1. Load the build graph description (targets, dependencies, compilation
       contexts and the toolchain configuration)
    2. Walk the dependency closure of the roots, each target visited once
    3. For each eligible target pick the C++ compile action (or C compile as
       fallback) and materialize the command line through the toolchain
    4. Write the entries as a JSON array

    The "directory" field is the execution root placeholder and the "file"
    field is prefixed with the workspace placeholder unless --execution-root
    or --workspace-root are given.
"""
__version__ = "1.0.0"

import sys
import argparse
import logging
from typing import List, Optional

from compdb.color_utils import Colors, print_error, print_info, print_success, print_warning, should_use_color
from compdb.constants import COMPILE_COMMANDS_JSON, EXIT_INVALID_ARGS, EXIT_KEYBOARD_INTERRUPT, EXIT_RUNTIME_ERROR, EXIT_SUCCESS, ArgumentError, CompdbError
from compdb.package_verification import require_package
from compdb.build_graph import build_graph_from_description, load_description
from compdb.toolchain import toolchain_from_description
from compdb.aggregator import collect
from compdb.serialization import resolve_placeholders, write_compilation_database


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a compile_commands.json from a build graph description.",
        epilog="""
Targets outside the recognised C/C++/Objective-C rule kinds and targets of
external repositories contribute no entries, but their dependencies are
still visited.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}", help="Show version and exit")

    parser.add_argument("graph", metavar="GRAPH.json", help="Path to the build graph description")

    parser.add_argument("targets", metavar="TARGET", nargs="+", help="Root target labels (e.g. //app:main)")

    parser.add_argument("-o", "--output", default=COMPILE_COMMANDS_JSON, help=f"Output file (default: {COMPILE_COMMANDS_JSON})")

    parser.add_argument("--copt", action="append", default=[], metavar="FLAG", help="Additional compile flag (repeatable)")

    parser.add_argument("--cxxopt", action="append", default=[], metavar="FLAG", help="Additional C++ compile flag (repeatable)")

    parser.add_argument("--execution-root", metavar="DIR", help="Replace the execution root placeholder with DIR")

    parser.add_argument("--workspace-root", metavar="DIR", help="Replace the workspace placeholder with DIR")

    parser.add_argument("-j", "--jobs", type=int, default=1, help="Number of threads used to synthesize commands (default: 1)")

    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose debug logging")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")

    if not should_use_color(no_color=args.no_color):
        Colors.disable()

    require_package("networkx", "build graph analysis")

    try:
        if args.jobs < 1:
            raise ArgumentError(f"--jobs must be at least 1, got {args.jobs}")

        description = load_description(args.graph)
        graph = build_graph_from_description(description)
        toolchain = toolchain_from_description(description, copts=args.copt, cxxopts=args.cxxopt)

        print_info(f"Loaded {len(graph)} targets from {args.graph}")

        aggregation = collect(graph, args.targets, toolchain, max_workers=args.jobs)
        entries = aggregation.flatten()

        if args.execution_root or args.workspace_root:
            entries = resolve_placeholders(entries, execution_root=args.execution_root, workspace_root=args.workspace_root)

        if not entries:
            print_warning("No compile commands found for the requested targets")

        count = write_compilation_database(args.output, entries)
        print_success(f"Wrote {count} compile commands for {len(aggregation.labels)} targets to {args.output}")
        return EXIT_SUCCESS

    except CompdbError as e:
        logging.error("%s", e)
        print_error(str(e))
        if e.exit_code == EXIT_INVALID_ARGS:
            print("Check the build graph description and the requested target labels", file=sys.stderr)
        return e.exit_code

    except Exception as e:  # pylint: disable=broad-exception-caught
        # Unexpected errors - catch all to provide user-friendly error message
        logging.critical("Unexpected error: %s", e, exc_info=True)
        print_error(f"Fatal error: {e}")
        print_warning("Run with --verbose for more details", prefix=False)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print_warning("\nInterrupted by user", prefix=False)
        sys.exit(EXIT_KEYBOARD_INTERRUPT)
