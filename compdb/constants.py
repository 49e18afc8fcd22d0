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
"""Shared constants for the compdb tools.

This module provides centralized constants used across the compdb modules
to ensure consistency: exit codes, compilation database placeholders, the
recognised rule kinds, compile action names and the default flag policy.
"""

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Compilation Database Constants
# =============================================================================

COMPILE_COMMANDS_JSON = "compile_commands.json"  # Standard compilation database filename

# Placeholders resolved by the consumer of the database
EXECUTION_ROOT_PLACEHOLDER = "__BAZEL_EXECUTION_ROOT__"
WORKSPACE_PLACEHOLDER = "__BAZEL_WORKSPACE__"

# Separator between entries in the JSON array
ENTRY_SEPARATOR = ",\n "

# =============================================================================
# Rule Kinds
# =============================================================================

CC_RULES = (
    "cc_library",
    "cc_binary",
    "cc_test",
    "cc_inc_library",
    "cc_proto_library",
)

OBJC_RULES = (
    "objc_library",
    "objc_binary",
)

ALL_RULES = CC_RULES + OBJC_RULES

# Rule kind whose generated outputs are compiled in addition to srcs/hdrs
PROTO_RULE_KIND = "cc_proto_library"
GENERATED_SOURCE_EXTENSIONS = (".h", ".cc")

# =============================================================================
# Toolchain Constants
# =============================================================================

CPP_COMPILE_ACTION_NAME = "c++-compile"
C_COMPILE_ACTION_NAME = "c-compile"

# Preference order when resolving the action that models a compile
COMPILE_ACTION_NAMES = (CPP_COMPILE_ACTION_NAME, C_COMPILE_ACTION_NAME)

# Default flag templates, "{}" is replaced by the directory or define
DEFAULT_FLAG_TEMPLATES = {
    "includes": "-I{}",
    "quote_includes": "-iquote {}",
    "system_includes": "-isystem {}",
    "framework_includes": "-F{}",
    "defines": "-D{}",
}

# Order in which compilation context groups are materialized
CONTEXT_FLAG_GROUPS = ("includes", "quote_includes", "system_includes", "framework_includes", "defines")

# Feature emitting the compiler input flags, enabled unless disabled explicitly
COMPILER_INPUT_FEATURE = "compiler_input_flags"
COMPILER_INPUT_FLAGS = ("-c", "{source_file}")

# =============================================================================
# Exception Classes
# =============================================================================


class CompdbError(Exception):
    """Base exception for all compdb errors.

    All compdb exceptions carry an exit_code attribute that indicates
    what exit code the program should use when this error is caught at the
    main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(CompdbError):
    """Raised when input validation fails (arguments, paths, etc)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class ArgumentError(ValidationError):
    """Raised when command-line arguments are invalid."""


class TargetNotFoundError(ValidationError):
    """Raised when a requested target label is not part of the build graph."""


class GraphDescriptionError(ValidationError):
    """Raised when a build graph description is missing or malformed."""


# Analysis/processing errors (EXIT_RUNTIME_ERROR)
class AnalysisError(CompdbError):
    """Raised when analysis or processing operations fail."""


class GraphBuildError(AnalysisError):
    """Raised when build graph construction fails (cycles, dangling dependencies)."""


class ToolchainError(CompdbError):
    """Raised when the toolchain cannot provide a tool or flag for an action."""


class CompilationDatabaseError(CompdbError):
    """Raised when a compilation database cannot be read, parsed or written."""
