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
"""Reconstruct per-file compiler invocations for a build target."""

import os
import logging
from typing import List, Optional
from dataclasses import dataclass

from compdb.build_graph import BuildTarget
from compdb.constants import (
    COMPILE_ACTION_NAMES,
    EXECUTION_ROOT_PLACEHOLDER,
    GENERATED_SOURCE_EXTENSIONS,
    PROTO_RULE_KIND,
    WORKSPACE_PLACEHOLDER,
    ToolchainError,
)
from compdb.toolchain import CcToolchain, FeatureConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileCommandEntry:
    """One compilation database record.

    Attributes:
        command: Quoted compiler path followed by the space-joined flags
        directory: Working directory (execution root placeholder unless resolved)
        file: Source path prefixed with the workspace placeholder
    """

    command: str
    directory: str
    file: str


def _generated_sources(target: BuildTarget) -> List[str]:
    if target.kind != PROTO_RULE_KIND:
        return []
    return [f for f in target.outputs if os.path.splitext(f)[1] in GENERATED_SOURCE_EXTENSIONS]


def sources(target: BuildTarget) -> List[str]:
    """Enumerate the compilable files of a target.

    Declared sources, then declared headers, then for proto library rules the
    generated .h/.cc outputs. A file listed twice is enumerated once.
    """
    return list(dict.fromkeys(list(target.srcs) + list(target.hdrs) + _generated_sources(target)))


def get_action_name(toolchain: CcToolchain, feature_configuration: FeatureConfiguration) -> Optional[str]:
    """Return the first enabled compile action, preferring C++ over C."""
    for action_name in COMPILE_ACTION_NAMES:
        if toolchain.action_is_enabled(feature_configuration, action_name):
            return action_name
    return None


def get_command_line(target: BuildTarget, src: str, toolchain: CcToolchain) -> Optional[str]:
    """Build the command line compiling src as part of target.

    Returns:
        The command string, or None when no compile action or tool is available
        or the target has no compilation context
    """
    context = target.compilation_context
    if context is None:
        logger.debug("%s has no compilation context", target.label)
        return None

    feature_configuration = toolchain.configure_features(
        requested_features=target.features,
        unsupported_features=target.disabled_features,
    )
    action_name = get_action_name(toolchain, feature_configuration)
    if action_name is None:
        logger.debug("%s: no compile action enabled", target.label)
        return None

    try:
        compiler = toolchain.get_tool_for_action(feature_configuration, action_name)
    except ToolchainError as e:
        logger.debug("%s: %s", target.label, e)
        return None

    compile_variables = toolchain.create_compile_variables(
        source_file=src,
        user_compile_flags=toolchain.cxxopts + toolchain.copts,
        include_directories=context.includes,
        quote_include_directories=context.quote_includes,
        system_include_directories=context.system_includes,
        framework_include_directories=context.framework_includes,
        preprocessor_defines=context.define_strings(),
    )
    compiler_options = toolchain.get_command_line(feature_configuration, action_name, compile_variables)
    return '"{}" {}'.format(compiler, " ".join(compiler_options))


def synthesize(target: BuildTarget, src: str, toolchain: CcToolchain) -> Optional[CompileCommandEntry]:
    """Synthesize the compilation database entry for one file of a target.

    Files that are not declared by the target (or generated by its proto rule)
    are ineligible and yield None.
    """
    if src not in sources(target):
        logger.debug("%s is not a compilable file of %s", src, target.label)
        return None

    return _make_entry(target, src, toolchain)


def _make_entry(target: BuildTarget, src: str, toolchain: CcToolchain) -> Optional[CompileCommandEntry]:
    command_line = get_command_line(target, src, toolchain)
    if not command_line:
        return None

    return CompileCommandEntry(
        command=command_line,
        directory=EXECUTION_ROOT_PLACEHOLDER,
        file=f"{WORKSPACE_PLACEHOLDER}/{src}",
    )


def synthesize_target(target: BuildTarget, toolchain: CcToolchain) -> List[CompileCommandEntry]:
    """Synthesize entries for every compilable file of a target, skipping unsupported ones."""
    entries = []
    for src in sources(target):
        entry = _make_entry(target, src, toolchain)
        if entry is not None:
            entries.append(entry)
    return entries
